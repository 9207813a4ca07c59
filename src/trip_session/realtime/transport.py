"""
trip_session.realtime.transport

Duplex event transport used by the channel manager.

Responsibilities:
- Define the `ChannelTransport` protocol the manager depends on.
- Implement it over WebSockets: JSON frames `{"event": ..., "data": ...}`,
  bearer credential sent in the handshake, transport-owned reconnection.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any, Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from trip_session.observability.logging import get_logger

log = get_logger(__name__)

EventHandler = Callable[[str, Any], None]
DropHandler = Callable[[BaseException | None], None]
RestoreHandler = Callable[[], None]


class ChannelConnectError(Exception):
    """The transport could not establish its initial connection."""


class ChannelTransport(Protocol):
    async def connect(
        self,
        token: str,
        *,
        on_event: EventHandler,
        on_drop: DropHandler,
        on_restore: RestoreHandler,
    ) -> None:
        """Open the connection; raise `ChannelConnectError` on failure."""

    async def emit(self, event: str, data: Any) -> None: ...

    async def close(self) -> None: ...


TransportFactory = Callable[[], ChannelTransport]


class WebSocketTransport:
    """
    One logical connection. After a drop it keeps reconnecting with the
    credential it was opened with, backing off up to `max_reconnect_delay`,
    until `close()` is called.
    """

    def __init__(
        self,
        url: str,
        *,
        reconnect_delay: float = 5.0,
        max_reconnect_delay: float = 30.0,
        open_timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._open_timeout = open_timeout
        self._token: str | None = None
        self._ws: ClientConnection | None = None
        self._runner: asyncio.Task[None] | None = None
        self._closing = False
        self._on_event: EventHandler = lambda _name, _data: None
        self._on_drop: DropHandler = lambda _exc: None
        self._on_restore: RestoreHandler = lambda: None

    async def connect(
        self,
        token: str,
        *,
        on_event: EventHandler,
        on_drop: DropHandler,
        on_restore: RestoreHandler,
    ) -> None:
        self._token = token
        self._on_event = on_event
        self._on_drop = on_drop
        self._on_restore = on_restore
        try:
            self._ws = await self._open()
        except (OSError, TimeoutError, WebSocketException) as e:
            raise ChannelConnectError(str(e) or e.__class__.__name__) from e
        log.info("channel_transport_connected", url=self._url)
        self._runner = asyncio.create_task(self._run())

    async def _open(self) -> ClientConnection:
        return await connect(
            self._url,
            additional_headers={"Authorization": f"Bearer {self._token}"},
            open_timeout=self._open_timeout,
        )

    async def _run(self) -> None:
        while not self._closing and self._ws is not None:
            error: BaseException | None = None
            try:
                async for raw in self._ws:
                    self._dispatch(raw)
            except ConnectionClosed as e:
                error = e
            if self._closing:
                return

            self._ws = None
            log.info("channel_transport_dropped", error=str(error) if error else None)
            self._on_drop(error)
            await self._reconnect()

    async def _reconnect(self) -> None:
        delay = self._reconnect_delay
        while not self._closing:
            await asyncio.sleep(delay)
            try:
                self._ws = await self._open()
            except (OSError, TimeoutError, WebSocketException) as e:
                log.info("channel_reconnect_failed", error=str(e), retry_in=delay)
                delay = min(self._max_reconnect_delay, delay * 1.5)
                continue
            log.info("channel_transport_restored")
            self._on_restore()
            return

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            frame = json.loads(raw)
        except ValueError:
            log.debug("channel_frame_malformed")
            return
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            log.debug("channel_frame_malformed")
            return
        self._on_event(frame["event"], frame.get("data"))

    async def emit(self, event: str, data: Any) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            await ws.send(json.dumps({"event": event, "data": data}))
        except ConnectionClosed:
            log.debug("channel_emit_dropped", event_name=event)

    async def close(self) -> None:
        self._closing = True
        runner, self._runner = self._runner, None
        if runner is not None:
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        log.info("channel_transport_closed")


# --- Module Notes -----------------------------------------------------------
# Outbound sends carry no acknowledgment; a frame sent while the socket is down
# is dropped.

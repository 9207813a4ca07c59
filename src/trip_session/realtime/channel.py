"""
trip_session.realtime.channel

Real-time channel manager.

Responsibilities:
- Open the event channel only while the session is authenticated, using the
  credential current at connect time; tear it down as soon as it is not.
- Hold at most one connecting/connected transport at any time.
- Route inbound events into the notification store and alert sink.
- Fire-and-forget outbound room/update events.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Callable
from typing import Any

from trip_session.alerts import AlertSink, LoggingAlertSink
from trip_session.auth.models import Principal
from trip_session.notifications.store import NotificationStore
from trip_session.observability.logging import get_logger, log_task_failure
from trip_session.realtime.events import route_event
from trip_session.realtime.transport import (
    ChannelConnectError,
    ChannelTransport,
    TransportFactory,
)
from trip_session.session.reducers import Session

log = get_logger(__name__)

JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
PUBLISH_UPDATE = "publish-update"


class ChannelStatus(enum.StrEnum):
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


StatusListener = Callable[[ChannelStatus], None]


class ChannelManager:
    """
    Lifecycle changes (open/close/reconcile) run one at a time under a lock,
    so a close always finishes before the next open starts.
    """

    def __init__(
        self,
        *,
        transport_factory: TransportFactory,
        notifications: NotificationStore,
        token_provider: Callable[[], str | None],
        alerts: AlertSink | None = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._notifications = notifications
        self._token_provider = token_provider
        self._alerts = alerts or LoggingAlertSink()
        self._status = ChannelStatus.disconnected
        self._transport: ChannelTransport | None = None
        self._principal: Principal | None = None
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()
        self._status_listeners: list[StatusListener] = []

    @property
    def status(self) -> ChannelStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._status is ChannelStatus.connected

    def subscribe_status(self, listener: StatusListener) -> Callable[[], None]:
        self._status_listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)

        return _unsubscribe

    def _set_status(self, status: ChannelStatus) -> None:
        if status is self._status:
            return
        self._status = status
        log.info("channel_status", status=status.value)
        for listener in list(self._status_listeners):
            listener(status)

    # --- Lifecycle -------------------------------------------------------------

    def on_session_changed(self, session: Session) -> None:
        """Session listener; schedules a reconcile against this snapshot."""

        task = asyncio.get_running_loop().create_task(self._reconcile(session))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(log_task_failure(log, "channel_reconcile_failed"))

    async def wait_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _reconcile(self, session: Session) -> None:
        async with self._lock:
            principal = session.principal
            if not session.authenticated or principal is None:
                await self._close_locked()
                return
            if self._principal is not None and self._principal.id != principal.id:
                await self._close_locked()
            await self._open_locked(self._token_provider(), principal)

    async def open(self, token: str, principal: Principal) -> None:
        if self._status is not ChannelStatus.disconnected:
            return
        async with self._lock:
            await self._open_locked(token, principal)

    async def close(self) -> None:
        async with self._lock:
            await self._close_locked()

    async def aclose(self) -> None:
        await self.wait_idle()
        await self.close()

    async def _open_locked(self, token: str | None, principal: Principal) -> None:
        self._principal = principal
        if self._status is not ChannelStatus.disconnected:
            return
        if not token:
            log.warning("channel_open_skipped", reason="no_credential")
            return

        transport = self._transport_factory()
        self._transport = transport
        self._set_status(ChannelStatus.connecting)
        try:
            await transport.connect(
                token,
                on_event=lambda name, data: self._on_event(transport, name, data),
                on_drop=lambda error: self._on_drop(transport, error),
                on_restore=lambda: self._on_restore(transport),
            )
        except ChannelConnectError as e:
            log.warning("channel_connect_failed", error=str(e))
            self._transport = None
            self._set_status(ChannelStatus.disconnected)
            return
        self._set_status(ChannelStatus.connected)

    async def _close_locked(self) -> None:
        transport, self._transport = self._transport, None
        self._principal = None
        self._set_status(ChannelStatus.disconnected)
        if transport is not None:
            await transport.close()

    # --- Transport callbacks ---------------------------------------------------

    def _on_drop(self, transport: ChannelTransport, error: BaseException | None) -> None:
        if transport is not self._transport:
            return
        log.info("channel_dropped", error=str(error) if error else None)
        self._set_status(ChannelStatus.connecting)

    def _on_restore(self, transport: ChannelTransport) -> None:
        if transport is not self._transport:
            return
        self._set_status(ChannelStatus.connected)

    def _on_event(self, transport: ChannelTransport, name: str, data: Any) -> None:
        if transport is not self._transport:
            return
        principal = self._principal
        routed = route_event(name, data, is_admin=principal is not None and principal.is_admin)
        if routed is None:
            log.debug("channel_event_ignored", event_name=name)
            return

        self._notifications.append(routed.notification)
        if routed.live_update is not None:
            self._notifications.update_live_data(*routed.live_update)
        for alert in routed.alerts:
            self._alerts.show(alert)
        log.info("channel_event", event_name=name, kind=routed.notification.kind)

    # --- Outbound --------------------------------------------------------------

    async def join_room(self, room_id: str) -> None:
        await self._emit(JOIN_ROOM, room_id)

    async def leave_room(self, room_id: str) -> None:
        await self._emit(LEAVE_ROOM, room_id)

    async def publish_update(self, payload: dict[str, Any]) -> None:
        await self._emit(PUBLISH_UPDATE, payload)

    async def _emit(self, event: str, data: Any) -> None:
        transport = self._transport
        if self._status is not ChannelStatus.connected or transport is None:
            log.debug("channel_emit_skipped", event_name=event, status=self._status.value)
            return
        await transport.emit(event, data)


# --- Module Notes -----------------------------------------------------------
# Inbound routing lives in `realtime.events`; this module only owns the
# connection lifecycle.

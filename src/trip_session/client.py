"""
trip_session.client

Composition root for the session layer.

Responsibilities:
- Build the shared HTTP client, credential store, dispatcher, session
  controller, notification store and channel manager.
- Wire the channel to session transitions.
- Own startup (boot restore) and shutdown of shared resources.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx

from trip_session.alerts import AlertSink, LoggingAlertSink
from trip_session.api_client.dispatcher import RequestDispatcher
from trip_session.auth.credentials import CredentialStore, FileTokenStorage, TokenStorage
from trip_session.notifications.store import NotificationStore
from trip_session.observability.logging import configure_logging, get_logger
from trip_session.realtime.channel import ChannelManager
from trip_session.realtime.transport import TransportFactory, WebSocketTransport
from trip_session.session.controller import SessionController
from trip_session.session.reducers import Session
from trip_session.settings import Settings

log = get_logger(__name__)


@dataclass(slots=True)
class SessionLayer:
    settings: Settings
    http: httpx.AsyncClient
    credentials: CredentialStore
    dispatcher: RequestDispatcher
    session: SessionController
    notifications: NotificationStore
    channel: ChannelManager
    alerts: AlertSink

    async def start(self) -> Session:
        log.info("startup", env=self.settings.env)
        session = await self.session.restore()
        await self.channel.wait_idle()
        return session

    async def aclose(self) -> None:
        await self.session.aclose()
        await self.channel.aclose()
        await self.http.aclose()
        log.info("shutdown")

    async def __aenter__(self) -> SessionLayer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def create_session_layer(
    *,
    settings: Settings,
    http: httpx.AsyncClient | None = None,
    storage: TokenStorage | None = None,
    transport_factory: TransportFactory | None = None,
    alerts: AlertSink | None = None,
    on_forced_logout: Callable[[], None] | None = None,
) -> SessionLayer:
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.log_json,
    )

    alerts = alerts or LoggingAlertSink()
    if http is None:
        http = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
            headers={"Content-Type": "application/json"},
        )
    credentials = CredentialStore(storage or FileTokenStorage(settings.credential_path))
    dispatcher = RequestDispatcher(
        http=http, credentials=credentials, settings=settings, alerts=alerts
    )
    session = SessionController(
        dispatcher=dispatcher,
        credentials=credentials,
        settings=settings,
        alerts=alerts,
        on_forced_logout=on_forced_logout,
    )
    notifications = NotificationStore(capacity=settings.notification_capacity)

    def _websocket_transport() -> WebSocketTransport:
        return WebSocketTransport(
            settings.realtime_url,
            reconnect_delay=settings.channel_reconnect_delay_seconds,
            max_reconnect_delay=settings.channel_max_reconnect_delay_seconds,
        )

    channel = ChannelManager(
        transport_factory=transport_factory or _websocket_transport,
        notifications=notifications,
        token_provider=lambda: credentials.access_token,
        alerts=alerts,
    )
    session.subscribe(channel.on_session_changed)

    return SessionLayer(
        settings=settings,
        http=http,
        credentials=credentials,
        dispatcher=dispatcher,
        session=session,
        notifications=notifications,
        channel=channel,
        alerts=alerts,
    )


# --- Module Notes -----------------------------------------------------------
# The only place that knows how the components fit together; each component
# takes its collaborators explicitly.

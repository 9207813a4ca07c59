"""
tests.conftest

Shared fakes for the session layer tests.

Responsibilities:
- `FakeBackend`: an `httpx.MockTransport` handler standing in for the remote API.
- `FakeChannelHub`: an in-memory `ChannelTransport` factory.
- Builders for a fully wired `SessionLayer` around those fakes.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from trip_session.alerts import RecordingAlertSink
from trip_session.auth.credentials import MemoryTokenStorage
from trip_session.client import SessionLayer, create_session_layer
from trip_session.realtime.transport import ChannelConnectError
from trip_session.settings import Settings

BASE_URL = "http://test/api"

USER: dict[str, Any] = {
    "_id": "u-1",
    "name": "Ada",
    "email": "a@b.com",
    "role": "user",
    "planType": "premium",
    "aiRequestsRemaining": 12,
}


class FakeBackend:
    """
    Protected routes accept only `valid_token`. The renewal endpoint can be
    held back until `expected_rejections` authorization failures were served,
    which makes concurrent-failure scenarios deterministic.
    """

    def __init__(self, *, valid_token: str = "stale-token", renewed_token: str = "fresh-token") -> None:
        self.valid_token = valid_token
        self.renewed_token = renewed_token
        self.user = dict(USER)
        self.password = "secret"
        self.renewal_status = 200
        self.renewal_calls = 0
        self.expected_rejections: int | None = None
        self.rejections = 0
        self.all_rejected = asyncio.Event()
        self.renewal_started = asyncio.Event()
        self.me_delay = 0.0
        self.logout_status = 200
        self.logout_calls = 0
        # path -> httpx.RequestError subclass raised instead of answering
        self.raise_on: dict[str, type[httpx.RequestError]] = {}
        self.requests: list[httpx.Request] = []

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url=BASE_URL)

    def seen(self, path: str) -> list[str | None]:
        """Bearer tokens carried by every request to `path`, in order."""

        return [_bearer(r) for r in self.requests if _path(r) == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = _path(request)
        token = _bearer(request)

        if path in self.raise_on:
            raise self.raise_on[path]("malformed response", request=request)

        if path == "/auth/refresh":
            self.renewal_calls += 1
            self.renewal_started.set()
            if self.expected_rejections is not None:
                await self.all_rejected.wait()
            if self.renewal_status != 200:
                return httpx.Response(self.renewal_status, json={"message": "Refresh token expired"})
            self.valid_token = self.renewed_token
            return httpx.Response(200, json={"accessToken": self.renewed_token})

        if path in ("/auth/login", "/auth/register"):
            body = json.loads(request.content)
            if body.get("password") != self.password:
                return httpx.Response(401, json={"message": "Invalid credentials"})
            return httpx.Response(200, json={"user": self.user, "token": self.valid_token})

        if path.startswith("/auth/verify-email/"):
            if path.rsplit("/", 1)[1] != "good":
                return httpx.Response(400, json={"message": "Invalid or expired verification token"})
            return httpx.Response(200, json={"user": self.user, "accessToken": self.valid_token})
        if path == "/auth/forgot-password":
            return httpx.Response(200, json={})
        if path.startswith("/auth/reset-password/"):
            if path.rsplit("/", 1)[1] != "good":
                return httpx.Response(400, json={"message": "Invalid or expired reset token"})
            return httpx.Response(200, json={})

        if path == "/auth/logout":
            self.logout_calls += 1
            return httpx.Response(self.logout_status, json={})

        if token != self.valid_token:
            self.rejections += 1
            if self.expected_rejections is not None and self.rejections >= self.expected_rejections:
                self.all_rejected.set()
            return httpx.Response(401, json={"message": "Token expired"})

        if path == "/auth/me":
            if self.me_delay:
                await asyncio.sleep(self.me_delay)
            return httpx.Response(200, json={"user": self.user})
        if path == "/auth/profile":
            self.user.update(json.loads(request.content))
            return httpx.Response(200, json={"user": self.user})
        if path == "/auth/resend-verification":
            return httpx.Response(200, json={})
        if path == "/auth/change-password":
            return httpx.Response(200, json={})
        if path == "/boom":
            return httpx.Response(500, json={"message": "Upstream AI provider failed"})
        if path == "/invalid":
            return httpx.Response(
                422,
                json={"message": "Validation failed", "errors": [{"field": "destination"}]},
            )
        return httpx.Response(200, json={"path": path, "token": token})


def _path(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/api")


def _bearer(request: httpx.Request) -> str | None:
    value = request.headers.get("Authorization")
    return value.removeprefix("Bearer ") if value else None


class FakeChannelTransport:
    def __init__(self, hub: FakeChannelHub) -> None:
        self.hub = hub
        self.token: str | None = None
        self.emitted: list[tuple[str, Any]] = []
        self.open = False
        self._on_event = None
        self._on_drop = None
        self._on_restore = None

    async def connect(self, token, *, on_event, on_drop, on_restore) -> None:
        # Single-active-connection check happens before the suspension point.
        assert not any(t.open for t in self.hub.transports if t is not self)
        await asyncio.sleep(0)
        if self.hub.fail_connect:
            raise ChannelConnectError("connection refused")
        self.token = token
        self._on_event, self._on_drop, self._on_restore = on_event, on_drop, on_restore
        self.open = True

    async def emit(self, event: str, data: Any) -> None:
        self.emitted.append((event, data))

    async def close(self) -> None:
        self.open = False

    # Test controls
    def push(self, name: str, data: Any = None) -> None:
        self._on_event(name, data)

    def drop(self) -> None:
        self._on_drop(None)

    def restore(self) -> None:
        self._on_restore()


class FakeChannelHub:
    def __init__(self) -> None:
        self.transports: list[FakeChannelTransport] = []
        self.fail_connect = False

    def factory(self) -> FakeChannelTransport:
        transport = FakeChannelTransport(self)
        self.transports.append(transport)
        return transport

    @property
    def latest(self) -> FakeChannelTransport:
        return self.transports[-1]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def hub() -> FakeChannelHub:
    return FakeChannelHub()


@pytest.fixture
def alerts() -> RecordingAlertSink:
    return RecordingAlertSink()


def build_layer(
    backend: FakeBackend,
    hub: FakeChannelHub,
    alerts: RecordingAlertSink,
    *,
    stored_token: str | None = None,
    storage: MemoryTokenStorage | None = None,
    on_forced_logout=None,
    **settings_overrides: Any,
) -> SessionLayer:
    settings = Settings(env="test", api_base_url=BASE_URL, **settings_overrides)
    return create_session_layer(
        settings=settings,
        http=backend.client(),
        storage=storage or MemoryTokenStorage(stored_token),
        transport_factory=hub.factory,
        alerts=alerts,
        on_forced_logout=on_forced_logout,
    )

"""
tests.test_dispatcher

Outbound call path: credential attachment, error taxonomy, alerts.
"""

from __future__ import annotations

import httpx
import pytest

from conftest import BASE_URL, FakeBackend
from trip_session.alerts import RecordingAlertSink
from trip_session.api_client.dispatcher import RequestDispatcher
from trip_session.auth.credentials import CredentialStore, MemoryTokenStorage
from trip_session.errors import AuthError, NetworkError, ServerError, ValidationError
from trip_session.settings import Settings


def _dispatcher(
    http: httpx.AsyncClient, *, token: str | None = None
) -> tuple[RequestDispatcher, CredentialStore, RecordingAlertSink]:
    credentials = CredentialStore(MemoryTokenStorage(token))
    credentials.load()
    alerts = RecordingAlertSink()
    dispatcher = RequestDispatcher(
        http=http, credentials=credentials, settings=Settings(env="test"), alerts=alerts
    )
    return dispatcher, credentials, alerts


@pytest.mark.asyncio
async def test_attaches_current_credential(backend: FakeBackend) -> None:
    async with backend.client() as http:
        dispatcher, credentials, _ = _dispatcher(http, token="stale-token")

        r = await dispatcher.get("/trips")
        assert r.json() == {"path": "/trips", "token": "stale-token"}

        # Read at send time, not at construction.
        credentials.set("fresh-token")
        backend.valid_token = "fresh-token"
        await dispatcher.get("/trips/2")

    assert backend.seen("/trips/2") == ["fresh-token"]
    assert all(r.headers.get("x-request-id") for r in backend.requests)


@pytest.mark.asyncio
async def test_no_credential_sends_no_header(backend: FakeBackend) -> None:
    async with backend.client() as http:
        dispatcher, _, _ = _dispatcher(http)
        await dispatcher.post("/auth/login", json={"password": "secret"}, authenticate=False)

    assert backend.seen("/auth/login") == [None]


@pytest.mark.asyncio
async def test_server_error_raises_and_alerts(backend: FakeBackend) -> None:
    async with backend.client() as http:
        dispatcher, _, alerts = _dispatcher(http, token="stale-token")
        with pytest.raises(ServerError) as info:
            await dispatcher.get("/boom")

    assert info.value.status == 500
    assert info.value.message == "Upstream AI provider failed"
    assert alerts.messages("error") == ["Upstream AI provider failed"]


@pytest.mark.asyncio
async def test_silent_call_skips_alert(backend: FakeBackend) -> None:
    async with backend.client() as http:
        dispatcher, _, alerts = _dispatcher(http, token="stale-token")
        with pytest.raises(ServerError):
            await dispatcher.get("/boom", silent=True)

    assert alerts.alerts == []


@pytest.mark.asyncio
async def test_validation_error_carries_field_errors(backend: FakeBackend) -> None:
    async with backend.client() as http:
        dispatcher, _, alerts = _dispatcher(http, token="stale-token")
        with pytest.raises(ValidationError) as info:
            await dispatcher.post("/invalid", json={})

    assert info.value.status == 422
    assert info.value.errors == [{"field": "destination"}]
    # Validation failures belong to the caller's form, not a global alert.
    assert alerts.alerts == []


@pytest.mark.asyncio
async def test_transport_failure_becomes_network_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url=BASE_URL) as http:
        dispatcher, _, alerts = _dispatcher(http, token="t")
        with pytest.raises(NetworkError) as info:
            await dispatcher.get("/trips")

    assert info.value.status == 0
    assert alerts.messages("error") == ["Network error. Please check your connection."]


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [httpx.DecodingError, httpx.TooManyRedirects])
async def test_any_request_failure_becomes_network_error(failure: type[httpx.RequestError]) -> None:
    def broken(request: httpx.Request) -> httpx.Response:
        raise failure("malformed response", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(broken), base_url=BASE_URL) as http:
        dispatcher, _, _ = _dispatcher(http, token="t")
        with pytest.raises(NetworkError):
            await dispatcher.get("/trips")


@pytest.mark.asyncio
async def test_timeout_message() -> None:
    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(slow), base_url=BASE_URL) as http:
        dispatcher, _, _ = _dispatcher(http, token="t")
        with pytest.raises(NetworkError, match="timed out"):
            await dispatcher.get("/ai/generate", timeout=1.0)


@pytest.mark.asyncio
async def test_unrecoverable_rejection_is_auth_error(backend: FakeBackend) -> None:
    async with backend.client() as http:
        dispatcher, credentials, _ = _dispatcher(http, token="wrong")
        with pytest.raises(AuthError):
            await dispatcher.get("/trips", recoverable=False)

    assert backend.renewal_calls == 0
    assert credentials.access_token == "wrong"


@pytest.mark.asyncio
async def test_invalid_renewal_body_is_auth_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL) as http:
        dispatcher, _, _ = _dispatcher(http)
        with pytest.raises(AuthError, match="Invalid renewal response"):
            await dispatcher.renew_credential()

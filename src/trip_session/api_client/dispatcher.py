"""
trip_session.api_client.dispatcher

Request dispatcher: the single path every outbound call takes.

Responsibilities:
- Attach `Authorization: Bearer <token>` from the credential store at send time.
- Detect authorization failures and hand them to the renewal coordinator.
- Raise taxonomy errors for failed responses; surface transient ones as alerts.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from trip_session.alerts import Alert, AlertSink, LoggingAlertSink
from trip_session.api_client.renewal import FailureHook, RenewalCoordinator
from trip_session.api_client.requests import ApiRequest
from trip_session.auth.credentials import CredentialStore
from trip_session.auth.schemas import RenewalResponse
from trip_session.errors import (
    TRANSIENT_ERRORS,
    AuthError,
    error_from_response,
    error_from_transport,
)
from trip_session.observability.context import REQUEST_ID_HEADER, outbound_call_context
from trip_session.observability.logging import get_logger
from trip_session.settings import Settings

log = get_logger(__name__)

RENEWAL_PATH = "/auth/refresh"


class RequestDispatcher:
    """
    Wraps a shared `httpx.AsyncClient` (base URL, cookies, timeouts).
    """

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        credentials: CredentialStore,
        settings: Settings,
        alerts: AlertSink | None = None,
    ) -> None:
        self._http = http
        self._credentials = credentials
        self._unauthorized_status = settings.unauthorized_status
        self._alerts = alerts or LoggingAlertSink()
        self._coordinator = RenewalCoordinator(
            credentials=credentials,
            renew=self.renew_credential,
            replay=self._send,
        )

    @property
    def coordinator(self) -> RenewalCoordinator:
        return self._coordinator

    def on_renewal_failure(self, hook: FailureHook) -> None:
        self._coordinator.on_failure = hook

    async def dispatch(self, request: ApiRequest) -> httpx.Response:
        with outbound_call_context(method=request.method, path=request.path):
            try:
                token = self._credentials.access_token
                response = await self._send(request, token)
                if response.status_code == self._unauthorized_status and request.may_renew:
                    log.info("credential_rejected")
                    response = await self._coordinator.recover(request, sent_with=token)
                return self._checked(response)
            except TRANSIENT_ERRORS as exc:
                log.warning("call_failed", kind=type(exc).__name__, status=exc.status)
                if not request.silent:
                    self._alerts.show(Alert("error", exc.message))
                raise

    async def get(self, path: str, **options: Any) -> httpx.Response:
        return await self.dispatch(ApiRequest("GET", path, **options))

    async def post(self, path: str, **options: Any) -> httpx.Response:
        return await self.dispatch(ApiRequest("POST", path, **options))

    async def put(self, path: str, **options: Any) -> httpx.Response:
        return await self.dispatch(ApiRequest("PUT", path, **options))

    async def delete(self, path: str, **options: Any) -> httpx.Response:
        return await self.dispatch(ApiRequest("DELETE", path, **options))

    async def renew_credential(self) -> str:
        """
        The raw renewal call. It takes no body (the server keys renewal off
        its own cookie state) and never goes through authorization recovery.
        """

        request = ApiRequest("POST", RENEWAL_PATH, authenticate=False, recoverable=False)
        response = self._checked(await self._send(request, None))
        try:
            return RenewalResponse.model_validate(response.json()).access_token
        except (PydanticValidationError, ValueError) as e:
            raise AuthError("Invalid renewal response", status=response.status_code) from e

    async def _send(self, request: ApiRequest, token: str | None) -> httpx.Response:
        headers = dict(request.headers)
        request_id = structlog.contextvars.get_contextvars().get("request_id")
        if request_id:
            headers[REQUEST_ID_HEADER] = request_id
        if request.authenticate and token:
            headers["Authorization"] = f"Bearer {token}"

        outbound = self._http.build_request(
            request.method,
            request.path,
            params=request.params,
            json=request.json,
            headers=headers,
            timeout=request.timeout if request.timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )
        try:
            response = await self._http.send(outbound)
        except httpx.RequestError as e:
            raise error_from_transport(e) from e
        log.debug("call_completed", status=response.status_code, retried=request.retried)
        return response

    def _checked(self, response: httpx.Response) -> httpx.Response:
        if response.status_code >= 400:
            raise error_from_response(response)
        return response


# --- Module Notes -----------------------------------------------------------
# Business endpoints (trips, AI generation, maps) are called through `dispatch`
# or the verb helpers; this module knows nothing about their payloads.

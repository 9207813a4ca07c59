"""
trip_session.errors

Error taxonomy surfaced by the session layer.

Responsibilities:
- Define the four caller-visible failure kinds (network, auth, validation, server).
- Convert httpx responses and transport exceptions into that taxonomy.
"""

from __future__ import annotations

from typing import Any

import httpx


class SessionLayerError(Exception):
    """
    Base class for every error raised across the layer's public boundary.
    `status` is 0 when no response was received.
    """

    default_message = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        status: int = 0,
        errors: list[dict[str, Any]] | dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.status = status
        self.errors = errors
        super().__init__(self.message)


class NetworkError(SessionLayerError):
    """No response was received (connection failure, timeout)."""

    default_message = "Network error. Please check your connection."


class AuthError(SessionLayerError):
    """The credential was rejected, or renewing it failed."""

    default_message = "Authentication required"


class ValidationError(SessionLayerError):
    """The remote side rejected the request; `errors` holds field-level detail."""

    default_message = "The request was rejected"


class ServerError(SessionLayerError):
    """The remote side failed while handling the request."""

    default_message = "The server encountered an error"


TRANSIENT_ERRORS: tuple[type[SessionLayerError], ...] = (NetworkError, ServerError)


def _body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def error_from_response(response: httpx.Response) -> SessionLayerError:
    status = response.status_code
    data = _body(response)
    message = data.get("message") if isinstance(data.get("message"), str) else None
    errors = data.get("errors")
    if not isinstance(errors, (list, dict)):
        errors = None

    if status in (401, 403):
        return AuthError(message, status=status)
    if status >= 500:
        return ServerError(message, status=status)
    return ValidationError(message, status=status, errors=errors)


def error_from_transport(exc: httpx.RequestError) -> NetworkError:
    """Any failure before a usable response: connect, timeout, decoding, redirects."""

    if isinstance(exc, httpx.TimeoutException):
        return NetworkError("The request timed out. Please try again.")
    return NetworkError()


def describe(exc: BaseException, *, fallback: str) -> str:
    """User-facing message for an arbitrary failure."""

    if isinstance(exc, SessionLayerError):
        return exc.message
    return fallback


# --- Module Notes -----------------------------------------------------------
# Only the dispatcher raises these from httpx objects; higher layers either let
# them propagate or turn them into `AuthResult` messages via `describe`.

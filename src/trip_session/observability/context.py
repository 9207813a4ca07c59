"""
trip_session.observability.context

Call-scoped logging context for outbound requests.

Responsibilities:
- Generate a request id per outbound call and expose it as `x-request-id`.
- Bind call metadata into structlog contextvars while the call is in flight.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

REQUEST_ID_HEADER = "x-request-id"


@contextmanager
def outbound_call_context(*, method: str, path: str) -> Iterator[str]:
    """
    Yields the request id bound for the duration of the block.

    Each asyncio task owns a copy of the context, so concurrent calls never
    see each other's ids.
    """

    request_id = str(uuid.uuid4())
    with structlog.contextvars.bound_contextvars(
        request_id=request_id,
        method=method,
        path=path,
    ):
        yield request_id


# --- Module Notes -----------------------------------------------------------
# Used by `api_client.dispatcher`; every log line emitted while a call is being
# sent, renewed, or replayed carries the call's request id.

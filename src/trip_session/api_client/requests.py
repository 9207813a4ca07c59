"""
trip_session.api_client.requests

Description of one outbound call.

Responsibilities:
- Carry method/path/body plus the per-call policy flags the dispatcher honors.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class ApiRequest:
    """
    An outbound call. A fresh `httpx.Request` is built from it on every
    attempt, so a retry always carries the credential current at send time.

    - `authenticate`: attach the bearer credential when one is held.
    - `recoverable`: an authorization failure may trigger renewal + retry.
    - `retried`: already replayed once after a renewal; never renewed again.
    - `silent`: transient failures are not surfaced as alerts.
    """

    method: str
    path: str
    params: dict[str, Any] | None = None
    json: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None
    authenticate: bool = True
    recoverable: bool = True
    retried: bool = False
    silent: bool = False

    @property
    def may_renew(self) -> bool:
        return self.recoverable and not self.retried

    def as_retry(self) -> ApiRequest:
        return replace(self, retried=True)

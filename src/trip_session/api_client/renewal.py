"""
trip_session.api_client.renewal

Single-flight credential renewal.

Responsibilities:
- Issue exactly one renewal call for any number of concurrent authorization failures.
- Queue calls that fail while a renewal is running and settle them in FIFO order.
- Proactive renewal on a timer, sharing the same single flight.
- On renewal failure: reject the queue, clear the credential, force a logout.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from trip_session.api_client.requests import ApiRequest
from trip_session.auth.credentials import CredentialStore
from trip_session.errors import AuthError
from trip_session.observability.logging import get_logger

log = get_logger(__name__)

RenewFn = Callable[[], Awaitable[str]]
ReplayFn = Callable[[ApiRequest, str], Awaitable[httpx.Response]]
FailureHook = Callable[[AuthError], None]


@dataclass(slots=True)
class PendingCall:
    # None for a proactive renewal that has no request to replay.
    request: ApiRequest | None
    # Resolves with the renewed credential, or fails with the renewal error.
    future: asyncio.Future[str]


class RenewalCoordinator:
    """
    Owns the "renewal in progress" flag; nothing outside this class can set it.

    The check of `_renewing` and the set that claims the renewal are adjacent
    statements with no `await` between them, so on a single event loop two
    callers can never both start a renewal.
    """

    def __init__(
        self,
        *,
        credentials: CredentialStore,
        renew: RenewFn,
        replay: ReplayFn,
        on_failure: FailureHook | None = None,
    ) -> None:
        self._credentials = credentials
        self._renew = renew
        self._replay = replay
        self.on_failure = on_failure
        self._renewing = False
        self._queue: deque[PendingCall] = deque()
        self.renewal_count = 0

    @property
    def renewing(self) -> bool:
        return self._renewing

    @property
    def queued(self) -> int:
        return len(self._queue)

    async def recover(
        self, request: ApiRequest, *, sent_with: str | None = None
    ) -> httpx.Response:
        """
        Called once per request that hit an authorization failure.
        `sent_with` is the credential the failed attempt carried.
        Returns the raw response of the replayed request.
        """

        current = self._credentials.access_token
        if not self._renewing and current != sent_with:
            if current is None:
                # Logged out (or renewal failed) after this attempt was sent.
                raise AuthError(status=401)
            # Renewed after this attempt was sent; the new credential is enough.
            log.info("renewal_skipped_already_renewed")
            return await self._replay(request.as_retry(), current)

        token = await self._renew_or_join(request)
        return await self._replay(request.as_retry(), token)

    async def renew(self) -> str:
        """
        Proactive renewal: start one, or join the renewal already running.
        Failure handling (queue rejection, forced logout) is the same as for
        a renewal triggered by a rejected call.
        """

        return await self._renew_or_join(None)

    async def _renew_or_join(self, request: ApiRequest | None) -> str:
        if self._renewing:
            future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
            self._queue.append(PendingCall(request=request, future=future))
            log.info("renewal_queued", queued=len(self._queue))
            return await future

        self._renewing = True
        self.renewal_count += 1
        epoch = self._credentials.epoch
        log.info("renewal_started", proactive=request is None)
        try:
            try:
                token = await self._renew()
            except Exception as exc:
                error = _as_auth_error(exc)
                self._fail(error, epoch=epoch)
                if error is exc:
                    raise
                raise error from exc

            if self._credentials.epoch == epoch:
                self._credentials.set(token)
            else:
                # Credential replaced or cleared while renewing; queued calls still get the token.
                log.info("renewal_result_discarded")
            self._release(token)
            log.info("renewal_succeeded")
        finally:
            self._renewing = False
            self._abandon()
        return token

    def _release(self, token: str) -> None:
        # Futures wake their waiters in the order they were resolved.
        while self._queue:
            pending = self._queue.popleft()
            if not pending.future.done():
                pending.future.set_result(token)

    def _fail(self, error: AuthError, *, epoch: int) -> None:
        log.warning("renewal_failed", error=error.message, queued=len(self._queue))
        while self._queue:
            pending = self._queue.popleft()
            if not pending.future.done():
                pending.future.set_exception(error)
        if self._credentials.epoch != epoch:
            return
        self._credentials.clear()
        if self.on_failure is not None:
            self.on_failure(error)

    def _abandon(self) -> None:
        # Only reached with a non-empty queue when the renewal itself was cancelled.
        if self._queue:
            self._fail(AuthError("Session renewal was interrupted"), epoch=-1)


def _as_auth_error(exc: Exception) -> AuthError:
    if isinstance(exc, AuthError):
        return exc
    return AuthError("Session expired. Please log in again.", status=getattr(exc, "status", 0))


# --- Module Notes -----------------------------------------------------------
# The renewal outcome is delivered to queued callers through their futures; each
# caller replays its own request, so its logging context stays intact.

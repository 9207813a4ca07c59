"""
trip_session.session.controller

Session controller: source of truth for "authenticated or not".

Responsibilities:
- Boot-time restore from the persisted credential (bounded by a timeout).
- Login/registration/email verification/logout and forced logout after a
  failed renewal.
- Session timers while authenticated: proactive renewal and inactivity expiry.
- Account flows (profile, password change/reset, verification email).
- Capability and quota predicates over the current principal.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from trip_session.alerts import Alert, AlertSink, LoggingAlertSink
from trip_session.api_client.dispatcher import RequestDispatcher
from trip_session.api_client.requests import ApiRequest
from trip_session.auth.credentials import CredentialStore
from trip_session.auth.models import Principal
from trip_session.auth.permissions import has_permission, remaining_quota
from trip_session.auth.schemas import AuthResponse, UserResponse
from trip_session.errors import AuthError, SessionLayerError, describe
from trip_session.observability.logging import get_logger, log_task_failure
from trip_session.session.reducers import Session, SessionAction, SessionState, reduce_session
from trip_session.settings import Settings

log = get_logger(__name__)

LOGIN_PATH = "/auth/login"
REGISTER_PATH = "/auth/register"
ME_PATH = "/auth/me"
PROFILE_PATH = "/auth/profile"
CHANGE_PASSWORD_PATH = "/auth/change-password"
LOGOUT_PATH = "/auth/logout"
VERIFY_EMAIL_PATH = "/auth/verify-email"
RESEND_VERIFICATION_PATH = "/auth/resend-verification"
FORGOT_PASSWORD_PATH = "/auth/forgot-password"
RESET_PASSWORD_PATH = "/auth/reset-password"

# Failures a profile operation turns into an `AuthResult` instead of raising.
_EXPECTED_FAILURES = (SessionLayerError, PydanticValidationError, ValueError)

SessionListener = Callable[[Session], None]


@dataclass(frozen=True, slots=True)
class AuthResult:
    success: bool
    message: str | None = None


class SessionController:
    """
    Owns the `Session` snapshot and the credential store. Every transition goes
    through `reduce_session`; listeners see each distinct snapshot once.
    """

    def __init__(
        self,
        *,
        dispatcher: RequestDispatcher,
        credentials: CredentialStore,
        settings: Settings,
        alerts: AlertSink | None = None,
        on_forced_logout: Callable[[], None] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._credentials = credentials
        self._restore_timeout = settings.restore_timeout_seconds
        self._renewal_interval = settings.renewal_interval_seconds
        self._idle_timeout = settings.idle_timeout_seconds
        self._alerts = alerts or LoggingAlertSink()
        self._on_forced_logout = on_forced_logout
        self._session = Session()
        self._listeners: list[SessionListener] = []
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._last_activity = time.monotonic()
        dispatcher.on_renewal_failure(self._on_renewal_failed)

    # --- State ---------------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    @property
    def principal(self) -> Principal | None:
        return self._session.principal

    @property
    def authenticated(self) -> bool:
        return self._session.authenticated

    @property
    def loading(self) -> bool:
        return self._session.loading

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _apply(self, action: SessionAction, payload: Any = None) -> None:
        previous = self._session
        current = reduce_session(previous, action, payload)
        if current is previous:
            return
        self._session = current
        log.info(
            "session_transition",
            action=action.value,
            from_state=previous.state.value,
            to_state=current.state.value,
            loading=current.loading,
        )
        if current.authenticated and not previous.authenticated:
            self._start_timers()
        elif previous.authenticated and not current.authenticated:
            self._stop_timers()
        for listener in list(self._listeners):
            listener(current)

    # --- Lifecycle -------------------------------------------------------------

    async def restore(self) -> Session:
        """
        Boot-time restore. Without a persisted credential this settles
        immediately; otherwise "who am I" must answer within the restore timeout.
        """

        if self._session.state is not SessionState.idle:
            log.warning("restore_ignored", state=self._session.state.value)
            return self._session

        if not self._credentials.load():
            self._apply(SessionAction.auth_fail)
            return self._session

        self._apply(SessionAction.restore_start)
        try:
            response = await asyncio.wait_for(
                self._dispatcher.get(ME_PATH, silent=True),
                timeout=self._restore_timeout,
            )
            principal = UserResponse.model_validate(response.json()).user.to_principal()
        except TimeoutError:
            log.warning("restore_timed_out", timeout_seconds=self._restore_timeout)
            self._fail_restore()
        except Exception as e:
            log.warning("restore_failed", error=str(e), kind=type(e).__name__)
            self._fail_restore()
        else:
            self._apply(SessionAction.auth_success, principal)
        return self._session

    def _fail_restore(self) -> None:
        self._credentials.clear()
        self._apply(SessionAction.auth_fail)

    async def login(self, email: str, password: str) -> AuthResult:
        return await self._authenticate(
            LOGIN_PATH,
            {"email": email, "password": password},
            success_message="Login successful!",
            failure_message="Login failed",
        )

    async def register(self, profile: dict[str, Any]) -> AuthResult:
        return await self._authenticate(
            REGISTER_PATH,
            profile,
            success_message="Registration successful!",
            failure_message="Registration failed",
        )

    async def _authenticate(
        self,
        path: str,
        body: dict[str, Any],
        *,
        success_message: str,
        failure_message: str,
    ) -> AuthResult:
        self._apply(SessionAction.auth_start)
        try:
            # Credentials are in the body; a 401 here means "wrong credentials".
            response = await self._dispatcher.post(
                path, json=body, authenticate=False, recoverable=False, silent=True
            )
            payload = AuthResponse.model_validate(response.json())
        except Exception as e:
            # A failed attempt ends any previous session, credential included.
            if self._credentials.access_token:
                self._credentials.clear()
            self._apply(SessionAction.auth_fail)
            message = describe(e, fallback=failure_message)
            log.info("authentication_failed", path=path, error=message)
            self._alerts.show(Alert("error", message))
            return AuthResult(success=False, message=message)

        self._credentials.set(payload.token)
        self._apply(SessionAction.auth_success, payload.user.to_principal())
        self._alerts.show(Alert("success", success_message))
        return AuthResult(success=True)

    async def verify_email(self, token: str) -> AuthResult:
        """Confirm an email address; the backend answers with a fresh session."""

        try:
            response = await self._dispatcher.get(
                f"{VERIFY_EMAIL_PATH}/{quote(token, safe='')}",
                authenticate=False,
                recoverable=False,
                silent=True,
            )
            payload = AuthResponse.model_validate(response.json())
        except Exception as e:
            message = describe(e, fallback="Email verification failed")
            log.info("email_verification_failed", error=message)
            self._alerts.show(Alert("error", message))
            return AuthResult(success=False, message=message)

        self._credentials.set(payload.token)
        self._apply(SessionAction.auth_success, payload.user.to_principal())
        self._alerts.show(Alert("success", "Email verified successfully!"))
        return AuthResult(success=True)

    async def logout(self) -> None:
        await self._end_session(SessionAction.logout)
        self._alerts.show(Alert("success", "Logged out successfully"))

    async def _end_session(self, action: SessionAction) -> None:
        try:
            if self._credentials.access_token:
                try:
                    await self._dispatcher.post(LOGOUT_PATH, recoverable=False, silent=True)
                except SessionLayerError as e:
                    log.info("remote_logout_failed", error=e.message)
        finally:
            self._credentials.clear()
            self._apply(action)

    def force_logout(self, reason: str | None = None) -> None:
        """
        Local-only logout after an unrecoverable credential failure.
        Idempotent: a session that is already unauthenticated is left alone.
        """

        if self._session.state is SessionState.unauthenticated:
            return
        if self._credentials.access_token:
            self._credentials.clear()
        self._apply(SessionAction.logout)
        log.warning("forced_logout", reason=reason)
        self._alerts.show(Alert("warning", "Your session has expired. Please log in again."))
        if self._on_forced_logout is not None:
            self._on_forced_logout()

    def _on_renewal_failed(self, error: AuthError) -> None:
        self.force_logout(error.message)

    async def aclose(self) -> None:
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        # Failures were already logged by the tasks' done-callbacks.
        await asyncio.gather(*tasks, return_exceptions=True)

    # --- Session timers --------------------------------------------------------

    def touch(self) -> None:
        """Record user activity; pushes back the inactivity expiry."""

        self._last_activity = time.monotonic()

    def _start_timers(self) -> None:
        self._last_activity = time.monotonic()
        if self._renewal_interval > 0:
            self._spawn("renewal", self._renew_periodically())
        if self._idle_timeout > 0:
            self._spawn("idle", self._expire_when_idle())

    def _stop_timers(self) -> None:
        if not self._timers:
            return
        # A timer that ends the session itself finishes on its own.
        current = asyncio.current_task()
        for task in self._timers.values():
            if task is not current:
                task.cancel()
        self._timers.clear()

    def _spawn(self, name: str, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._timers[name] = task
        task.add_done_callback(log_task_failure(log, f"{name}_timer_failed"))

    async def _renew_periodically(self) -> None:
        while True:
            await asyncio.sleep(self._renewal_interval)
            try:
                await self._dispatcher.coordinator.renew()
            except SessionLayerError as e:
                # The coordinator has already forced the logout where it applied.
                log.warning("scheduled_renewal_failed", error=e.message)
                return
            log.info("scheduled_renewal_succeeded")

    async def _expire_when_idle(self) -> None:
        while True:
            remaining = self._last_activity + self._idle_timeout - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(remaining)
        log.info("session_idle_expired", idle_timeout_seconds=self._idle_timeout)
        self._alerts.show(Alert("error", "Session expired due to inactivity"))
        await self._end_session(SessionAction.expire)

    # --- Principal -------------------------------------------------------------

    def update_principal(self, partial: dict[str, Any]) -> None:
        self._apply(SessionAction.update_principal, partial)

    async def update_profile(self, fields: dict[str, Any]) -> AuthResult:
        try:
            response = await self._dispatcher.put(PROFILE_PATH, json=fields, silent=True)
            user = UserResponse.model_validate(response.json()).user
        except _EXPECTED_FAILURES as e:
            message = describe(e, fallback="Profile update failed")
            self._alerts.show(Alert("error", message))
            return AuthResult(success=False, message=message)

        self._apply(SessionAction.update_principal, user.changed_fields())
        self._alerts.show(Alert("success", "Profile updated successfully"))
        return AuthResult(success=True)

    async def refresh_principal(self) -> Principal | None:
        try:
            response = await self._dispatcher.get(ME_PATH, silent=True)
            user = UserResponse.model_validate(response.json()).user
        except _EXPECTED_FAILURES as e:
            log.warning("principal_refresh_failed", error=str(e))
            return None

        self._apply(SessionAction.update_principal, user.changed_fields())
        return self.principal

    # --- Account flows ---------------------------------------------------------

    async def change_password(self, current_password: str, new_password: str) -> AuthResult:
        return await self._account_call(
            ApiRequest(
                "POST",
                CHANGE_PASSWORD_PATH,
                json={"currentPassword": current_password, "newPassword": new_password},
                silent=True,
            ),
            success_message="Password changed successfully",
            failure_message="Password change failed",
        )

    async def forgot_password(self, email: str) -> AuthResult:
        return await self._account_call(
            ApiRequest(
                "POST",
                FORGOT_PASSWORD_PATH,
                json={"email": email},
                authenticate=False,
                recoverable=False,
                silent=True,
            ),
            success_message="Password reset link sent to your email!",
            failure_message="Failed to send reset email",
        )

    async def reset_password(
        self, token: str, password: str, confirm_password: str | None = None
    ) -> AuthResult:
        return await self._account_call(
            ApiRequest(
                "POST",
                f"{RESET_PASSWORD_PATH}/{quote(token, safe='')}",
                json={
                    "password": password,
                    "confirmPassword": password if confirm_password is None else confirm_password,
                },
                authenticate=False,
                recoverable=False,
                silent=True,
            ),
            success_message="Password reset successfully!",
            failure_message="Password reset failed",
        )

    async def resend_verification(self) -> AuthResult:
        return await self._account_call(
            ApiRequest("POST", RESEND_VERIFICATION_PATH, silent=True),
            success_message="Verification email sent!",
            failure_message="Failed to send verification email",
        )

    async def _account_call(
        self, request: ApiRequest, *, success_message: str, failure_message: str
    ) -> AuthResult:
        try:
            await self._dispatcher.dispatch(request)
        except SessionLayerError as e:
            message = describe(e, fallback=failure_message)
            log.info("account_call_failed", error=message)
            self._alerts.show(Alert("error", message))
            return AuthResult(success=False, message=message)

        self._alerts.show(Alert("success", success_message))
        return AuthResult(success=True)

    # --- Predicates ------------------------------------------------------------

    def has_permission(self, capability: str) -> bool:
        return has_permission(self.principal, capability)

    def remaining_quota(self) -> int:
        return remaining_quota(self.principal)


# --- Module Notes -----------------------------------------------------------
# The real-time channel subscribes to this controller and follows its
# authenticated/unauthenticated transitions (see `realtime.channel`).

"""
trip_session.session.reducers

Pure transitions of the session state machine.

States: IDLE -> RESTORING -> {AUTHENTICATED, UNAUTHENTICATED}.
`loading` is true while restoring and during an explicit login/registration.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Any

from trip_session.auth.models import Principal


class SessionState(enum.StrEnum):
    idle = "idle"
    restoring = "restoring"
    authenticated = "authenticated"
    unauthenticated = "unauthenticated"


class SessionAction(enum.StrEnum):
    restore_start = "RESTORE_START"
    auth_start = "AUTH_START"
    auth_success = "AUTH_SUCCESS"
    auth_fail = "AUTH_FAIL"
    logout = "LOGOUT"
    expire = "SESSION_EXPIRED"
    update_principal = "UPDATE_PRINCIPAL"


@dataclass(frozen=True, slots=True)
class Session:
    state: SessionState = SessionState.idle
    principal: Principal | None = None
    loading: bool = False

    @property
    def authenticated(self) -> bool:
        return self.state is SessionState.authenticated


def reduce_session(session: Session, action: SessionAction, payload: Any = None) -> Session:
    """
    Returns `session` itself when the action changes nothing, so callers can
    skip notifying listeners.
    """

    if action is SessionAction.restore_start:
        new = replace(session, state=SessionState.restoring, loading=True)
    elif action is SessionAction.auth_start:
        new = replace(session, loading=True)
    elif action is SessionAction.auth_success:
        if not isinstance(payload, Principal):
            raise TypeError("AUTH_SUCCESS requires a Principal payload")
        new = Session(state=SessionState.authenticated, principal=payload, loading=False)
    elif action in (SessionAction.auth_fail, SessionAction.logout, SessionAction.expire):
        new = Session(state=SessionState.unauthenticated, principal=None, loading=False)
    elif action is SessionAction.update_principal:
        if session.principal is None or not payload:
            return session
        new = replace(session, principal=session.principal.merged(dict(payload)))
    else:
        return session

    return session if new == session else new

"""
trip_session.session

Session state machine package.

Responsibilities:
- Pure session reducer (state + action -> state).
- The session controller owning login/logout/restore and the current principal.
"""

from trip_session.session.controller import AuthResult, SessionController
from trip_session.session.reducers import Session, SessionAction, SessionState, reduce_session

__all__ = [
    "AuthResult",
    "Session",
    "SessionAction",
    "SessionController",
    "SessionState",
    "reduce_session",
]

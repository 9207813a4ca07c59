"""
trip_session.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) held by the session.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated user identity and its entitlements.
    """

    id: str
    name: str
    role: str = "user"
    plan_tier: str = "free"
    quota_remaining: int | None = None
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def merged(self, partial: dict[str, Any]) -> Principal:
        """
        Return a copy with the known fields of `partial` applied.
        Unknown keys are ignored; `id` never changes.
        """

        allowed = {f.name for f in fields(self)} - {"id"}
        changes = {k: v for k, v in partial.items() if k in allowed}
        return replace(self, **changes)


# --- Module Notes -----------------------------------------------------------
# The session replaces the principal wholesale on login/restore and uses
# `merged` for in-place profile updates.

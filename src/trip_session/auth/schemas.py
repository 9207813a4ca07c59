"""
trip_session.auth.schemas

Wire schemas for the auth endpoints the session layer calls.

Responsibilities:
- Parse `/auth/login`, `/auth/register`, `/auth/me`, `/auth/profile` and
  `/auth/refresh` bodies into typed values.
- Normalize the backend's camelCase field names into `Principal`.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from trip_session.auth.models import Principal


class PrincipalPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    email: str | None = None
    role: str = "user"
    plan_tier: str = Field(
        default="free",
        validation_alias=AliasChoices("planType", "plan_tier", "plan"),
    )
    quota_remaining: int | None = Field(
        default=None,
        validation_alias=AliasChoices("aiRequestsRemaining", "quota_remaining"),
    )

    def to_principal(self) -> Principal:
        return Principal(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            plan_tier=self.plan_tier,
            quota_remaining=self.quota_remaining,
        )

    def changed_fields(self) -> dict[str, Any]:
        # Fields explicitly present in the payload, in `Principal` terms.
        return self.model_dump(include=self.model_fields_set - {"id"})


class AuthResponse(BaseModel):
    """Body of a successful login or registration."""

    model_config = ConfigDict(extra="ignore")

    user: PrincipalPayload
    token: str = Field(min_length=1, validation_alias=AliasChoices("token", "accessToken"))


class UserResponse(BaseModel):
    """Body of `/auth/me` and `/auth/profile`."""

    model_config = ConfigDict(extra="ignore")

    user: PrincipalPayload


class RenewalResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(
        min_length=1,
        validation_alias=AliasChoices("accessToken", "access_token", "token"),
    )


# --- Module Notes -----------------------------------------------------------
# Business payloads (trips, itineraries) are deliberately not modeled here.

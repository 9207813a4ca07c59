"""
trip_session.auth.permissions

Capability checks and AI quota lookup for the current principal.

Responsibilities:
- Map capability names to the plan tiers that grant them.
- Resolve the remaining AI request quota, including the "unlimited" sentinel.
"""

from __future__ import annotations

from trip_session.auth.models import Principal

UNLIMITED_QUOTA = -1

# Capability -> plan tiers granting it. `admin` is granted by role only.
CAPABILITY_TIERS: dict[str, frozenset[str]] = {
    "premium": frozenset({"premium", "pro", "admin"}),
    "pro": frozenset({"pro", "admin"}),
    "admin": frozenset(),
}

# Plan tier -> quota reported when the principal carries no quota field.
DEFAULT_QUOTA: dict[str, int] = {
    "free": 0,
    "premium": 50,
}

UNLIMITED_TIERS = frozenset({"enterprise"})


def has_permission(principal: Principal | None, capability: str) -> bool:
    if principal is None:
        return False
    if principal.is_admin:
        return True
    tiers = CAPABILITY_TIERS.get(capability)
    if tiers is None:
        # Unrecognized capabilities are allowed; see DESIGN.md (open question).
        return True
    return principal.plan_tier in tiers


def remaining_quota(principal: Principal | None) -> int:
    if principal is None:
        return 0
    if principal.plan_tier in UNLIMITED_TIERS:
        return UNLIMITED_QUOTA
    if principal.plan_tier not in DEFAULT_QUOTA:
        return 0
    # A missing or zero quota reports the tier default.
    return principal.quota_remaining or DEFAULT_QUOTA[principal.plan_tier]


# --- Module Notes -----------------------------------------------------------
# The tables are plain data so product can extend them without touching the checks.

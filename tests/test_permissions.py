"""
tests.test_permissions

Capability and quota predicates.
"""

from __future__ import annotations

import pytest

from trip_session.auth.models import Principal
from trip_session.auth.permissions import UNLIMITED_QUOTA, has_permission, remaining_quota


def _principal(**kwargs) -> Principal:
    return Principal(id="u-1", name="Ada", **kwargs)


@pytest.mark.parametrize(
    ("plan_tier", "capability", "expected"),
    [
        ("free", "premium", False),
        ("premium", "premium", True),
        ("pro", "premium", True),
        ("premium", "pro", False),
        ("pro", "pro", True),
        ("pro", "admin", False),
    ],
)
def test_capability_by_plan_tier(plan_tier: str, capability: str, expected: bool) -> None:
    assert has_permission(_principal(plan_tier=plan_tier), capability) is expected


def test_admin_role_grants_everything() -> None:
    admin = _principal(role="admin")
    assert has_permission(admin, "admin")
    assert has_permission(admin, "pro")


def test_no_principal_has_no_capability() -> None:
    assert has_permission(None, "premium") is False


def test_unknown_capability_is_allowed() -> None:
    assert has_permission(_principal(), "export-pdf") is True


def test_quota() -> None:
    assert remaining_quota(None) == 0
    assert remaining_quota(_principal(plan_tier="enterprise")) == UNLIMITED_QUOTA
    assert remaining_quota(_principal(plan_tier="premium", quota_remaining=7)) == 7
    assert remaining_quota(_principal(plan_tier="premium")) == 50
    assert remaining_quota(_principal(plan_tier="free")) == 0
    assert remaining_quota(_principal(plan_tier="mystery", quota_remaining=5)) == 0


def test_principal_merge_keeps_id_and_ignores_unknown_keys() -> None:
    p = _principal(plan_tier="free")
    merged = p.merged({"id": "other", "plan_tier": "pro", "shoeSize": 42})

    assert merged.id == "u-1"
    assert merged.plan_tier == "pro"
    assert p.plan_tier == "free"

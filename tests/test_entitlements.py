# tests/test_entitlements.py

"""
Tests for effective entitlement resolution and claims reconciliation.
"""

import pytest
from datetime import timedelta

from core.entitlements import (
    resolve_entitlement,
    check_claims_consistency,
    claims_sync_status,
    can_access,
    entitlement_access_level,
    get_effective_entitlement,
    invalidate_entitlement,
)
from core.errors import ConsistencyWarning, NotFoundError
from models.enums import PrimaryRole, SubscriptionTier, AccessLevel
from models.user import User, RoleGrant, ClaimsMirror


def _grant(role_name, now, expires_in=None):
    return RoleGrant(
        role_name=role_name,
        granted_at=now - timedelta(days=30),
        expires_at=now + expires_in if expires_in is not None else None,
    )


# -----------------------------------------------------
# Effective role
# -----------------------------------------------------
def test_practitioner_with_expired_admin_grant_is_practitioner(now):
    """Scenario: grant {admin, expires yesterday} does not make an admin."""
    user = User(
        id="u1",
        additional_roles=[_grant("admin", now, expires_in=timedelta(days=-1))],
    )

    ent = resolve_entitlement(user, now)

    assert ent.role == PrimaryRole.practitioner
    assert ent.active_additional_roles == []


def test_active_admin_grant_makes_admin(now):
    user = User(id="u1", additional_roles=[_grant("admin", now, expires_in=timedelta(days=1))])

    assert resolve_entitlement(user, now).role == PrimaryRole.admin


def test_grant_without_expiry_is_active(now):
    user = User(id="u1", additional_roles=[_grant("admin", now)])

    ent = resolve_entitlement(user, now)

    assert ent.is_admin
    assert [g.role_name for g in ent.active_additional_roles] == ["admin"]


def test_grant_expiring_exactly_now_is_inactive(now):
    user = User(id="u1", additional_roles=[_grant("admin", now, expires_in=timedelta(0))])

    assert resolve_entitlement(user, now).role == PrimaryRole.practitioner


def test_primary_admin_is_admin_without_grants(now):
    user = User(id="u1", primary_role="admin")

    assert resolve_entitlement(user, now).role == PrimaryRole.admin


def test_non_admin_grant_does_not_change_role(now):
    user = User(id="u1", additional_roles=[_grant("editor", now)])

    ent = resolve_entitlement(user, now)

    assert ent.role == PrimaryRole.practitioner
    assert [g.role_name for g in ent.active_additional_roles] == ["editor"]


@pytest.mark.parametrize("primary_role", ["practitioner", "admin"])
@pytest.mark.parametrize("grant_offset_days", [None, -2, 0, 2])
def test_admin_iff_primary_admin_or_unexpired_admin_grant(now, primary_role, grant_offset_days):
    """Role is admin exactly when the primary role or an unexpired grant says so."""
    grants = []
    if grant_offset_days is not None:
        grants.append(_grant("admin", now, expires_in=timedelta(days=grant_offset_days)))
    user = User(id="u1", primary_role=primary_role, additional_roles=grants)

    expected = primary_role == "admin" or (
        grant_offset_days is not None and grant_offset_days > 0
    )
    assert (resolve_entitlement(user, now).role == PrimaryRole.admin) == expected


def test_expired_grants_never_listed_as_active(now):
    user = User(
        id="u1",
        additional_roles=[
            _grant("editor", now, expires_in=timedelta(hours=-1)),
            _grant("reviewer", now, expires_in=timedelta(hours=1)),
            _grant("admin", now, expires_in=timedelta(days=-10)),
        ],
    )

    active = resolve_entitlement(user, now).active_additional_roles

    assert [g.role_name for g in active] == ["reviewer"]


# -----------------------------------------------------
# Effective tier
# -----------------------------------------------------
def test_premium_without_end_date_is_premium(now):
    user = User(id="u1", subscription_tier="premium")

    assert resolve_entitlement(user, now).tier == SubscriptionTier.premium


def test_premium_with_past_end_date_is_free(now):
    user = User(id="u1", subscription_tier="premium", subscription_end=now - timedelta(days=1))

    assert resolve_entitlement(user, now).tier == SubscriptionTier.free


def test_free_with_future_end_date_stays_free(now):
    user = User(id="u1", subscription_tier="free", subscription_end=now + timedelta(days=10))

    assert resolve_entitlement(user, now).tier == SubscriptionTier.free


def test_valid_until_is_earliest_expiry(now):
    user = User(
        id="u1",
        subscription_tier="premium",
        subscription_end=now + timedelta(days=5),
        additional_roles=[_grant("admin", now, expires_in=timedelta(days=2))],
    )

    assert resolve_entitlement(user, now).valid_until == now + timedelta(days=2)


# -----------------------------------------------------
# Claims mirror
# -----------------------------------------------------
def test_claims_mirror_is_not_an_input(now):
    """A stale mirror claiming admin/premium does not grant anything."""
    user = User(
        id="u1",
        claims_mirror=ClaimsMirror(role="admin", subscription_tier="premium"),
    )

    ent = resolve_entitlement(user, now)

    assert ent.role == PrimaryRole.practitioner
    assert ent.tier == SubscriptionTier.free


def test_claims_in_sync_has_no_warning():
    user = User(
        id="u1",
        primary_role="admin",
        subscription_tier="premium",
        claims_mirror=ClaimsMirror(role="admin", subscription_tier="premium"),
    )

    assert check_claims_consistency(user) is None
    assert claims_sync_status(user).role_match is True


def test_claims_divergence_is_reported_not_raised():
    user = User(
        id="u1",
        primary_role="practitioner",
        claims_mirror=ClaimsMirror(role="admin", subscription_tier="free"),
    )

    warning = check_claims_consistency(user)

    assert isinstance(warning, ConsistencyWarning)
    assert warning.expected == {"role": "practitioner", "subscription_tier": "free"}
    assert warning.observed == {"role": "admin", "subscription_tier": "free"}

    status = claims_sync_status(user)
    assert status.role_match is False
    assert status.tier_match is True


def test_missing_claims_mirror_is_reported():
    user = User(id="u1")

    warning = check_claims_consistency(user)

    assert warning is not None
    assert warning.observed is None


# -----------------------------------------------------
# Access levels
# -----------------------------------------------------
def test_access_levels(now):
    free = resolve_entitlement(User(id="f"), now)
    premium = resolve_entitlement(User(id="p", subscription_tier="premium"), now)
    admin = resolve_entitlement(User(id="a", primary_role="admin"), now)

    assert entitlement_access_level(None) == AccessLevel.public
    assert entitlement_access_level(free) == AccessLevel.free
    assert entitlement_access_level(premium) == AccessLevel.premium
    assert entitlement_access_level(admin) == AccessLevel.admin

    assert can_access(None, "public") is True
    assert can_access(None, "free") is False
    assert can_access(free, "premium") is False
    assert can_access(premium, "premium") is True
    assert can_access(premium, "admin") is False
    assert can_access(admin, AccessLevel.premium) is True


# -----------------------------------------------------
# Cached consumer view
# -----------------------------------------------------
def test_get_effective_entitlement_unknown_user(user_store, now):
    with pytest.raises(NotFoundError):
        get_effective_entitlement(user_store, "missing", now)


def test_get_effective_entitlement_is_cached(user_store, now):
    user_store.add(User(id="u1"))

    first = get_effective_entitlement(user_store, "u1", now)
    second = get_effective_entitlement(user_store, "u1", now + timedelta(seconds=1))

    assert first == second
    assert user_store.calls.count(("get_user", "u1")) == 1


def test_cached_entitlement_recomputed_after_grant_expiry(user_store, now):
    user_store.add(
        User(id="u1", additional_roles=[_grant("admin", now, expires_in=timedelta(minutes=5))])
    )

    assert get_effective_entitlement(user_store, "u1", now).is_admin
    later = get_effective_entitlement(user_store, "u1", now + timedelta(minutes=10))

    assert later.role == PrimaryRole.practitioner


def test_invalidate_entitlement_forces_reread(user_store, now):
    user_store.add(User(id="u1"))
    get_effective_entitlement(user_store, "u1", now)

    user_store.users["u1"] = user_store.users["u1"].model_copy(update={"primary_role": PrimaryRole.admin})
    invalidate_entitlement("u1")

    assert get_effective_entitlement(user_store, "u1", now).is_admin

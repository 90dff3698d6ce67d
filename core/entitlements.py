# core/entitlements.py

"""
Effective entitlement resolution.

Single source of truth:
- Practitioners.role / subscription_tier / subscription_ends_at
- unexpired UserRoles grants

The session claims mirror is never an input here. It is only compared
against the authoritative fields afterwards and reported when it diverges.
"""

from datetime import datetime
from typing import Optional, Dict

from core.cache import cache_get, cache_set, cache_delete
from core.config import settings
from core.errors import ConsistencyWarning, NotFoundError
from core.logging_config import logger
from core.stores import UserRoleStore
from core.utils import utcnow, ensure_utc
from models.enums import PrimaryRole, SubscriptionTier, AccessLevel
from models.user import User, EffectiveEntitlement, ClaimsSyncStatus


# ============================================================
# RESOLUTION
# ============================================================

def resolve_entitlement(user: User, now: Optional[datetime] = None) -> EffectiveEntitlement:
    """
    Compute the effective role and tier of a user.

    - active additional roles: grants without expiry or expiring after `now`
    - role: admin if primary role is admin or an active grant is named admin
    - tier: premium only while subscription_end is absent or in the future
    """
    now = ensure_utc(now) or utcnow()

    active = [g for g in user.additional_roles if not g.is_expired(now)]

    if user.primary_role == PrimaryRole.admin or any(
        g.role_name == PrimaryRole.admin.value for g in active
    ):
        role = PrimaryRole.admin
    else:
        role = user.primary_role

    premium_window_open = user.subscription_end is None or user.subscription_end > now
    if user.subscription_tier == SubscriptionTier.premium and premium_window_open:
        tier = SubscriptionTier.premium
    else:
        tier = SubscriptionTier.free

    expiries = [g.expires_at for g in active if g.expires_at is not None]
    if tier == SubscriptionTier.premium and user.subscription_end is not None:
        expiries.append(user.subscription_end)

    return EffectiveEntitlement(
        user_id=user.id,
        role=role,
        tier=tier,
        active_additional_roles=active,
        computed_at=now,
        valid_until=min(expiries) if expiries else None,
    )


# ============================================================
# CLAIMS MIRROR RECONCILIATION
# ============================================================

def claims_sync_status(user: User) -> ClaimsSyncStatus:
    claims = user.claims_mirror
    return ClaimsSyncStatus(
        role_match=claims is not None and claims.role == user.primary_role.value,
        tier_match=claims is not None and claims.subscription_tier == user.subscription_tier.value,
    )


def check_claims_consistency(user: User) -> Optional[ConsistencyWarning]:
    """
    Compare the claims mirror with the fields the identity provider mirrors.
    Returns a ConsistencyWarning (never raises) or None when in sync.
    """
    status = claims_sync_status(user)
    if status.role_match and status.tier_match:
        return None

    expected = {
        "role": user.primary_role.value,
        "subscription_tier": user.subscription_tier.value,
    }
    observed = user.claims_mirror.model_dump() if user.claims_mirror else None
    return ConsistencyWarning(user.id, expected, observed)


def report_claims_consistency(user: User) -> Optional[ConsistencyWarning]:
    """check_claims_consistency + a log line when the mirror diverges."""
    warning = check_claims_consistency(user)
    if warning is not None:
        logger.warning(str(warning))
    return warning


# ============================================================
# CONTENT ACCESS LEVELS
# ============================================================

ACCESS_LEVEL_RANK: Dict[AccessLevel, int] = {
    AccessLevel.public: 0,
    AccessLevel.free: 1,
    AccessLevel.premium: 2,
    AccessLevel.admin: 3,
}


def entitlement_access_level(entitlement: Optional[EffectiveEntitlement]) -> AccessLevel:
    """Highest access level an entitlement reaches (anonymous → public)."""
    if entitlement is None:
        return AccessLevel.public
    if entitlement.is_admin:
        return AccessLevel.admin
    if entitlement.is_premium:
        return AccessLevel.premium
    return AccessLevel.free


def can_access(entitlement: Optional[EffectiveEntitlement], access_level) -> bool:
    required = AccessLevel(access_level)
    reached = entitlement_access_level(entitlement)
    return ACCESS_LEVEL_RANK[reached] >= ACCESS_LEVEL_RANK[required]


# ============================================================
# CACHED CONSUMER VIEW
# ============================================================

def _cache_key(user_id: str) -> str:
    return f"entitlement:{user_id}"


def invalidate_entitlement(user_id: str):
    cache_delete(_cache_key(user_id))


def cache_entitlement(entitlement: EffectiveEntitlement):
    cache_set(
        _cache_key(entitlement.user_id),
        entitlement,
        ttl_seconds=settings.ENTITLEMENT_CACHE_TTL_SECONDS,
    )


def get_effective_entitlement(
    store: UserRoleStore,
    user_id: str,
    now: Optional[datetime] = None,
) -> EffectiveEntitlement:
    """
    Read-through cached entitlement for consumers such as the admin guard.
    A cached entry is recomputed once `now` passes its valid_until.
    """
    now = ensure_utc(now) or utcnow()

    cached = cache_get(_cache_key(user_id))
    if cached is not None and not _crossed_expiry(cached, now):
        return cached

    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    entitlement = resolve_entitlement(user, now)
    cache_entitlement(entitlement)
    return entitlement


def _crossed_expiry(entitlement: EffectiveEntitlement, now: datetime) -> bool:
    if now < entitlement.computed_at:
        return True
    return entitlement.valid_until is not None and entitlement.valid_until <= now

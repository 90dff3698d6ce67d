# core/cell_updates.py

"""
Single-cell edits of the admin user table.

Each cell is backed by one data source. The coordinator validates the edit,
performs exactly one store mutation, then re-reads the user and refreshes the
cached entitlement so every consumer sees the new effective view.
"""

from datetime import datetime
from typing import Any, Optional

from core.entitlements import (
    resolve_entitlement,
    invalidate_entitlement,
    cache_entitlement,
    report_claims_consistency,
)
from core.errors import ValidationError, NotFoundError
from core.logging_config import logger
from core.stores import UserRoleStore
from core.utils import utcnow, parse_timestamp
from models.enums import CellDataSource, PrimaryRole, SubscriptionTier
from models.user import User, CellUpdateContext, CellUpdateResult


def apply_cell_update(
    store: UserRoleStore,
    user_id: str,
    data_source,
    new_value: Any,
    context: Optional[CellUpdateContext] = None,
) -> CellUpdateResult:
    """
    Apply one admin edit to one user.

    Raises:
        ValidationError: bad data source or value (nothing written)
        NotFoundError: unknown user, or revoking a grant that does not exist
        StoreError: the store failed; propagated unchanged
    """
    context = context or CellUpdateContext()
    now = context.now or utcnow()

    source = CellDataSource.parse(data_source)
    if source is None:
        raise ValidationError(
            f"Unknown data source '{data_source}'. Must be one of {CellDataSource.list()}"
        )

    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    if source == CellDataSource.primary_role:
        _apply_primary_role(store, user, new_value)
    elif source == CellDataSource.subscription_tier:
        _apply_subscription_tier(store, user, new_value, context)
    elif source == CellDataSource.additional_role_grant:
        _apply_role_grant(store, user, new_value, context, now)
    else:
        _apply_role_revoke(store, user, new_value, context)

    logger.info(
        f"Cell update applied: actor={context.actor_id} user={user_id} "
        f"source={source.value} value={new_value}"
    )

    return refresh_user_entitlement(store, user_id, source.value, now)


def refresh_user_entitlement(
    store: UserRoleStore,
    user_id: str,
    data_source: str,
    now: Optional[datetime] = None,
) -> CellUpdateResult:
    """Re-read after a write, re-prime the cache and report claims drift."""
    updated = store.get_user(user_id)
    if updated is None:
        raise NotFoundError(f"User {user_id} not found")

    invalidate_entitlement(user_id)
    entitlement = resolve_entitlement(updated, now)
    cache_entitlement(entitlement)

    warnings = []
    warning = report_claims_consistency(updated)
    if warning is not None:
        warnings.append(warning.to_dict())

    return CellUpdateResult(
        user_id=user_id,
        data_source=data_source,
        entitlement=entitlement,
        warnings=warnings,
    )


# ============================================================
# PER-SOURCE WRITES
# ============================================================

def _apply_primary_role(store: UserRoleStore, user: User, new_value: Any):
    role = PrimaryRole.parse(new_value)
    if role is None:
        raise ValidationError(
            f"Invalid role '{new_value}'. Must be one of {PrimaryRole.list()}"
        )
    # Additional admin grants survive a demotion; they are revoked separately.
    store.update_user(user.id, {"primary_role": role})


def _apply_subscription_tier(
    store: UserRoleStore,
    user: User,
    new_value: Any,
    context: CellUpdateContext,
):
    tier = SubscriptionTier.parse(new_value)
    if tier is None:
        raise ValidationError(
            f"Invalid subscription tier '{new_value}'. Must be one of {SubscriptionTier.list()}"
        )

    if not context.current_role:
        raise ValidationError("current_role is required when editing the subscription tier")

    current_role = PrimaryRole.parse(context.current_role)
    if current_role is None:
        raise ValidationError(f"Invalid current_role '{context.current_role}'")

    # role and tier share one profile write; a stale role would be written back
    if current_role != user.primary_role:
        raise ValidationError(
            f"User {user.id} role changed to '{user.primary_role.value}' since the row "
            f"was loaded (saw '{current_role.value}'). Reload and retry."
        )

    store.update_user(
        user.id,
        {"primary_role": current_role, "subscription_tier": tier},
    )


def _role_name(new_value: Any, context: CellUpdateContext) -> str:
    role_name = context.role_name or new_value
    if not role_name or not isinstance(role_name, str) or not role_name.strip():
        raise ValidationError("role_name is required")
    return role_name.strip()


def _apply_role_grant(
    store: UserRoleStore,
    user: User,
    new_value: Any,
    context: CellUpdateContext,
    now: datetime,
):
    role_name = _role_name(new_value, context)

    try:
        expires_at = parse_timestamp(context.expires_at)
    except ValueError:
        raise ValidationError(f"Invalid expires_at '{context.expires_at}'")

    if expires_at is not None and expires_at <= now:
        raise ValidationError(
            f"expires_at {expires_at.isoformat()} is in the past"
        )

    store.grant_role(
        user.id,
        role_name,
        expires_at=expires_at,
        granted_by=context.actor_id,
    )


def _apply_role_revoke(
    store: UserRoleStore,
    user: User,
    new_value: Any,
    context: CellUpdateContext,
):
    role_name = _role_name(new_value, context)

    # expired grants are still unrevoked rows and can be revoked
    if user.find_grant(role_name) is None:
        raise NotFoundError(f"User {user.id} has no '{role_name}' grant to revoke")

    if not store.revoke_role(user.id, role_name):
        raise NotFoundError(f"User {user.id} has no '{role_name}' grant to revoke")

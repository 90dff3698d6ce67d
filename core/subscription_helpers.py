# core/subscription_helpers.py

"""
Helper functions for adjusting a practitioner's premium window.
"""

from datetime import datetime, timedelta
from typing import Optional

from core.cell_updates import refresh_user_entitlement
from core.errors import ValidationError, NotFoundError
from core.logging_config import logger
from core.stores import UserRoleStore
from core.utils import utcnow, ensure_utc, parse_timestamp
from models.enums import SubscriptionTier
from models.user import User, SubscriptionStatusView, CellUpdateResult


def subscription_status(user: User, now: Optional[datetime] = None) -> SubscriptionStatusView:
    """
    Premium state of a user at `now`.

    remaining_days is rounded up, so a window ending later today counts as 1.
    It is None when there is no end date.
    """
    now = ensure_utc(now) or utcnow()
    end = user.subscription_end

    is_premium = user.subscription_tier == SubscriptionTier.premium
    is_active = is_premium and (end is None or end > now)

    remaining_days = None
    if end is not None:
        seconds = (end - now).total_seconds()
        remaining_days = max(0, -int(-seconds // 86400))

    return SubscriptionStatusView(
        is_premium=is_premium,
        is_active=is_active,
        remaining_days=remaining_days,
        subscription_start=user.subscription_start,
        subscription_end=end,
    )


def get_user_or_404(store: UserRoleStore, user_id: str) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def adjust_subscription_time(
    store: UserRoleStore,
    user_id: str,
    days: int,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CellUpdateResult:
    """
    Add (or remove, with negative days) time to a user's premium window.

    The window is shifted from its current end, or from now when there is
    none or it already ran out. A free user receiving time becomes premium.
    """
    now = ensure_utc(now) or utcnow()

    if not isinstance(days, int) or isinstance(days, bool):
        raise ValidationError("days must be an integer")
    if days == 0:
        raise ValidationError("days must not be zero")

    user = get_user_or_404(store, user_id)

    base = user.subscription_end
    if base is None or base < now:
        base = now
    new_end = base + timedelta(days=days)

    fields = {"subscription_end": new_end}
    if days > 0 and user.subscription_tier == SubscriptionTier.free:
        fields["subscription_tier"] = SubscriptionTier.premium
        fields["subscription_start"] = now

    store.update_user(user_id, fields)
    logger.info(
        f"Subscription adjusted by {days} days for user {user_id} by {actor_id}; "
        f"ends {new_end.isoformat()}"
    )
    return refresh_user_entitlement(store, user_id, "subscription_end", now)


def set_subscription_end(
    store: UserRoleStore,
    user_id: str,
    end,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CellUpdateResult:
    """Set an absolute end date. A free user given a future date becomes premium."""
    now = ensure_utc(now) or utcnow()

    try:
        end_at = parse_timestamp(end)
    except ValueError:
        raise ValidationError(f"Invalid subscription end date '{end}'")
    if end_at is None:
        raise ValidationError("subscription end date is required")

    user = get_user_or_404(store, user_id)

    fields = {"subscription_end": end_at}
    if end_at > now and user.subscription_tier == SubscriptionTier.free:
        fields["subscription_tier"] = SubscriptionTier.premium
        fields["subscription_start"] = now

    store.update_user(user_id, fields)
    logger.info(
        f"Subscription end set to {end_at.isoformat()} for user {user_id} by {actor_id}"
    )
    return refresh_user_entitlement(store, user_id, "subscription_end", now)

# tests/test_subscription_helpers.py

"""
Tests for premium window adjustments.
"""

import pytest
from datetime import timedelta

from core.cache import cache_get
from core.errors import ValidationError, NotFoundError
from core.subscription_helpers import (
    adjust_subscription_time,
    set_subscription_end,
    subscription_status,
)
from models.enums import SubscriptionTier
from models.user import User


def test_adjust_extends_existing_window(user_store, now):
    user_store.add(User(id="u1", subscription_tier="premium", subscription_end=now + timedelta(days=10)))

    result = adjust_subscription_time(user_store, "u1", 30, actor_id="admin-1", now=now)

    assert user_store.users["u1"].subscription_end == now + timedelta(days=40)
    assert result.entitlement.tier == SubscriptionTier.premium


def test_adjust_free_user_becomes_premium(user_store, now):
    user_store.add(User(id="u1"))

    adjust_subscription_time(user_store, "u1", 7, now=now)

    user = user_store.users["u1"]
    assert user.subscription_tier == SubscriptionTier.premium
    assert user.subscription_start == now
    assert user.subscription_end == now + timedelta(days=7)


def test_adjust_expired_window_counts_from_now(user_store, now):
    user_store.add(User(id="u1", subscription_tier="premium", subscription_end=now - timedelta(days=5)))

    adjust_subscription_time(user_store, "u1", 3, now=now)

    assert user_store.users["u1"].subscription_end == now + timedelta(days=3)


def test_negative_days_shorten_window(user_store, now):
    user_store.add(User(id="u1", subscription_tier="premium", subscription_end=now + timedelta(days=2)))

    result = adjust_subscription_time(user_store, "u1", -5, now=now)

    assert result.entitlement.tier == SubscriptionTier.free


def test_zero_days_rejected(user_store, now):
    user_store.add(User(id="u1"))

    with pytest.raises(ValidationError):
        adjust_subscription_time(user_store, "u1", 0, now=now)

    assert user_store.mutations == []


def test_adjust_unknown_user(user_store, now):
    with pytest.raises(NotFoundError):
        adjust_subscription_time(user_store, "missing", 5, now=now)


def test_set_subscription_end(user_store, now):
    user_store.add(User(id="u1"))

    result = set_subscription_end(user_store, "u1", (now + timedelta(days=90)).isoformat(), now=now)

    assert user_store.users["u1"].subscription_tier == SubscriptionTier.premium
    assert result.entitlement.tier == SubscriptionTier.premium
    assert cache_get("entitlement:u1").tier == SubscriptionTier.premium


def test_set_subscription_end_invalid(user_store, now):
    user_store.add(User(id="u1"))

    with pytest.raises(ValidationError):
        set_subscription_end(user_store, "u1", "next tuesday", now=now)


def test_subscription_status(now):
    user = User(id="u1", subscription_tier="premium", subscription_end=now + timedelta(days=2, hours=1))

    status = subscription_status(user, now)

    assert status.is_premium is True
    assert status.is_active is True
    assert status.remaining_days == 3


def test_subscription_status_expired(now):
    user = User(id="u1", subscription_tier="premium", subscription_end=now - timedelta(days=1))

    status = subscription_status(user, now)

    assert status.is_active is False
    assert status.remaining_days == 0

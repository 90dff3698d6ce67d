# tests/test_supabase_stores.py

"""
Tests for the Supabase store adapters against a mocked client.
"""

import pytest
from datetime import timedelta
from unittest.mock import Mock

from core.errors import StoreError
from core.supabase_stores import SupabaseUserRoleStore, SupabaseReviewPostStore
from models.enums import PrimaryRole, ReviewStatus, PublicationAction
from models.review import PublicationEvent


def _query(data=None, error=None):
    """Chainable PostgREST query mock."""
    query = Mock()
    for method in ("select", "eq", "in_", "lt", "lte", "order", "range", "limit", "update", "insert", "ilike"):
        getattr(query, method).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = Mock(data=data)
    return query


def _client(tables, app_metadata=None):
    client = Mock()
    client.table.side_effect = lambda name: tables[name]
    client.auth.admin.get_user_by_id.return_value = Mock(
        user=Mock(app_metadata=app_metadata or {})
    )
    return client


PRACTITIONER_ROW = {
    "id": "u1",
    "full_name": "Dr. Ana",
    "role": "practitioner",
    "subscription_tier": "premium",
    "subscription_starts_at": "2026-01-01T00:00:00Z",
    "subscription_ends_at": "2026-12-31T00:00:00+00:00",
    "is_active": True,
}

GRANT_ROW = {
    "role_name": "admin",
    "granted_by": "admin-1",
    "granted_at": "2026-02-01T00:00:00Z",
    "expires_at": None,
}


# -----------------------------------------------------
# Users
# -----------------------------------------------------
def test_get_user_maps_columns_grants_and_claims():
    client = _client(
        {"Practitioners": _query([PRACTITIONER_ROW]), "UserRoles": _query([GRANT_ROW])},
        app_metadata={"role": "practitioner", "subscription_tier": "free"},
    )

    user = SupabaseUserRoleStore(client).get_user("u1")

    assert user.primary_role == PrimaryRole.practitioner
    assert user.subscription_end.year == 2026
    assert user.subscription_end.tzinfo is not None
    assert [g.role_name for g in user.additional_roles] == ["admin"]
    assert user.claims_mirror.subscription_tier == "free"


def test_get_user_missing_returns_none():
    client = _client({"Practitioners": _query([])})

    assert SupabaseUserRoleStore(client).get_user("missing") is None


def test_get_user_claims_failure_leaves_mirror_empty():
    client = _client({"Practitioners": _query([PRACTITIONER_ROW]), "UserRoles": _query([])})
    client.auth.admin.get_user_by_id.side_effect = Exception("auth down")

    user = SupabaseUserRoleStore(client).get_user("u1")

    assert user.claims_mirror is None


def test_store_failure_raises_store_error():
    client = _client({"Practitioners": _query(error=Exception("connection reset"))})

    with pytest.raises(StoreError) as exc_info:
        SupabaseUserRoleStore(client).get_user("u1")

    assert "connection reset" in exc_info.value.message
    assert exc_info.value.status_code == 503


def test_update_user_maps_domain_fields_to_columns(now):
    practitioners = _query([PRACTITIONER_ROW])
    client = _client({"Practitioners": practitioners})

    SupabaseUserRoleStore(client).update_user(
        "u1",
        {"primary_role": PrimaryRole.admin, "subscription_end": now + timedelta(days=1)},
    )

    practitioners.update.assert_called_once_with({
        "role": "admin",
        "subscription_ends_at": (now + timedelta(days=1)).isoformat(),
    })
    practitioners.eq.assert_called_with("id", "u1")


def test_update_user_rejects_unknown_fields():
    client = _client({"Practitioners": _query([])})

    with pytest.raises(ValueError):
        SupabaseUserRoleStore(client).update_user("u1", {"email": "x@example.com"})


def test_grant_role_inserts_then_retires_previous(now):
    roles = _query([GRANT_ROW])
    client = _client({"UserRoles": roles})

    grant = SupabaseUserRoleStore(client).grant_role("u1", "admin", granted_by="admin-1")

    roles.update.assert_called_once_with({"is_active": False})
    roles.lt.assert_called_once_with("granted_at", roles.insert.call_args.args[0]["granted_at"])
    inserted = roles.insert.call_args.args[0]
    assert inserted["practitioner_id"] == "u1"
    assert inserted["role_name"] == "admin"
    assert inserted["is_active"] is True
    assert grant.role_name == "admin"


def test_grant_role_insert_failure_keeps_previous_grant():
    roles = _query(error=Exception("insert rejected"))
    client = _client({"UserRoles": roles})

    with pytest.raises(StoreError):
        SupabaseUserRoleStore(client).grant_role("u1", "admin", granted_by="admin-1")

    roles.insert.assert_called_once()
    roles.update.assert_not_called()


def test_grant_role_retire_failure_still_returns_new_grant():
    roles = _query()
    roles.execute.side_effect = [Mock(data=[GRANT_ROW]), Exception("timeout")]
    client = _client({"UserRoles": roles})

    grant = SupabaseUserRoleStore(client).grant_role("u1", "admin", granted_by="admin-1")

    assert grant.role_name == "admin"
    assert roles.execute.call_count == 2


def test_revoke_role_reports_whether_a_row_matched():
    assert SupabaseUserRoleStore(_client({"UserRoles": _query([GRANT_ROW])})).revoke_role("u1", "admin") is True
    assert SupabaseUserRoleStore(_client({"UserRoles": _query([])})).revoke_role("u1", "admin") is False


def test_list_users_batches_grants_and_claims():
    other = {**PRACTITIONER_ROW, "id": "u2", "role": "admin"}
    roles = _query([{**GRANT_ROW, "practitioner_id": "u1"}])
    client = _client({"Practitioners": _query([PRACTITIONER_ROW, other]), "UserRoles": roles})
    client.auth.admin.list_users.return_value = [
        Mock(id="u2", app_metadata={"role": "admin", "subscription_tier": "premium"}),
    ]

    users = SupabaseUserRoleStore(client).list_users({"page": 1, "limit": 10})

    assert [u.id for u in users] == ["u1", "u2"]
    assert len(users[0].additional_roles) == 1
    assert users[1].additional_roles == []
    assert users[0].claims_mirror is None
    assert users[1].claims_mirror.role == "admin"
    roles.in_.assert_called_once_with("practitioner_id", ["u1", "u2"])


def test_list_users_pages_through_auth_users(monkeypatch):
    monkeypatch.setattr("core.supabase_stores.AUTH_USERS_PER_PAGE", 1)
    other = {**PRACTITIONER_ROW, "id": "u2"}
    client = _client({"Practitioners": _query([PRACTITIONER_ROW, other]), "UserRoles": _query([])})
    client.auth.admin.list_users.side_effect = [
        [Mock(id="u2", app_metadata={"role": "practitioner", "subscription_tier": "premium"})],
        [Mock(id="u1", app_metadata={"role": "practitioner", "subscription_tier": "premium"})],
    ]

    users = SupabaseUserRoleStore(client).list_users()

    assert [u.claims_mirror.role for u in users] == ["practitioner", "practitioner"]
    assert client.auth.admin.list_users.call_count == 2
    client.auth.admin.list_users.assert_called_with(page=2, per_page=1)


# -----------------------------------------------------
# Reviews / posts
# -----------------------------------------------------
REVIEW_ROW = {
    "id": 42,
    "title": "Review",
    "access_level": "premium",
    "review_status": "scheduled",
    "scheduled_publish_at": "2026-03-01T10:00:00Z",
    "published_at": None,
    "community_post_id": None,
    "cover_image_url": None,
}


def test_get_review_maps_status_column():
    client = _client({"Reviews": _query([REVIEW_ROW])})

    review = SupabaseReviewPostStore(client).get_review("42")

    assert review.id == "42"
    assert review.status == ReviewStatus.scheduled


def test_update_review_writes_review_status():
    reviews = _query([{**REVIEW_ROW, "review_status": "published"}])
    client = _client({"Reviews": reviews})

    review = SupabaseReviewPostStore(client).update_review(
        "42", {"status": ReviewStatus.published, "scheduled_publish_at": None}
    )

    reviews.update.assert_called_once_with({"review_status": "published", "scheduled_publish_at": None})
    assert review.status == ReviewStatus.published


def test_list_scheduled_reviews_filters_on_status_and_date(now):
    reviews = _query([REVIEW_ROW])
    client = _client({"Reviews": reviews})

    result = SupabaseReviewPostStore(client).list_scheduled_reviews(now)

    assert len(result) == 1
    reviews.eq.assert_called_with("review_status", "scheduled")
    reviews.lte.assert_called_with("scheduled_publish_at", now.isoformat())


def test_create_post_inserts_with_review_id():
    posts = _query([{"id": 7, "review_id": 42, "title": "Post", "post_status": "draft",
                     "visibility_level": "hidden"}])
    client = _client({"CommunityPosts": posts})

    post = SupabaseReviewPostStore(client).create_post("42", {"title": "Post"})

    assert posts.insert.call_args.args[0] == {"title": "Post", "review_id": "42"}
    assert post.id == "7"
    assert post.review_id == "42"


def test_record_publication_event():
    history = _query([{}])
    client = _client({"Publication_History": history})

    SupabaseReviewPostStore(client).record_publication_event(
        PublicationEvent(review_id="42", action=PublicationAction.published, performed_by="admin-1")
    )

    row = history.insert.call_args.args[0]
    assert row["action"] == "published"
    assert row["review_id"] == "42"

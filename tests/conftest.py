# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

The store contracts are implemented in memory so the core can be exercised
without Supabase. Individual calls can be made to fail through `fail_on`.
"""

import pytest
from datetime import datetime, timezone
from fastapi.testclient import TestClient
from unittest.mock import Mock
from typing import Dict, Generator, List, Optional, Any

from core.config import settings
from core.errors import StoreError
from core.stores import UserRoleStore, ReviewPostStore
from core.utils import utcnow
from dependencies.auth import (
    CurrentUser,
    get_current_user,
    get_user_store,
    get_review_store,
)
from main import create_app
from models.user import User, RoleGrant
from models.review import Review, CommunityPost, PublicationEvent


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================
# IN-MEMORY STORES
# ============================================================

class InMemoryUserRoleStore(UserRoleStore):

    def __init__(self):
        self.users: Dict[str, User] = {}
        self.fail_on: set = set()  # {(method, user_id)}
        self.calls: List[tuple] = []

    def add(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def _check(self, method: str, user_id: str):
        self.calls.append((method, user_id))
        if (method, user_id) in self.fail_on:
            raise StoreError(method, f"simulated failure for {user_id}")

    @property
    def mutations(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("update_user", "grant_role", "revoke_role")]

    def get_user(self, user_id: str) -> Optional[User]:
        self._check("get_user", user_id)
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> None:
        self._check("update_user", user_id)
        self.users[user_id] = self.users[user_id].model_copy(update=fields)

    def grant_role(self, user_id, role_name, expires_at=None, granted_by=None) -> RoleGrant:
        self._check("grant_role", user_id)
        user = self.users[user_id]
        grant = RoleGrant(
            role_name=role_name,
            granted_at=utcnow(),
            expires_at=expires_at,
            granted_by=granted_by,
        )
        kept = [g for g in user.additional_roles if g.role_name != role_name]
        self.users[user_id] = user.model_copy(update={"additional_roles": kept + [grant]})
        return grant

    def revoke_role(self, user_id: str, role_name: str) -> bool:
        self._check("revoke_role", user_id)
        user = self.users[user_id]
        kept = [g for g in user.additional_roles if g.role_name != role_name]
        if len(kept) == len(user.additional_roles):
            return False
        self.users[user_id] = user.model_copy(update={"additional_roles": kept})
        return True

    def list_active_grants(self, user_id: str) -> List[RoleGrant]:
        self._check("list_active_grants", user_id)
        return list(self.users[user_id].additional_roles)

    def list_users(self, filters=None) -> List[User]:
        filters = filters or {}
        users = list(self.users.values())
        if filters.get("role"):
            users = [u for u in users if u.primary_role.value == filters["role"]]
        if filters.get("subscription_tier"):
            users = [u for u in users if u.subscription_tier.value == filters["subscription_tier"]]
        return [u.model_copy(deep=True) for u in users]


class InMemoryReviewPostStore(ReviewPostStore):

    def __init__(self):
        self.reviews: Dict[str, Review] = {}
        self.posts: Dict[str, CommunityPost] = {}
        self.events: List[PublicationEvent] = []
        self.fail_on: set = set()  # {(method, id)}
        self._next_id = 1

    def _check(self, method: str, item_id: str):
        if (method, item_id) in self.fail_on:
            raise StoreError(method, f"simulated failure for {item_id}")

    def add_review(self, review: Review) -> Review:
        self.reviews[review.id] = review
        return review

    def add_post(self, post: CommunityPost) -> CommunityPost:
        self.posts[post.id] = post
        return post

    def get_review(self, review_id):
        self._check("get_review", review_id)
        review = self.reviews.get(review_id)
        return review.model_copy() if review else None

    def update_review(self, review_id, fields):
        self._check("update_review", review_id)
        self.reviews[review_id] = self.reviews[review_id].model_copy(update=fields)
        return self.reviews[review_id].model_copy()

    def get_post_by_review(self, review_id):
        for post in self.posts.values():
            if post.review_id == review_id:
                return post.model_copy()
        return None

    def update_post(self, post_id, fields):
        self._check("update_post", post_id)
        self.posts[post_id] = self.posts[post_id].model_copy(update=fields)
        return self.posts[post_id].model_copy()

    def create_post(self, review_id, fields):
        self._check("create_post", review_id)
        post_id = f"post-{self._next_id}"
        self._next_id += 1
        post = CommunityPost(id=post_id, review_id=review_id, **fields)
        self.posts[post_id] = post
        return post.model_copy()

    def list_scheduled_reviews(self, before):
        return [
            r for r in self.reviews.values()
            if r.status == "scheduled" and r.scheduled_publish_at and r.scheduled_publish_at <= before
        ]

    def list_scheduled_posts(self, before):
        return [
            p for p in self.posts.values()
            if p.post_status == "scheduled" and p.scheduled_publish_at and p.scheduled_publish_at <= before
        ]

    def record_publication_event(self, event):
        self._check("record_publication_event", event.review_id)
        self.events.append(event)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def user_store() -> InMemoryUserRoleStore:
    store = InMemoryUserRoleStore()
    store.add(User(id="admin-1", primary_role="admin", full_name="Admin"))
    return store


@pytest.fixture
def review_store() -> InMemoryReviewPostStore:
    return InMemoryReviewPostStore()


@pytest.fixture
def mock_current_user():
    """The authenticated caller used by the API tests."""
    return CurrentUser(id="admin-1", email="admin@example.com")


@pytest.fixture(scope="function")
def app(user_store, review_store, mock_current_user):
    """Create a test FastAPI application instance with in-memory stores."""
    app = create_app()
    app.dependency_overrides[get_current_user] = lambda: mock_current_user
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_review_store] = lambda: review_store
    return app


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = Mock()
    mock_table = Mock()
    mock_client.table.return_value = mock_table
    return mock_client


@pytest.fixture(autouse=True)
def no_bulk_delay(monkeypatch):
    monkeypatch.setattr(settings, "BULK_OPERATION_DELAY_SECONDS", 0)


@pytest.fixture(autouse=True)
def reset_cache():
    """Reset cache before each test."""
    from core.cache import cache_clear
    cache_clear()
    yield
    cache_clear()

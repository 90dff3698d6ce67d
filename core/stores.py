# core/stores.py

"""
Abstract contracts for the persistent store.

The core only talks to these interfaces; core.supabase_stores implements them
over Supabase and the tests implement them in memory. Implementations raise
core.errors.StoreError for collaborator failures and return None (never
raise) for rows that do not exist.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Dict, Any

from models.user import User, RoleGrant
from models.review import Review, CommunityPost, PublicationEvent


class UserRoleStore(ABC):
    """Practitioner profiles + time-bounded additional role grants."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        """Profile, unrevoked grants (expired included) and claims mirror."""

    @abstractmethod
    def update_user(self, user_id: str, fields: Dict[str, Any]) -> None:
        """Write profile fields (role, subscription_tier, subscription window...)."""

    @abstractmethod
    def grant_role(
        self,
        user_id: str,
        role_name: str,
        expires_at: Optional[datetime] = None,
        granted_by: Optional[str] = None,
    ) -> RoleGrant:
        """Create a grant, replacing any unrevoked grant with the same name."""

    @abstractmethod
    def revoke_role(self, user_id: str, role_name: str) -> bool:
        """Revoke the unrevoked grant(s) with that name. False when none existed."""

    @abstractmethod
    def list_active_grants(self, user_id: str) -> List[RoleGrant]:
        """Unrevoked grants; expiry is judged by the resolver, not here."""

    @abstractmethod
    def list_users(self, filters: Optional[Dict[str, Any]] = None) -> List[User]:
        ...


class ReviewPostStore(ABC):
    """Reviews, their community posts and the publication history."""

    @abstractmethod
    def get_review(self, review_id: str) -> Optional[Review]:
        ...

    @abstractmethod
    def update_review(self, review_id: str, fields: Dict[str, Any]) -> Review:
        ...

    @abstractmethod
    def get_post_by_review(self, review_id: str) -> Optional[CommunityPost]:
        ...

    @abstractmethod
    def update_post(self, post_id: str, fields: Dict[str, Any]) -> CommunityPost:
        ...

    @abstractmethod
    def create_post(self, review_id: str, fields: Dict[str, Any]) -> CommunityPost:
        ...

    @abstractmethod
    def list_scheduled_reviews(self, before: datetime) -> List[Review]:
        """Reviews stored as scheduled with scheduled_publish_at <= before."""

    @abstractmethod
    def list_scheduled_posts(self, before: datetime) -> List[CommunityPost]:
        """Posts stored as scheduled with scheduled_publish_at <= before."""

    @abstractmethod
    def record_publication_event(self, event: PublicationEvent) -> None:
        ...

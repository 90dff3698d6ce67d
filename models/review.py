# models/review.py

from typing import Optional, Any, Dict
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from core.utils import ensure_utc
from models.enums import (
    AccessLevel,
    ReviewStatus,
    PostStatus,
    VisibilityLevel,
    PostType,
    PostCategory,
    PublicationAction,
    EntityType,
)


# ===============================================================
# REVIEW
# ===============================================================

class Review(BaseModel):
    id: str
    title: Optional[str] = None
    access_level: AccessLevel = AccessLevel.public
    status: ReviewStatus = ReviewStatus.draft
    scheduled_publish_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    community_post_id: Optional[str] = None  # weak back-reference
    cover_image_url: Optional[str] = None

    @field_validator("scheduled_publish_at", "published_at")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)


# ===============================================================
# COMMUNITY POST
# ===============================================================

class CommunityPost(BaseModel):
    id: str
    review_id: str
    title: Optional[str] = None
    content: str = ""
    category: PostCategory = PostCategory.review
    post_type: PostType = PostType.image
    admin_notes: Optional[str] = None
    image_url: Optional[str] = None
    post_status: PostStatus = PostStatus.draft
    visibility_level: VisibilityLevel = VisibilityLevel.hidden
    scheduled_publish_at: Optional[datetime] = None
    publish_with_review: bool = False

    @field_validator("scheduled_publish_at")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)


class CommunityPostFields(BaseModel):
    """Editable content of a post. Status is never set through this model."""
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[PostCategory] = None
    post_type: Optional[PostType] = None
    admin_notes: Optional[str] = None
    image_url: Optional[str] = None


# ===============================================================
# TRANSITION RESULTS
# ===============================================================

class ReviewTransitionResult(BaseModel):
    review: Review
    post: Optional[CommunityPost] = None
    post_visible: bool = False


class PostTransitionResult(BaseModel):
    post: CommunityPost
    review: Review
    post_visible: bool = False


class PublicationEvent(BaseModel):
    """One Publication_History row."""
    review_id: str
    action: PublicationAction
    performed_by: str
    notes: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DueTransition(BaseModel):
    entity_type: EntityType
    id: str
    review_id: str  # posts are addressed through their review
    target_state: str = "published"
    scheduled_publish_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return f"{self.entity_type.value}:{self.id}"

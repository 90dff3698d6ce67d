# models/admin.py

from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from models.enums import EntityType


class AdminActionRequest(BaseModel):
    """
    One operation id plus its target. User actions need user_id;
    publication actions need review_id (posts are addressed by their review).
    """
    action: str
    user_id: Optional[str] = None
    review_id: Optional[str] = None
    entity_type: EntityType = EntityType.review
    role_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None
    actor_id: Optional[str] = None


class CellUpdateRequest(BaseModel):
    data_source: str
    value: Optional[str] = None
    current_role: Optional[str] = None
    role_name: Optional[str] = None
    expires_at: Optional[datetime] = None


class SubscriptionAdjustRequest(BaseModel):
    days: int


class SubscriptionEndRequest(BaseModel):
    subscription_end: datetime


class ScheduleRequest(BaseModel):
    scheduled_publish_at: Optional[datetime] = None


class CommunityPostCreateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    post_type: Optional[str] = None
    admin_notes: Optional[str] = None
    image_url: Optional[str] = None
    policy: str = "draft"
    scheduled_publish_at: Optional[datetime] = None

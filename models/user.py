# models/user.py

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from core.utils import ensure_utc
from models.enums import PrimaryRole, SubscriptionTier


# ===============================================================
# PRACTITIONER PROFILE + ROLE GRANTS
# ===============================================================

class RoleGrant(BaseModel):
    """
    Mirrors one unrevoked row of the UserRoles table.
    An expired grant stays on the user until it is explicitly revoked.
    """
    role_name: str
    granted_at: datetime
    expires_at: Optional[datetime] = None
    granted_by: Optional[str] = None

    @field_validator("granted_at", "expires_at")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class ClaimsMirror(BaseModel):
    """
    Last-known copy of role / tier embedded in the user's signed session
    claims (auth.users app_metadata). Advisory only.
    """
    role: Optional[str] = None
    subscription_tier: Optional[str] = None


class User(BaseModel):
    id: str
    primary_role: PrimaryRole = PrimaryRole.practitioner
    subscription_tier: SubscriptionTier = SubscriptionTier.free
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    additional_roles: List[RoleGrant] = Field(default_factory=list)
    claims_mirror: Optional[ClaimsMirror] = None
    is_active: bool = True
    full_name: Optional[str] = None

    @field_validator("subscription_start", "subscription_end")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)

    def find_grant(self, role_name: str) -> Optional[RoleGrant]:
        return next((g for g in self.additional_roles if g.role_name == role_name), None)


# ===============================================================
# RESOLVED VIEW
# ===============================================================

class EffectiveEntitlement(BaseModel):
    """What the user is actually allowed to do right now."""
    user_id: str
    role: PrimaryRole
    tier: SubscriptionTier
    active_additional_roles: List[RoleGrant] = Field(default_factory=list)
    computed_at: datetime
    # earliest moment this view can change without a write (grant or premium expiry)
    valid_until: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == PrimaryRole.admin

    @property
    def is_premium(self) -> bool:
        return self.tier == SubscriptionTier.premium


class ClaimsSyncStatus(BaseModel):
    role_match: bool
    tier_match: bool


class UserListItem(BaseModel):
    """Row of the admin user table."""
    user: User
    entitlement: EffectiveEntitlement
    claims_sync: ClaimsSyncStatus


class SubscriptionStatusView(BaseModel):
    is_premium: bool
    is_active: bool
    remaining_days: Optional[int] = None
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None


# ===============================================================
# CELL EDITS
# ===============================================================

class CellUpdateContext(BaseModel):
    """
    Everything a single cell edit needs besides the new value.
    `current_role` is the role the admin saw when editing a tier cell.
    """
    actor_id: Optional[str] = None
    current_role: Optional[str] = None
    role_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    now: Optional[datetime] = None

    @field_validator("expires_at", "now")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)


class CellUpdateResult(BaseModel):
    user_id: str
    data_source: str
    entitlement: EffectiveEntitlement
    warnings: List[dict] = Field(default_factory=list)

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from supabase import Client

from core.entitlements import get_effective_entitlement
from core.errors import NotFoundError
from core.logging_config import logger
from core.stores import UserRoleStore, ReviewPostStore
from core.supabase_client import get_supabase_client
from core.supabase_stores import SupabaseUserRoleStore, SupabaseReviewPostStore
from models.user import EffectiveEntitlement


bearer_scheme = HTTPBearer()


# ============================================================
# Current User Model (backend identity)
# ============================================================
class CurrentUser(BaseModel):
    id: str                         # Supabase Auth UID == Practitioners.id
    email: Optional[str] = None
    full_name: Optional[str] = None

    # filled in by requires_admin from the authoritative tables
    entitlement: Optional[EffectiveEntitlement] = None


# ============================================================
# STORE DEPENDENCIES
# ============================================================
def _require_client() -> Client:
    client = get_supabase_client()
    if not client:
        raise HTTPException(500, "Supabase client not configured")
    return client


def get_user_store() -> UserRoleStore:
    return SupabaseUserRoleStore(_require_client())


def get_review_store() -> ReviewPostStore:
    return SupabaseReviewPostStore(_require_client())


# ============================================================
# AUTH DECODING (Supabase: validates JWT)
# ============================================================
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:

    token = credentials.credentials

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    client = _require_client()

    # ---------------------------------------------------------
    # Validate JWT via Supabase GoTrue
    # ---------------------------------------------------------
    try:
        auth_resp = client.auth.get_user(token)
    except Exception:
        raise unauthorized

    if not auth_resp or not auth_resp.user:
        raise unauthorized
    auth_user = auth_resp.user

    metadata = auth_user.user_metadata or {}

    # Role and tier in the token are NOT trusted here; see requires_admin.
    return CurrentUser(
        id=str(auth_user.id),
        email=auth_user.email,
        full_name=metadata.get("full_name"),
    )


# ============================================================
# ADMIN GUARD (effective entitlement, never session claims)
# ============================================================
def requires_admin(
    current_user: CurrentUser = Depends(get_current_user),
    store: UserRoleStore = Depends(get_user_store),
) -> CurrentUser:
    """
    Resolves the caller's entitlement from the profile and active grants.
    A stale claims mirror can neither lock an admin out nor let a demoted
    admin back in.
    """
    try:
        entitlement = get_effective_entitlement(store, current_user.id)
    except NotFoundError:
        logger.warning(f"Admin check for unknown practitioner {current_user.id}")
        raise HTTPException(status_code=403, detail="Admin access required")

    if not entitlement.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")

    current_user.entitlement = entitlement
    return current_user

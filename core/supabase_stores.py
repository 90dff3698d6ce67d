# core/supabase_stores.py

"""
Supabase implementations of the store contracts.

Tables:
  - Practitioners        profile (role, subscription_tier, subscription window)
  - UserRoles            additional role grants (is_active = not revoked)
  - Reviews              review publication state (review_status column)
  - CommunityPosts       post linked to a review
  - Publication_History  audit trail of review transitions

The claims mirror is read from auth.users app_metadata and never written.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import Client

from core.errors import extract_supabase_error, store_error
from core.logging_config import logger
from core.stores import UserRoleStore, ReviewPostStore
from core.utils import serialize_fields, utcnow
from models.user import User, RoleGrant, ClaimsMirror
from models.review import Review, CommunityPost, PublicationEvent


AUTH_USERS_PER_PAGE = 1000

PRACTITIONER_COLUMNS = (
    "id, full_name, role, subscription_tier, "
    "subscription_starts_at, subscription_ends_at, is_active"
)

# domain field → Practitioners column
USER_FIELD_COLUMNS = {
    "primary_role": "role",
    "subscription_tier": "subscription_tier",
    "subscription_start": "subscription_starts_at",
    "subscription_end": "subscription_ends_at",
    "is_active": "is_active",
    "full_name": "full_name",
}

# domain field → Reviews column
REVIEW_FIELD_COLUMNS = {
    "title": "title",
    "access_level": "access_level",
    "status": "review_status",
    "scheduled_publish_at": "scheduled_publish_at",
    "published_at": "published_at",
    "community_post_id": "community_post_id",
}

POST_COLUMNS = {
    "title", "content", "category", "post_type", "admin_notes", "image_url",
    "post_status", "visibility_level", "scheduled_publish_at",
    "publish_with_review", "admin_created_by",
}


def _map_fields(fields: Dict[str, Any], columns: Dict[str, str], entity: str) -> dict:
    unknown = set(fields) - set(columns)
    if unknown:
        raise ValueError(f"Unknown {entity} fields: {sorted(unknown)}")
    return serialize_fields({columns[k]: v for k, v in fields.items()})


def _str_id(value) -> Optional[str]:
    return str(value) if value is not None else None


# -----------------------------------------------------
# Normalize Supabase list_users() result
# -----------------------------------------------------
def extract_user_list(result):
    if isinstance(result, list):
        return result
    if isinstance(result, dict) and "users" in result:
        return result["users"]
    users_attr = getattr(result, "users", None)
    if users_attr is not None:
        return users_attr
    return []


def claims_from_auth_user(auth_user) -> Optional[ClaimsMirror]:
    if auth_user is None:
        return None
    app_meta = getattr(auth_user, "app_metadata", None) or {}
    if "role" not in app_meta and "subscription_tier" not in app_meta:
        return None
    return ClaimsMirror(
        role=app_meta.get("role"),
        subscription_tier=app_meta.get("subscription_tier"),
    )


# ============================================================
# USERS + ROLE GRANTS
# ============================================================

class SupabaseUserRoleStore(UserRoleStore):

    def __init__(self, client: Client):
        self.client = client

    # ---------------------------------------------------------
    # Row → model
    # ---------------------------------------------------------
    @staticmethod
    def _grant_from_row(row: dict) -> RoleGrant:
        return RoleGrant(
            role_name=row["role_name"],
            granted_at=row.get("granted_at") or utcnow(),
            expires_at=row.get("expires_at"),
            granted_by=_str_id(row.get("granted_by")),
        )

    @staticmethod
    def _user_from_row(
        row: dict,
        grants: List[RoleGrant],
        claims: Optional[ClaimsMirror],
    ) -> User:
        return User(
            id=str(row["id"]),
            full_name=row.get("full_name"),
            primary_role=row.get("role") or "practitioner",
            subscription_tier=row.get("subscription_tier") or "free",
            subscription_start=row.get("subscription_starts_at"),
            subscription_end=row.get("subscription_ends_at"),
            is_active=row.get("is_active", True) is not False,
            additional_roles=grants,
            claims_mirror=claims,
        )

    def _fetch_claims(self, user_id: str) -> Optional[ClaimsMirror]:
        try:
            resp = self.client.auth.admin.get_user_by_id(user_id)
        except Exception as e:
            # Claims are advisory; a missing mirror is reported downstream.
            logger.warning(f"Could not read session claims for user {user_id}: {e}")
            return None
        return claims_from_auth_user(getattr(resp, "user", None))

    # ---------------------------------------------------------
    # Contract
    # ---------------------------------------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        try:
            result = (
                self.client.table("Practitioners")
                .select(PRACTITIONER_COLUMNS)
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to fetch user {user_id}") from e

        if not result.data:
            return None

        grants = self.list_active_grants(user_id)
        claims = self._fetch_claims(user_id)
        return self._user_from_row(result.data[0], grants, claims)

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> None:
        data = _map_fields(fields, USER_FIELD_COLUMNS, "user")
        try:
            (
                self.client.table("Practitioners")
                .update(data)
                .eq("id", user_id)
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to update user {user_id}") from e

    def grant_role(
        self,
        user_id: str,
        role_name: str,
        expires_at: Optional[datetime] = None,
        granted_by: Optional[str] = None,
    ) -> RoleGrant:
        row = serialize_fields({
            "practitioner_id": user_id,
            "role_name": role_name,
            "granted_by": granted_by,
            "granted_at": utcnow(),
            "expires_at": expires_at,
            "is_active": True,
        })
        try:
            result = self.client.table("UserRoles").insert(row).execute()
        except Exception as e:
            raise store_error(e, f"Failed to grant role '{role_name}' to {user_id}") from e

        # Older grants with the same name are retired only once the new row exists.
        # A leftover active duplicate still grants the same role and is cleared by
        # the next grant or revoke.
        try:
            (
                self.client.table("UserRoles")
                .update({"is_active": False})
                .eq("practitioner_id", user_id)
                .eq("role_name", role_name)
                .eq("is_active", True)
                .lt("granted_at", row["granted_at"])
                .execute()
            )
        except Exception as e:
            logger.warning(
                f"Previous '{role_name}' grant for {user_id} not retired: {extract_supabase_error(e)}"
            )

        return self._grant_from_row(result.data[0] if result.data else row)

    def revoke_role(self, user_id: str, role_name: str) -> bool:
        try:
            result = (
                self.client.table("UserRoles")
                .update({"is_active": False})
                .eq("practitioner_id", user_id)
                .eq("role_name", role_name)
                .eq("is_active", True)
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to revoke role '{role_name}' from {user_id}") from e

        return bool(result.data)

    def list_active_grants(self, user_id: str) -> List[RoleGrant]:
        try:
            result = (
                self.client.table("UserRoles")
                .select("role_name, granted_by, granted_at, expires_at")
                .eq("practitioner_id", user_id)
                .eq("is_active", True)
                .order("granted_at")
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to list role grants for {user_id}") from e

        return [self._grant_from_row(r) for r in (result.data or [])]

    def _fetch_claims_map(self, user_ids: List[str]) -> Dict[str, ClaimsMirror]:
        """
        Session claims for the listed users. The auth listing is paged, so keep
        reading pages until every id is found or the listing runs out.
        """
        wanted = set(user_ids)
        claims_map: Dict[str, ClaimsMirror] = {}
        page = 1
        try:
            while wanted:
                auth_users = extract_user_list(
                    self.client.auth.admin.list_users(page=page, per_page=AUTH_USERS_PER_PAGE)
                )
                for auth_user in auth_users:
                    uid = str(auth_user.id)
                    if uid in wanted:
                        claims_map[uid] = claims_from_auth_user(auth_user)
                        wanted.discard(uid)
                if len(auth_users) < AUTH_USERS_PER_PAGE:
                    break
                page += 1
        except Exception as e:
            logger.warning(f"Could not read session claims for user list: {e}")

        return claims_map

    def list_users(self, filters: Optional[Dict[str, Any]] = None) -> List[User]:
        filters = filters or {}
        page = max(int(filters.get("page") or 1), 1) - 1
        limit = min(int(filters.get("limit") or 20), 100)

        try:
            query = self.client.table("Practitioners").select(PRACTITIONER_COLUMNS)
            if filters.get("role"):
                query = query.eq("role", filters["role"])
            if filters.get("subscription_tier"):
                query = query.eq("subscription_tier", filters["subscription_tier"])
            if filters.get("search"):
                query = query.ilike("full_name", f"%{filters['search']}%")
            result = query.range(page * limit, (page + 1) * limit - 1).execute()
        except Exception as e:
            raise store_error(e, "Failed to list users") from e

        rows = result.data or []
        if not rows:
            return []

        user_ids = [str(r["id"]) for r in rows]

        # Batch fetch all unrevoked grants
        grants_map: Dict[str, List[RoleGrant]] = {uid: [] for uid in user_ids}
        try:
            grants_result = (
                self.client.table("UserRoles")
                .select("practitioner_id, role_name, granted_by, granted_at, expires_at")
                .in_("practitioner_id", user_ids)
                .eq("is_active", True)
                .order("granted_at")
                .execute()
            )
        except Exception as e:
            raise store_error(e, "Failed to list role grants") from e

        for row in grants_result.data or []:
            uid = str(row.get("practitioner_id"))
            if uid in grants_map:
                grants_map[uid].append(self._grant_from_row(row))

        claims_map = self._fetch_claims_map(user_ids)

        return [
            self._user_from_row(row, grants_map[str(row["id"])], claims_map.get(str(row["id"])))
            for row in rows
        ]


# ============================================================
# REVIEWS + COMMUNITY POSTS
# ============================================================

class SupabaseReviewPostStore(ReviewPostStore):

    REVIEW_SELECT = (
        "id, title, access_level, review_status, scheduled_publish_at, "
        "published_at, community_post_id, cover_image_url"
    )

    def __init__(self, client: Client):
        self.client = client

    @staticmethod
    def _review_from_row(row: dict) -> Review:
        return Review(
            id=str(row["id"]),
            title=row.get("title"),
            access_level=row.get("access_level") or "public",
            status=row.get("review_status") or "draft",
            scheduled_publish_at=row.get("scheduled_publish_at"),
            published_at=row.get("published_at"),
            community_post_id=_str_id(row.get("community_post_id")),
            cover_image_url=row.get("cover_image_url"),
        )

    @staticmethod
    def _post_from_row(row: dict) -> CommunityPost:
        return CommunityPost(
            id=str(row["id"]),
            review_id=str(row["review_id"]),
            title=row.get("title"),
            content=row.get("content") or "",
            category=row.get("category") or "review",
            post_type=row.get("post_type") or "image",
            admin_notes=row.get("admin_notes"),
            image_url=row.get("image_url"),
            post_status=row.get("post_status") or "draft",
            visibility_level=row.get("visibility_level") or "hidden",
            scheduled_publish_at=row.get("scheduled_publish_at"),
            publish_with_review=bool(row.get("publish_with_review")),
        )

    def get_review(self, review_id: str) -> Optional[Review]:
        try:
            result = (
                self.client.table("Reviews")
                .select(self.REVIEW_SELECT)
                .eq("id", review_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to fetch review {review_id}") from e

        return self._review_from_row(result.data[0]) if result.data else None

    def update_review(self, review_id: str, fields: Dict[str, Any]) -> Review:
        data = _map_fields(fields, REVIEW_FIELD_COLUMNS, "review")
        try:
            result = (
                self.client.table("Reviews")
                .update(data)
                .eq("id", review_id)
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to update review {review_id}") from e

        if not result.data:
            review = self.get_review(review_id)
            if review is None:
                raise store_error(Exception("no row updated"), f"Failed to update review {review_id}")
            return review
        return self._review_from_row(result.data[0])

    def get_post_by_review(self, review_id: str) -> Optional[CommunityPost]:
        try:
            result = (
                self.client.table("CommunityPosts")
                .select("*")
                .eq("review_id", review_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to fetch community post for review {review_id}") from e

        return self._post_from_row(result.data[0]) if result.data else None

    def update_post(self, post_id: str, fields: Dict[str, Any]) -> CommunityPost:
        unknown = set(fields) - POST_COLUMNS
        if unknown:
            raise ValueError(f"Unknown post fields: {sorted(unknown)}")
        try:
            result = (
                self.client.table("CommunityPosts")
                .update(serialize_fields(fields))
                .eq("id", post_id)
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to update community post {post_id}") from e

        if not result.data:
            raise store_error(Exception("no row updated"), f"Failed to update community post {post_id}")
        return self._post_from_row(result.data[0])

    def create_post(self, review_id: str, fields: Dict[str, Any]) -> CommunityPost:
        unknown = set(fields) - POST_COLUMNS
        if unknown:
            raise ValueError(f"Unknown post fields: {sorted(unknown)}")
        row = serialize_fields({**fields, "review_id": review_id})
        try:
            result = self.client.table("CommunityPosts").insert(row).execute()
        except Exception as e:
            raise store_error(e, f"Failed to create community post for review {review_id}") from e

        if not result.data:
            raise store_error(Exception("insert returned no data"), "Failed to create community post")
        return self._post_from_row(result.data[0])

    def list_scheduled_reviews(self, before: datetime) -> List[Review]:
        try:
            result = (
                self.client.table("Reviews")
                .select(self.REVIEW_SELECT)
                .eq("review_status", "scheduled")
                .lte("scheduled_publish_at", before.isoformat())
                .order("scheduled_publish_at")
                .execute()
            )
        except Exception as e:
            raise store_error(e, "Failed to list scheduled reviews") from e

        return [self._review_from_row(r) for r in (result.data or [])]

    def list_scheduled_posts(self, before: datetime) -> List[CommunityPost]:
        try:
            result = (
                self.client.table("CommunityPosts")
                .select("*")
                .eq("post_status", "scheduled")
                .lte("scheduled_publish_at", before.isoformat())
                .order("scheduled_publish_at")
                .execute()
            )
        except Exception as e:
            raise store_error(e, "Failed to list scheduled community posts") from e

        return [self._post_from_row(r) for r in (result.data or [])]

    def record_publication_event(self, event: PublicationEvent) -> None:
        try:
            (
                self.client.table("Publication_History")
                .insert(serialize_fields(event.model_dump()))
                .execute()
            )
        except Exception as e:
            raise store_error(e, f"Failed to record publication history for review {event.review_id}") from e

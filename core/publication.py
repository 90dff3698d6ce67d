# core/publication.py

"""
Publication state machine for reviews and their community posts.

Review:  draft -> scheduled -> published -> archived
         draft -> published, scheduled -> published (override)
         scheduled -> draft (unschedule), scheduled -> scheduled (reschedule)
         archived is terminal.

Post:    draft -> published | scheduled | hidden
         scheduled -> published | hidden
         published <-> hidden

A post's stored status and what end users see are kept apart: see
post_is_visible(). Nothing here copies review state into the post.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from core.errors import (
    AdminCoreError,
    ValidationError,
    NotFoundError,
    PreconditionError,
)
from core.logging_config import logger
from core.stores import ReviewPostStore
from core.utils import utcnow, ensure_utc, parse_timestamp
from models.enums import (
    ReviewStatus,
    PostStatus,
    VisibilityLevel,
    PostPublishPolicy,
    PostCategory,
    PostType,
    PublicationAction,
    EntityType,
)
from models.review import (
    Review,
    CommunityPost,
    CommunityPostFields,
    ReviewTransitionResult,
    PostTransitionResult,
    PublicationEvent,
)


# ============================================================
# DERIVED VISIBILITY
# ============================================================

def post_is_visible(post: Optional[CommunityPost], review: Optional[Review]) -> bool:
    """What end users see: stored post state gated by the owning review."""
    if post is None or review is None:
        return False
    return (
        post.post_status == PostStatus.published
        and post.visibility_level == VisibilityLevel.public
        and review.status == ReviewStatus.published
    )


def validate_post_state(post_status, visibility_level):
    """
    - hidden status => hidden visibility
    - public visibility => published or scheduled status
    """
    status = PostStatus(post_status)
    visibility = VisibilityLevel(visibility_level)

    if status == PostStatus.hidden and visibility != VisibilityLevel.hidden:
        raise ValidationError("A hidden post must have hidden visibility")

    if visibility == VisibilityLevel.public and status not in (
        PostStatus.published,
        PostStatus.scheduled,
    ):
        raise ValidationError(
            f"A {status.value} post cannot have public visibility"
        )


def validate_category(value) -> PostCategory:
    if value is None or value == "":
        return PostCategory.review
    category = PostCategory.parse(value)
    if category is None:
        raise ValidationError(
            f"Invalid category '{value}'. Must be one of {PostCategory.list()}"
        )
    return category


def validate_post_type(value) -> PostType:
    if value is None or value == "":
        return PostType.image
    post_type = PostType.parse(value)
    if post_type is None:
        raise ValidationError(
            f"Invalid post type '{value}'. Must be one of {PostType.list()}"
        )
    return post_type


# ============================================================
# INTERNAL HELPERS
# ============================================================

def _get_review(store: ReviewPostStore, review_id: str) -> Review:
    review = store.get_review(review_id)
    if review is None:
        raise NotFoundError(f"Review {review_id} not found")
    return review


def _get_post(store: ReviewPostStore, review_id: str) -> CommunityPost:
    post = store.get_post_by_review(review_id)
    if post is None:
        raise NotFoundError(f"No community post for review {review_id}")
    return post


def _require_not_archived(review: Review):
    if review.status == ReviewStatus.archived:
        raise PreconditionError(f"Review {review.id} is archived")


def _require_future(scheduled_at, now: datetime) -> datetime:
    try:
        when = parse_timestamp(scheduled_at)
    except ValueError:
        raise ValidationError(f"Invalid scheduled_publish_at '{scheduled_at}'")
    if when is None:
        raise PreconditionError("Scheduling requires a scheduled_publish_at date")
    if when <= now:
        raise PreconditionError(
            f"scheduled_publish_at {when.isoformat()} must be in the future"
        )
    return when


def _require_title(title: Optional[str], what: str):
    if not title or not title.strip():
        raise ValidationError(f"{what} title is required to publish")


def _record(
    store: ReviewPostStore,
    review_id: str,
    action: PublicationAction,
    actor_id: str,
    notes: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """History is an audit trail; a failed write never fails the transition."""
    event = PublicationEvent(
        review_id=review_id,
        action=action,
        performed_by=actor_id,
        notes=notes,
        metadata=metadata or {},
    )
    try:
        store.record_publication_event(event)
    except AdminCoreError as e:
        logger.warning(
            f"Publication history not recorded for review {review_id} ({action.value}): {e.message}"
        )


def _write_post(
    store: ReviewPostStore,
    post: CommunityPost,
    fields: Dict[str, Any],
) -> CommunityPost:
    validate_post_state(
        fields.get("post_status", post.post_status),
        fields.get("visibility_level", post.visibility_level),
    )
    return store.update_post(post.id, fields)


def _review_result(store: ReviewPostStore, review: Review) -> ReviewTransitionResult:
    post = store.get_post_by_review(review.id)
    return ReviewTransitionResult(
        review=review,
        post=post,
        post_visible=post_is_visible(post, review),
    )


def _post_result(post: CommunityPost, review: Review) -> PostTransitionResult:
    return PostTransitionResult(
        post=post,
        review=review,
        post_visible=post_is_visible(post, review),
    )


# ============================================================
# REVIEW TRANSITIONS
# ============================================================

def schedule_review(
    store: ReviewPostStore,
    review_id: str,
    scheduled_at,
    actor_id: str,
    now: Optional[datetime] = None,
) -> ReviewTransitionResult:
    now = ensure_utc(now) or utcnow()
    review = _get_review(store, review_id)

    if review.status not in (ReviewStatus.draft, ReviewStatus.scheduled):
        raise PreconditionError(
            f"Cannot schedule a {review.status.value} review"
        )
    when = _require_future(scheduled_at, now)

    updated = store.update_review(
        review_id,
        {"status": ReviewStatus.scheduled, "scheduled_publish_at": when},
    )
    logger.info(f"Review {review_id} scheduled for {when.isoformat()} by {actor_id}")
    _record(
        store, review_id, PublicationAction.scheduled, actor_id,
        metadata={"scheduled_publish_at": when.isoformat(), "from": review.status.value},
    )
    return _review_result(store, updated)


def publish_review(
    store: ReviewPostStore,
    review_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> ReviewTransitionResult:
    """Immediate publish; overrides a pending schedule."""
    now = ensure_utc(now) or utcnow()
    review = _get_review(store, review_id)

    _require_not_archived(review)
    _require_title(review.title, "Review")

    updated = store.update_review(
        review_id,
        {
            "status": ReviewStatus.published,
            "scheduled_publish_at": None,
            "published_at": now,
        },
    )
    logger.info(f"Review {review_id} published by {actor_id} (was {review.status.value})")
    _record(
        store, review_id, PublicationAction.published, actor_id,
        metadata={"from": review.status.value},
    )

    _sync_post_on_review_publish(store, updated, actor_id)
    return _review_result(store, updated)


def unschedule_review(
    store: ReviewPostStore,
    review_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> ReviewTransitionResult:
    review = _get_review(store, review_id)
    if review.status != ReviewStatus.scheduled:
        raise PreconditionError(
            f"Only scheduled reviews can be unscheduled (review is {review.status.value})"
        )

    updated = store.update_review(
        review_id,
        {"status": ReviewStatus.draft, "scheduled_publish_at": None},
    )
    logger.info(f"Review {review_id} unscheduled by {actor_id}")
    _record(store, review_id, PublicationAction.unpublished, actor_id, notes="unscheduled")
    return _review_result(store, updated)


def archive_review(
    store: ReviewPostStore,
    review_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> ReviewTransitionResult:
    """The post record is left as is; it drops out through post_is_visible."""
    review = _get_review(store, review_id)
    _require_not_archived(review)
    if review.status != ReviewStatus.published:
        raise PreconditionError(
            f"Only published reviews can be archived (review is {review.status.value})"
        )

    updated = store.update_review(review_id, {"status": ReviewStatus.archived})
    logger.info(f"Review {review_id} archived by {actor_id}")
    _record(store, review_id, PublicationAction.archived, actor_id)
    return _review_result(store, updated)


def _sync_post_on_review_publish(store: ReviewPostStore, review: Review, actor_id: str):
    """
    Posts saved with "publish with review" before that policy was stored as
    published are still sitting in draft. Release them now.
    """
    try:
        post = store.get_post_by_review(review.id)
        if post is None or not post.publish_with_review or post.post_status != PostStatus.draft:
            return
        _write_post(
            store,
            post,
            {
                "post_status": PostStatus.published,
                "visibility_level": VisibilityLevel.public,
                "scheduled_publish_at": None,
            },
        )
    except AdminCoreError as e:
        # the review is already live; the post stays as it was
        logger.warning(f"Community post for review {review.id} not released: {e.message}")
        return
    logger.info(f"Community post {post.id} released with review {review.id}")


# ============================================================
# COMMUNITY POST
# ============================================================

def _policy_fields(policy: PostPublishPolicy, scheduled_at, now: datetime) -> Dict[str, Any]:
    if policy == PostPublishPolicy.publish_now:
        return {
            "post_status": PostStatus.published,
            "visibility_level": VisibilityLevel.public,
            "publish_with_review": False,
        }
    if policy == PostPublishPolicy.publish_with_review:
        return {
            "post_status": PostStatus.published,
            "visibility_level": VisibilityLevel.public,
            "publish_with_review": True,
        }
    if policy == PostPublishPolicy.scheduled:
        return {
            "post_status": PostStatus.scheduled,
            "visibility_level": VisibilityLevel.hidden,
            "scheduled_publish_at": _require_future(scheduled_at, now),
            "publish_with_review": False,
        }
    if policy == PostPublishPolicy.hidden:
        return {
            "post_status": PostStatus.hidden,
            "visibility_level": VisibilityLevel.hidden,
            "publish_with_review": False,
        }
    return {
        "post_status": PostStatus.draft,
        "visibility_level": VisibilityLevel.hidden,
        "publish_with_review": False,
    }


def _content_fields(fields: Union[CommunityPostFields, Dict[str, Any], None]) -> Dict[str, Any]:
    if fields is None:
        return {}
    if isinstance(fields, CommunityPostFields):
        data = fields.model_dump(exclude_unset=True)
    else:
        data = dict(fields)

    unknown = set(data) - set(CommunityPostFields.model_fields)
    if unknown:
        raise ValidationError(f"Fields {sorted(unknown)} cannot be edited on a post")

    if "category" in data:
        data["category"] = validate_category(data["category"])
    if "post_type" in data:
        data["post_type"] = validate_post_type(data["post_type"])
    return data


def create_post(
    store: ReviewPostStore,
    review_id: str,
    fields: Union[CommunityPostFields, Dict[str, Any], None],
    policy=PostPublishPolicy.draft,
    actor_id: Optional[str] = None,
    scheduled_at=None,
    now: Optional[datetime] = None,
) -> PostTransitionResult:
    now = ensure_utc(now) or utcnow()

    publish_policy = PostPublishPolicy.parse(policy)
    if publish_policy is None:
        raise ValidationError(
            f"Invalid publish policy '{policy}'. Must be one of {PostPublishPolicy.list()}"
        )

    review = _get_review(store, review_id)
    _require_not_archived(review)

    if store.get_post_by_review(review_id) is not None:
        raise PreconditionError(f"Review {review_id} already has a community post")

    data = _content_fields(fields)
    title = data.get("title") or review.title
    if not title or not title.strip():
        raise ValidationError("Community post title is required")

    data["title"] = title
    data.setdefault("content", "")
    data.setdefault("category", PostCategory.review)
    data.setdefault("post_type", PostType.image)
    data.update(_policy_fields(publish_policy, scheduled_at, now))
    if actor_id:
        data["admin_created_by"] = actor_id

    validate_post_state(data["post_status"], data["visibility_level"])
    post = store.create_post(review_id, data)

    # weak back-reference; the post stays valid without it
    try:
        review = store.update_review(review_id, {"community_post_id": post.id})
    except AdminCoreError as e:
        logger.warning(f"Could not link post {post.id} to review {review_id}: {e.message}")

    logger.info(
        f"Community post {post.id} created for review {review_id} "
        f"({publish_policy.value}) by {actor_id}"
    )
    _record(
        store, review_id, PublicationAction.created, actor_id or "unknown",
        metadata={"entity_type": EntityType.community_post.value, "post_id": post.id,
                  "policy": publish_policy.value},
    )
    return _post_result(post, review)


def update_post(
    store: ReviewPostStore,
    review_id: str,
    fields: Union[CommunityPostFields, Dict[str, Any]],
) -> PostTransitionResult:
    """Content edits only; status and visibility are untouched."""
    review = _get_review(store, review_id)
    post = _get_post(store, review_id)

    data = _content_fields(fields)
    if "title" in data and (not data["title"] or not data["title"].strip()):
        raise ValidationError("Community post title cannot be empty")
    if not data:
        return _post_result(post, review)

    updated = store.update_post(post.id, data)
    logger.info(f"Community post {post.id} updated: {sorted(data)}")
    return _post_result(updated, review)


def publish_post(
    store: ReviewPostStore,
    review_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> PostTransitionResult:
    review = _get_review(store, review_id)
    post = _get_post(store, review_id)

    _require_not_archived(review)
    _require_title(post.title, "Community post")

    updated = _write_post(
        store,
        post,
        {
            "post_status": PostStatus.published,
            "visibility_level": VisibilityLevel.public,
            "scheduled_publish_at": None,
        },
    )
    logger.info(f"Community post {post.id} published by {actor_id} (was {post.post_status.value})")
    _record(
        store, review_id, PublicationAction.published, actor_id,
        metadata={"entity_type": EntityType.community_post.value, "post_id": post.id},
    )
    return _post_result(updated, review)


def schedule_post(
    store: ReviewPostStore,
    review_id: str,
    scheduled_at,
    actor_id: str,
    now: Optional[datetime] = None,
) -> PostTransitionResult:
    now = ensure_utc(now) or utcnow()
    review = _get_review(store, review_id)
    post = _get_post(store, review_id)

    _require_not_archived(review)
    if post.post_status not in (PostStatus.draft, PostStatus.scheduled):
        raise PreconditionError(f"Cannot schedule a {post.post_status.value} post")
    when = _require_future(scheduled_at, now)

    updated = _write_post(
        store,
        post,
        {
            "post_status": PostStatus.scheduled,
            "visibility_level": VisibilityLevel.hidden,
            "scheduled_publish_at": when,
        },
    )
    logger.info(f"Community post {post.id} scheduled for {when.isoformat()} by {actor_id}")
    _record(
        store, review_id, PublicationAction.scheduled, actor_id,
        metadata={"entity_type": EntityType.community_post.value, "post_id": post.id,
                  "scheduled_publish_at": when.isoformat()},
    )
    return _post_result(updated, review)


def hide_post(
    store: ReviewPostStore,
    review_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> PostTransitionResult:
    """Allowed from any state; the review link is kept."""
    review = _get_review(store, review_id)
    post = _get_post(store, review_id)

    updated = _write_post(
        store,
        post,
        {
            "post_status": PostStatus.hidden,
            "visibility_level": VisibilityLevel.hidden,
            "scheduled_publish_at": None,
        },
    )
    logger.info(f"Community post {post.id} hidden by {actor_id}")
    _record(
        store, review_id, PublicationAction.unpublished, actor_id,
        notes="hidden",
        metadata={"entity_type": EntityType.community_post.value, "post_id": post.id},
    )
    return _post_result(updated, review)


def unhide_post(
    store: ReviewPostStore,
    review_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> PostTransitionResult:
    review = _get_review(store, review_id)
    post = _get_post(store, review_id)

    if post.post_status != PostStatus.hidden:
        raise PreconditionError(
            f"Only hidden posts can be unhidden (post is {post.post_status.value})"
        )
    _require_not_archived(review)

    updated = _write_post(
        store,
        post,
        {
            "post_status": PostStatus.published,
            "visibility_level": VisibilityLevel.public,
        },
    )
    logger.info(f"Community post {post.id} unhidden by {actor_id}")
    _record(
        store, review_id, PublicationAction.published, actor_id,
        notes="unhidden",
        metadata={"entity_type": EntityType.community_post.value, "post_id": post.id},
    )
    return _post_result(updated, review)


def post_visibility(store: ReviewPostStore, review_id: str) -> PostTransitionResult:
    """Read-only view of a review's post and its derived visibility."""
    review = _get_review(store, review_id)
    post = _get_post(store, review_id)
    return _post_result(post, review)

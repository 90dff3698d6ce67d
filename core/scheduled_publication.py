# core/scheduled_publication.py

"""
Finds scheduled reviews and posts whose date has passed.

due_transitions() only reads. run_due_transitions() is what the periodic job
calls to flip each due item through the publication state machine.
"""

from datetime import datetime
from typing import List, Optional

from core.bulk_operations import run_sequential
from core.config import settings
from core.logging_config import logger
from core.publication import publish_review, publish_post
from core.stores import ReviewPostStore
from core.utils import utcnow, ensure_utc
from models.bulk import BulkOperationResult
from models.enums import ReviewStatus, PostStatus, EntityType
from models.review import DueTransition


def due_transitions(store: ReviewPostStore, now: Optional[datetime] = None) -> List[DueTransition]:
    """
    Reviews first, then posts, each ordered by scheduled_publish_at.

    The store filter is re-checked here: an item is due only if it is still
    scheduled and its date is at or before `now`.
    """
    now = ensure_utc(now) or utcnow()

    reviews = [
        r for r in store.list_scheduled_reviews(now)
        if r.status == ReviewStatus.scheduled
        and r.scheduled_publish_at is not None
        and r.scheduled_publish_at <= now
    ]
    posts = [
        p for p in store.list_scheduled_posts(now)
        if p.post_status == PostStatus.scheduled
        and p.scheduled_publish_at is not None
        and p.scheduled_publish_at <= now
    ]

    reviews.sort(key=lambda r: r.scheduled_publish_at)
    posts.sort(key=lambda p: p.scheduled_publish_at)

    due = [
        DueTransition(
            entity_type=EntityType.review,
            id=r.id,
            review_id=r.id,
            scheduled_publish_at=r.scheduled_publish_at,
        )
        for r in reviews
    ]
    due.extend(
        DueTransition(
            entity_type=EntityType.community_post,
            id=p.id,
            review_id=p.review_id,
            scheduled_publish_at=p.scheduled_publish_at,
        )
        for p in posts
    )
    return due


def run_due_transitions(
    store: ReviewPostStore,
    now: Optional[datetime] = None,
    actor_id: Optional[str] = None,
) -> BulkOperationResult:
    """
    Publish everything that is due. Each item is isolated the same way bulk
    user operations are; result ids are "{entity_type}:{id}".
    """
    now = ensure_utc(now) or utcnow()
    actor_id = actor_id or settings.SYSTEM_ACTOR_ID

    due = due_transitions(store, now)
    by_key = {d.key: d for d in due}

    def apply_one(key: str):
        item = by_key[key]
        if item.entity_type == EntityType.review:
            publish_review(store, item.id, actor_id, now)
        else:
            publish_post(store, item.review_id, actor_id, now)

    result = run_sequential(list(by_key), apply_one)

    if due:
        logger.info(
            f"Scheduled publication run: due={len(due)} "
            f"published={result.summary.successful} failed={result.summary.failed}"
        )
    return result

# routers/admin_publication.py

from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends

from dependencies.auth import requires_admin, get_review_store, CurrentUser
from core import publication
from core.scheduled_publication import due_transitions, run_due_transitions
from core.stores import ReviewPostStore
from models.admin import ScheduleRequest, CommunityPostCreateRequest
from models.bulk import BulkOperationResult
from models.review import (
    CommunityPostFields,
    DueTransition,
    PostTransitionResult,
    ReviewTransitionResult,
)


router = APIRouter(
    prefix="/admin",
    tags=["Admin Publication"],
)


# -----------------------------------------------------
# REVIEW TRANSITIONS
# -----------------------------------------------------
@router.post(
    "/reviews/{review_id}/publish",
    summary="Admin: Publish a review now",
    response_model=ReviewTransitionResult,
)
def publish_review(
    review_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.publish_review(store, review_id, current_user.id)


@router.post(
    "/reviews/{review_id}/schedule",
    summary="Admin: Schedule a review",
    response_model=ReviewTransitionResult,
)
def schedule_review(
    review_id: str,
    payload: ScheduleRequest,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.schedule_review(
        store, review_id, payload.scheduled_publish_at, current_user.id
    )


@router.post(
    "/reviews/{review_id}/unschedule",
    summary="Admin: Move a scheduled review back to draft",
    response_model=ReviewTransitionResult,
)
def unschedule_review(
    review_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.unschedule_review(store, review_id, current_user.id)


@router.post(
    "/reviews/{review_id}/archive",
    summary="Admin: Archive a published review",
    response_model=ReviewTransitionResult,
)
def archive_review(
    review_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.archive_review(store, review_id, current_user.id)


# -----------------------------------------------------
# COMMUNITY POST
# -----------------------------------------------------
@router.post(
    "/reviews/{review_id}/community-post",
    summary="Admin: Create the community post of a review",
    response_model=PostTransitionResult,
    status_code=201,
)
def create_community_post(
    review_id: str,
    payload: CommunityPostCreateRequest,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    fields = payload.model_dump(
        exclude={"policy", "scheduled_publish_at"},
        exclude_none=True,
    )
    return publication.create_post(
        store,
        review_id,
        fields,
        policy=payload.policy,
        actor_id=current_user.id,
        scheduled_at=payload.scheduled_publish_at,
    )


@router.patch(
    "/reviews/{review_id}/community-post",
    summary="Admin: Edit the content of a review's community post",
    response_model=PostTransitionResult,
)
def update_community_post(
    review_id: str,
    payload: CommunityPostFields,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.update_post(store, review_id, payload)


@router.post(
    "/reviews/{review_id}/community-post/publish",
    summary="Admin: Publish the community post",
    response_model=PostTransitionResult,
)
def publish_community_post(
    review_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.publish_post(store, review_id, current_user.id)


@router.post(
    "/reviews/{review_id}/community-post/schedule",
    summary="Admin: Schedule the community post",
    response_model=PostTransitionResult,
)
def schedule_community_post(
    review_id: str,
    payload: ScheduleRequest,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.schedule_post(
        store, review_id, payload.scheduled_publish_at, current_user.id
    )


@router.post(
    "/reviews/{review_id}/community-post/hide",
    summary="Admin: Hide the community post",
    response_model=PostTransitionResult,
)
def hide_community_post(
    review_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.hide_post(store, review_id, current_user.id)


@router.post(
    "/reviews/{review_id}/community-post/unhide",
    summary="Admin: Make a hidden community post public again",
    response_model=PostTransitionResult,
)
def unhide_community_post(
    review_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.unhide_post(store, review_id, current_user.id)


@router.get(
    "/reviews/{review_id}/community-post/visibility",
    summary="Admin: Stored post state and what end users see",
    response_model=PostTransitionResult,
)
def community_post_visibility(
    review_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return publication.post_visibility(store, review_id)


# -----------------------------------------------------
# SCHEDULED PUBLICATION
# -----------------------------------------------------
@router.get(
    "/publication/due",
    summary="Admin: Scheduled items whose date has passed",
    response_model=List[DueTransition],
)
def list_due_transitions(
    now: Optional[datetime] = None,
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return due_transitions(store, now)


@router.post(
    "/publication/run-due",
    summary="Admin: Publish every due scheduled item now",
    response_model=BulkOperationResult,
)
def run_due(
    current_user: CurrentUser = Depends(requires_admin),
    store: ReviewPostStore = Depends(get_review_store),
):
    return run_due_transitions(store, actor_id=current_user.id)

# core/admin_actions.py

"""
Operation-id surface used by the admin UI.

Each operation id maps onto exactly one core call:

    promote      -> primary_role = admin
    demote       -> primary_role = practitioner
    assign_role  -> additional_role_grant
    revoke_role  -> additional_role_revoke
    publish      -> publish_review | publish_post
    schedule     -> schedule_review | schedule_post
    hide         -> hide_post
    unhide       -> unhide_post
"""

from typing import Callable, Dict, Union

from core.cell_updates import apply_cell_update
from core.errors import ValidationError
from core.logging_config import logger
from core.publication import (
    publish_review,
    publish_post,
    schedule_review,
    schedule_post,
    hide_post,
    unhide_post,
)
from core.stores import UserRoleStore, ReviewPostStore
from models.admin import AdminActionRequest
from models.enums import AdminAction, CellDataSource, EntityType, PrimaryRole
from models.review import ReviewTransitionResult, PostTransitionResult
from models.user import CellUpdateContext, CellUpdateResult


ActionResult = Union[CellUpdateResult, ReviewTransitionResult, PostTransitionResult]

USER_ACTIONS = {
    AdminAction.promote,
    AdminAction.demote,
    AdminAction.assign_role,
    AdminAction.revoke_role,
}


def _require(value, name: str, action: AdminAction):
    if not value:
        raise ValidationError(f"'{name}' is required for action '{action.value}'")
    return value


def _user_action(
    user_store: UserRoleStore,
    action: AdminAction,
    request: AdminActionRequest,
) -> CellUpdateResult:
    user_id = _require(request.user_id, "user_id", action)
    context = CellUpdateContext(actor_id=request.actor_id)

    if action == AdminAction.promote:
        return apply_cell_update(
            user_store, user_id, CellDataSource.primary_role, PrimaryRole.admin.value, context
        )
    if action == AdminAction.demote:
        return apply_cell_update(
            user_store, user_id, CellDataSource.primary_role, PrimaryRole.practitioner.value, context
        )

    context.role_name = _require(request.role_name, "role_name", action)
    if action == AdminAction.assign_role:
        context.expires_at = request.expires_at
        return apply_cell_update(
            user_store, user_id, CellDataSource.additional_role_grant, request.role_name, context
        )
    return apply_cell_update(
        user_store, user_id, CellDataSource.additional_role_revoke, request.role_name, context
    )


def _publication_action(
    review_store: ReviewPostStore,
    action: AdminAction,
    request: AdminActionRequest,
):
    review_id = _require(request.review_id, "review_id", action)
    actor_id = request.actor_id
    is_post = request.entity_type == EntityType.community_post

    handlers: Dict[AdminAction, Callable[[], object]] = {
        AdminAction.publish: lambda: (
            publish_post(review_store, review_id, actor_id)
            if is_post else publish_review(review_store, review_id, actor_id)
        ),
        AdminAction.schedule: lambda: (
            schedule_post(review_store, review_id, request.scheduled_at, actor_id)
            if is_post else schedule_review(review_store, review_id, request.scheduled_at, actor_id)
        ),
        AdminAction.hide: lambda: hide_post(review_store, review_id, actor_id),
        AdminAction.unhide: lambda: unhide_post(review_store, review_id, actor_id),
    }
    return handlers[action]()


def dispatch_admin_action(
    user_store: UserRoleStore,
    review_store: ReviewPostStore,
    request: AdminActionRequest,
) -> ActionResult:
    action = AdminAction.parse(request.action)
    if action is None:
        raise ValidationError(
            f"Unknown action '{request.action}'. Must be one of {AdminAction.list()}"
        )

    logger.info(f"Admin action '{action.value}' requested by {request.actor_id}")

    if action in USER_ACTIONS:
        return _user_action(user_store, action, request)
    return _publication_action(review_store, action, request)

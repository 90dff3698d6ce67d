# core/bulk_operations.py

"""
Apply one admin operation to many users, one user at a time.

Each item is isolated: its outcome goes into the result accumulator and the
loop moves on. Applied items are never rolled back, not even on cancellation.
"""

import time
import threading
from typing import Callable, Iterable, List, Optional

from core.cell_updates import apply_cell_update
from core.config import settings
from core.errors import AdminCoreError, ValidationError, NotFoundError
from core.logging_config import logger
from core.stores import UserRoleStore
from core.utils import utcnow
from models.bulk import BulkOperationResult, BulkOperationParams
from models.enums import BulkOperation, CellDataSource, PrimaryRole, SubscriptionTier
from models.user import CellUpdateContext


ProgressCallback = Callable[[int, int], None]


def apply_bulk(
    store: UserRoleStore,
    user_ids: List[str],
    operation,
    params: Optional[BulkOperationParams] = None,
    cancel_event: Optional[threading.Event] = None,
    on_progress: Optional[ProgressCallback] = None,
    delay: Optional[float] = None,
) -> BulkOperationResult:
    """
    Run `operation` over `user_ids` sequentially.

    Whole-call input errors raise ValidationError before any store call.
    Everything that goes wrong for a single user lands in result.failed.
    """
    params = params or BulkOperationParams()
    op = _validate_request(user_ids, operation, params)
    ids = _dedupe(user_ids)

    if delay is None:
        delay = settings.BULK_OPERATION_DELAY_SECONDS

    def apply_one(user_id: str):
        _apply_item(store, user_id, op, params)

    result = run_sequential(
        ids,
        apply_one,
        cancel_event=cancel_event,
        on_progress=on_progress,
        delay=delay,
    )

    logger.info(
        f"Bulk {op.value} by {params.actor_id}: total={result.summary.total} "
        f"successful={result.summary.successful} failed={result.summary.failed}"
        + (f" cancelled, not_processed={len(result.not_processed)}" if result.cancelled else "")
    )
    return result


def run_sequential(
    item_ids: Iterable[str],
    apply_one: Callable[[str], None],
    cancel_event: Optional[threading.Event] = None,
    on_progress: Optional[ProgressCallback] = None,
    delay: float = 0,
) -> BulkOperationResult:
    """
    Accumulator loop shared by bulk user edits and the scheduled publication run.
    """
    ids = list(item_ids)
    total = len(ids)
    result = BulkOperationResult()

    for index, item_id in enumerate(ids):
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            result.not_processed = ids[index:]
            break

        if index > 0 and delay > 0:
            time.sleep(delay)

        try:
            apply_one(item_id)
            result.record_success(item_id)
        except AdminCoreError as e:
            result.record_failure(item_id, e)
        except Exception as e:
            logger.exception(f"Unexpected error processing {item_id}: {e}")
            result.record_failure(item_id, e)

        if on_progress is not None:
            on_progress(index + 1, total)

    return result


# ============================================================
# INPUT VALIDATION
# ============================================================

def _validate_request(
    user_ids: List[str],
    operation,
    params: BulkOperationParams,
) -> BulkOperation:
    if not user_ids:
        raise ValidationError("user_ids must not be empty")

    if any(not isinstance(uid, str) or not uid.strip() for uid in user_ids):
        raise ValidationError("user_ids must be non-empty strings")

    if len(user_ids) > settings.BULK_OPERATION_MAX_USERS:
        raise ValidationError(
            f"Too many users ({len(user_ids)}). "
            f"Maximum is {settings.BULK_OPERATION_MAX_USERS}"
        )

    op = BulkOperation.parse(operation)
    if op is None:
        raise ValidationError(
            f"Unknown operation '{operation}'. Must be one of {BulkOperation.list()}"
        )

    if op == BulkOperation.update_subscription_tier:
        if SubscriptionTier.parse(params.tier) is None:
            raise ValidationError(
                f"params.tier must be one of {SubscriptionTier.list()}"
            )

    if op == BulkOperation.grant_admin and params.expires_at is not None:
        if params.expires_at <= utcnow():
            raise ValidationError("params.expires_at is in the past")

    return op


def _dedupe(user_ids: List[str]) -> List[str]:
    seen = set()
    ordered = []
    for uid in user_ids:
        if uid not in seen:
            seen.add(uid)
            ordered.append(uid)
    return ordered


# ============================================================
# PER-USER OPERATIONS
# ============================================================

def _apply_item(
    store: UserRoleStore,
    user_id: str,
    op: BulkOperation,
    params: BulkOperationParams,
):
    if op == BulkOperation.grant_admin:
        apply_cell_update(
            store,
            user_id,
            CellDataSource.additional_role_grant,
            PrimaryRole.admin.value,
            CellUpdateContext(
                actor_id=params.actor_id,
                role_name=PrimaryRole.admin.value,
                expires_at=params.expires_at,
            ),
        )

    elif op == BulkOperation.remove_admin:
        _remove_admin(store, user_id, params)

    else:
        user = store.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")

        apply_cell_update(
            store,
            user_id,
            CellDataSource.subscription_tier,
            params.tier,
            CellUpdateContext(
                actor_id=params.actor_id,
                current_role=user.primary_role.value,
            ),
        )


def _remove_admin(store: UserRoleStore, user_id: str, params: BulkOperationParams):
    """
    Revoke the admin grant and demote an admin primary role, one cell edit
    each. If the demotion fails the revoke stays applied and the item is
    reported failed; retrying it finishes the removal.
    """
    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    has_grant = user.find_grant(PrimaryRole.admin.value) is not None
    is_primary_admin = user.primary_role == PrimaryRole.admin

    if not has_grant and not is_primary_admin:
        raise NotFoundError(f"User {user_id} is not an admin")

    context = CellUpdateContext(actor_id=params.actor_id, role_name=PrimaryRole.admin.value)
    if has_grant:
        apply_cell_update(
            store, user_id, CellDataSource.additional_role_revoke,
            PrimaryRole.admin.value, context,
        )
    if is_primary_admin:
        apply_cell_update(
            store, user_id, CellDataSource.primary_role,
            PrimaryRole.practitioner.value, context,
        )

    logger.info(f"Admin removed: actor={params.actor_id} user={user_id}")

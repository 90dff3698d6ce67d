# routers/admin_users.py

from typing import Optional, List

from fastapi import APIRouter, Depends, Query

from dependencies.auth import requires_admin, get_user_store, CurrentUser
from core.bulk_operations import apply_bulk
from core.cell_updates import apply_cell_update
from core.entitlements import resolve_entitlement, claims_sync_status, get_effective_entitlement
from core.stores import UserRoleStore
from core.subscription_helpers import (
    adjust_subscription_time,
    get_user_or_404,
    set_subscription_end,
    subscription_status,
)
from models.admin import CellUpdateRequest, SubscriptionAdjustRequest, SubscriptionEndRequest
from models.bulk import BulkOperationRequest, BulkOperationResult
from models.user import (
    CellUpdateContext,
    CellUpdateResult,
    EffectiveEntitlement,
    SubscriptionStatusView,
    UserListItem,
)


router = APIRouter(
    prefix="/admin/users",
    tags=["Admin Users"],
)


# -----------------------------------------------------
# LIST USERS (with effective entitlement + claims sync)
# -----------------------------------------------------
@router.get(
    "",
    summary="Admin: List practitioners",
    response_model=List[UserListItem],
)
def list_users(
    role: Optional[str] = None,
    subscription_tier: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: CurrentUser = Depends(requires_admin),
    store: UserRoleStore = Depends(get_user_store),
):
    users = store.list_users({
        "role": role,
        "subscription_tier": subscription_tier,
        "search": search,
        "page": page,
        "limit": limit,
    })
    return [
        UserListItem(
            user=u,
            entitlement=resolve_entitlement(u),
            claims_sync=claims_sync_status(u),
        )
        for u in users
    ]


# -----------------------------------------------------
# EFFECTIVE ENTITLEMENT
# -----------------------------------------------------
@router.get(
    "/{user_id}/entitlement",
    summary="Admin: Effective role and tier of a user",
    response_model=EffectiveEntitlement,
)
def get_user_entitlement(
    user_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: UserRoleStore = Depends(get_user_store),
):
    return get_effective_entitlement(store, user_id)


# -----------------------------------------------------
# SINGLE CELL EDIT
# -----------------------------------------------------
@router.post(
    "/{user_id}/cell",
    summary="Admin: Edit one cell of the user table",
    response_model=CellUpdateResult,
)
def update_user_cell(
    user_id: str,
    payload: CellUpdateRequest,
    current_user: CurrentUser = Depends(requires_admin),
    store: UserRoleStore = Depends(get_user_store),
):
    context = CellUpdateContext(
        actor_id=current_user.id,
        current_role=payload.current_role,
        role_name=payload.role_name,
        expires_at=payload.expires_at,
    )
    return apply_cell_update(store, user_id, payload.data_source, payload.value, context)


# -----------------------------------------------------
# BULK OPERATION
# -----------------------------------------------------
@router.post(
    "/bulk",
    summary="Admin: Apply one operation to many users",
    response_model=BulkOperationResult,
)
def bulk_update_users(
    payload: BulkOperationRequest,
    current_user: CurrentUser = Depends(requires_admin),
    store: UserRoleStore = Depends(get_user_store),
):
    params = payload.params.model_copy(update={"actor_id": current_user.id})
    return apply_bulk(store, payload.user_ids, payload.operation, params)


# -----------------------------------------------------
# SUBSCRIPTION WINDOW
# -----------------------------------------------------
@router.get(
    "/{user_id}/subscription",
    summary="Admin: Subscription status of a user",
    response_model=SubscriptionStatusView,
)
def get_subscription_status(
    user_id: str,
    current_user: CurrentUser = Depends(requires_admin),
    store: UserRoleStore = Depends(get_user_store),
):
    return subscription_status(get_user_or_404(store, user_id))


@router.post(
    "/{user_id}/subscription/adjust",
    summary="Admin: Add or remove subscription days",
    response_model=CellUpdateResult,
)
def adjust_subscription(
    user_id: str,
    payload: SubscriptionAdjustRequest,
    current_user: CurrentUser = Depends(requires_admin),
    store: UserRoleStore = Depends(get_user_store),
):
    return adjust_subscription_time(store, user_id, payload.days, actor_id=current_user.id)


@router.post(
    "/{user_id}/subscription/end-date",
    summary="Admin: Set the subscription end date",
    response_model=CellUpdateResult,
)
def update_subscription_end(
    user_id: str,
    payload: SubscriptionEndRequest,
    current_user: CurrentUser = Depends(requires_admin),
    store: UserRoleStore = Depends(get_user_store),
):
    return set_subscription_end(
        store, user_id, payload.subscription_end, actor_id=current_user.id
    )

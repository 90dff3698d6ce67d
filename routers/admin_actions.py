# routers/admin_actions.py

from fastapi import APIRouter, Depends

from dependencies.auth import requires_admin, get_user_store, get_review_store, CurrentUser
from core.admin_actions import dispatch_admin_action
from core.stores import UserRoleStore, ReviewPostStore
from models.admin import AdminActionRequest


router = APIRouter(
    prefix="/admin",
    tags=["Admin Actions"],
)


# -----------------------------------------------------
# POST /admin/actions
# One endpoint for the operation ids used by the admin UI
# (promote, demote, assign_role, revoke_role, publish, schedule, hide, unhide)
# -----------------------------------------------------
@router.post("/actions", summary="Admin: Run an admin action by operation id")
def run_admin_action(
    payload: AdminActionRequest,
    current_user: CurrentUser = Depends(requires_admin),
    user_store: UserRoleStore = Depends(get_user_store),
    review_store: ReviewPostStore = Depends(get_review_store),
):
    request = payload.model_copy(update={"actor_id": current_user.id})
    result = dispatch_admin_action(user_store, review_store, request)
    return result.model_dump(mode="json")

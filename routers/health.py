# routers/health.py

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from core.config import settings
from core.supabase_client import ping_supabase, HEALTH_CHECK_TABLES

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Reachability of the tables the admin core reads and writes
# -----------------------------------------------------
@router.get("/db", summary="Entitlement / publication tables health check")
def health_db():
    """
    Probes Practitioners, UserRoles, Reviews and CommunityPosts.
    Returns 503 when Supabase is unconfigured or any table fails, so a
    monitor can tell a degraded store apart from a down API.
    """
    status = ping_supabase()
    body = {
        "service": "Supabase",
        "status": status.get("status", "unknown"),
        "tables_checked": HEALTH_CHECK_TABLES,
        "details": status,
    }
    return JSONResponse(
        status_code=200 if body["status"] == "ok" else 503,
        content=body,
    )


# -----------------------------------------------------
# GET /health/app
# -----------------------------------------------------
@router.get("/app", summary="App health check")
def health_app():
    """Also reports where the scheduled publication scan runs."""
    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
        "env": settings.ENV,
        "scheduled_publication": (
            "in_process" if settings.SCHEDULED_PUBLICATION_IN_PROCESS else "external_job"
        ),
    }

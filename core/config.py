from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Evidens Admin API"
    ENV: str = "development"

    # -------------------------------------------------
    # Admin Frontend Domains
    # -------------------------------------------------
    ADMIN_FRONTEND_DOMAIN: Optional[str] = None

    ADMIN_FRONTEND_DOMAINS: List[str] = [
        "https://evidens.com.br",
        "https://www.evidens.com.br",
        "https://admin.evidens.com.br",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB & Auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # -------------------------------------------------
    # Bulk User Operations
    # -------------------------------------------------
    BULK_OPERATION_DELAY_SECONDS: float = Field(
        0.1,
        ge=0,
        description="Pause between per-user store calls in a bulk operation (0 disables)",
    )
    BULK_OPERATION_MAX_USERS: int = Field(
        500,
        ge=1,
        description="Maximum number of user ids accepted by a single bulk call",
    )

    # -------------------------------------------------
    # Entitlements
    # -------------------------------------------------
    ENTITLEMENT_CACHE_TTL_SECONDS: int = Field(
        60,
        ge=0,
        description="How long a resolved effective entitlement stays cached (0 disables)",
    )

    # -------------------------------------------------
    # Scheduled Publication
    # -------------------------------------------------
    SCHEDULED_PUBLICATION_INTERVAL_MINUTES: int = Field(
        5,
        ge=1,
        description="Interval of the scheduled-publication job",
    )
    # Run the scan inside the API process instead of the external cron job
    SCHEDULED_PUBLICATION_IN_PROCESS: bool = False

    # Identity recorded in publication history for job-driven transitions
    SYSTEM_ACTOR_ID: str = "system:scheduled-publication"

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True
        # Real environment variables only (no env_file)


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
cors_origins = []

# 1) add custom admin domain
if settings.ADMIN_FRONTEND_DOMAIN:
    domain = settings.ADMIN_FRONTEND_DOMAIN
    if not domain.startswith("http"):
        domain = f"https://{domain}"
    cors_origins.append(domain.rstrip("/"))

# 2) add known frontend domains
cors_origins.extend([d.rstrip("/") for d in settings.ADMIN_FRONTEND_DOMAINS])

# 3) remove duplicates
settings.BACKEND_CORS_ORIGINS = sorted(list(set(cors_origins)))

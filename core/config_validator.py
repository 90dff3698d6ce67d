# core/config_validator.py

from typing import List
from core.config import settings
from core.logging_config import logger


def validate_required_config() -> List[str]:
    """
    Settings without which no store can be built.
    Returns list of missing required variables.
    """
    missing = []

    if not settings.SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")

    return missing


def validate_optional_config() -> List[str]:
    """
    Recommended settings and suspicious values (warnings only).
    """
    warnings = []

    if not settings.SUPABASE_ANON_KEY:
        warnings.append("SUPABASE_ANON_KEY (optional but recommended)")

    if settings.ENTITLEMENT_CACHE_TTL_SECONDS == 0:
        warnings.append("ENTITLEMENT_CACHE_TTL_SECONDS is 0, entitlement cache disabled")

    if settings.BULK_OPERATION_DELAY_SECONDS > 5:
        warnings.append(
            f"BULK_OPERATION_DELAY_SECONDS={settings.BULK_OPERATION_DELAY_SECONDS} "
            "makes large bulk operations very slow"
        )

    return warnings


def validate_config_on_startup(strict: bool = False):
    """
    Validate configuration on startup.

    strict=True (jobs): missing required settings raise RuntimeError.
    strict=False (API): they are logged so /health/db can still report.
    """
    missing_required = validate_required_config()
    missing_optional = validate_optional_config()

    if missing_required:
        error_msg = f"Missing required environment variables: {', '.join(missing_required)}"
        if strict:
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        logger.warning(error_msg)

    for warning in missing_optional:
        logger.warning(f"Optional configuration missing: {warning}")

    if not missing_required:
        logger.info("Configuration validation passed")

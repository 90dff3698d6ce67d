# jobs/scheduled_publication_job.py

from core.config_validator import validate_config_on_startup
from core.logging_config import logger
from core.scheduled_publication import run_due_transitions
from core.supabase_client import get_supabase_client
from core.supabase_stores import SupabaseReviewPostStore


def run():
    """
    CLI entry point for the scheduled publication scan.
    This is what the platform's cron job calls.
    """
    validate_config_on_startup(strict=True)

    client = get_supabase_client()
    if not client:
        raise RuntimeError("Supabase not configured")

    result = run_due_transitions(SupabaseReviewPostStore(client))

    logger.info(
        f"Scheduled publication job finished: {result.summary.model_dump()}"
    )
    if result.failed:
        logger.warning(f"Failed items: {result.failed_ids}")
    return result


if __name__ == "__main__":
    run()

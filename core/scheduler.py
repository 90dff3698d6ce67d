# core/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from core.errors import AdminCoreError
from core.logging_config import logger
from core.scheduled_publication import run_due_transitions
from core.supabase_client import get_supabase_client
from core.supabase_stores import SupabaseReviewPostStore


def run_scheduled_publication():
    """Publishes every review / post whose scheduled date has passed."""
    client = get_supabase_client()
    if client is None:
        logger.error("[SCHEDULER] Supabase not configured; skipping scheduled publication")
        return None

    try:
        result = run_due_transitions(SupabaseReviewPostStore(client))
    except AdminCoreError as e:
        logger.error(f"[SCHEDULER] Scheduled publication failed: {e.message}")
        return None

    for failure in result.failed:
        logger.warning(
            f"[SCHEDULER] {failure.id} not published ({failure.error_type}): {failure.error}"
        )
    return result


def start_scheduler() -> BackgroundScheduler:
    """
    Initialize the APScheduler background process.
    Runs the scheduled publication scan every SCHEDULED_PUBLICATION_INTERVAL_MINUTES.
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_scheduled_publication,
        trigger=IntervalTrigger(minutes=settings.SCHEDULED_PUBLICATION_INTERVAL_MINUTES),
        id="scheduled_publication_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        f"Scheduler started. Scheduled publication every "
        f"{settings.SCHEDULED_PUBLICATION_INTERVAL_MINUTES} minutes."
    )
    return scheduler

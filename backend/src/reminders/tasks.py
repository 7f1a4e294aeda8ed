"""Celery tasks for expiry reminders.

Tasks:
- run_reminder_cycle_task: Daily job at REMINDER_CYCLE_HOUR_UTC (default 02:00 UTC)
"""

import logging
from typing import Any, Dict

from celery import shared_task

from config import get_settings
from workers.base import worker_context

logger = logging.getLogger(__name__)


@shared_task(name="reminders.run_cycle", bind=True)
def run_reminder_cycle_task(self) -> Dict[str, Any]:
    """Expire overdue documents and send due expiry reminders.

    Scheduled daily via Celery Beat when FEATURE_DOCUMENT_REMINDERS is on.
    The task is idempotent: running it twice on the same day expires nothing
    new and sends no duplicate reminders.

    Returns:
        Dict with cycle statistics:
        - documents_expired: Documents moved to EXPIRED
        - reminders_sent: Reminder thresholds fired
        - reminders_already_fired: Thresholds that had fired before
        - notification_errors / document_errors: Failure counts
        - duration_seconds: Total execution time
    """
    settings = get_settings()
    if not settings.FEATURE_DOCUMENT_REMINDERS:
        logger.info("Reminder cycle skipped: feature disabled")
        return {"status": "skipped"}

    logger.info("Reminder cycle task started")
    try:
        with worker_context(settings) as context:
            statistics = context.reminders.run_reminder_cycle()

        result = {
            "status": "completed",
            **statistics.model_dump(mode="json"),
            "has_errors": statistics.has_errors,
        }
        logger.info("Reminder cycle task completed successfully", extra=result)
        return result

    except Exception as e:
        logger.error(
            "Reminder cycle task failed",
            exc_info=True,
            extra={"error": str(e)},
        )
        # Return error status but don't raise (allow task to complete)
        return {
            "status": "failed",
            "error": str(e),
        }

"""Celery application and beat schedule.

Start a worker and the scheduler with:
    celery -A workers.celery_app worker --loglevel=info
    celery -A workers.celery_app beat --loglevel=info
"""

from celery import Celery
from celery.schedules import crontab

from config import Settings, get_settings


def build_beat_schedule(settings: Settings) -> dict:
    """Beat entries for recurring jobs enabled by feature flags."""
    schedule = {}
    if settings.FEATURE_DOCUMENT_REMINDERS:
        schedule["document-reminders-daily"] = {
            "task": "reminders.run_cycle",
            "schedule": crontab(hour=settings.REMINDER_CYCLE_HOUR_UTC, minute=0),
            "options": {
                "expires": 3600,  # Task expires after 1 hour if not picked up
            },
        }
    return schedule


def create_celery_app(settings: Settings = None) -> Celery:
    settings = settings or get_settings()
    app = Celery(
        "safeguarding",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["reminders.tasks"],
    )
    app.conf.update(
        timezone="UTC",
        enable_utc=True,
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        task_acks_late=True,
        worker_prefetch_multiplier=1,
    )
    app.conf.beat_schedule = build_beat_schedule(settings)
    return app


celery_app = create_celery_app()

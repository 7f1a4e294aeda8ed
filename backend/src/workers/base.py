"""Base utilities for background tasks.

Workers do not share the API process' state. Each task opens its own record
store handle and storage backend from settings, and disposes the handle when
it finishes.

Task Signature Pattern:
======================

@shared_task(name="reminders.run_cycle", bind=True)
def my_task(self) -> Dict[str, Any]:
    with worker_context() as context:
        result = context.reminders.run_reminder_cycle()
    return result.model_dump(mode="json")
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional

from config import Settings, get_settings
from database import Database
from documents.service import DocumentLifecycleService
from infrastructure.notifications import create_notification_sender
from infrastructure.storage import create_storage_adapter
from reminders.service import ReminderScheduler

logger = logging.getLogger(__name__)


@dataclass
class WorkerContext:
    """Services wired for one task run."""
    settings: Settings
    database: Database
    documents: DocumentLifecycleService
    reminders: ReminderScheduler


@contextmanager
def worker_context(settings: Optional[Settings] = None) -> Generator[WorkerContext, None, None]:
    """Open the record store and build services for a task.

    The database handle is always disposed, even if the task fails.
    """
    settings = settings or get_settings()
    database = Database(settings.DATABASE_URL)
    try:
        config = settings.compliance_config()
        notifier = create_notification_sender(settings)
        documents = DocumentLifecycleService(
            database=database,
            storage=create_storage_adapter(settings),
            config=config,
            notifier=notifier,
            signed_url_expiry_seconds=settings.SIGNED_URL_EXPIRY_SECONDS,
        )
        reminders = ReminderScheduler(
            database=database,
            documents=documents,
            config=config,
            notifier=notifier,
        )
        yield WorkerContext(
            settings=settings,
            database=database,
            documents=documents,
            reminders=reminders,
        )
    finally:
        database.dispose()

"""Pydantic schemas for reminder cycle statistics."""

from datetime import datetime

from pydantic import BaseModel, Field


class ReminderCycleStatistics(BaseModel):
    """Statistics from one reminder cycle.

    Tracks how many documents expired, how many reminders were sent, and
    any per-document failures. Used for monitoring the scheduled job.
    """

    cycle_started_at: datetime = Field(description="When the cycle started")
    cycle_completed_at: datetime = Field(description="When the cycle completed")
    duration_seconds: float = Field(ge=0.0, description="Cycle execution duration in seconds")

    documents_expired: int = Field(default=0, ge=0, description="Documents moved to EXPIRED")
    reminders_sent: int = Field(default=0, ge=0, description="Reminder thresholds fired")
    reminders_already_fired: int = Field(
        default=0,
        ge=0,
        description="Thresholds skipped because they had fired in an earlier cycle",
    )
    notification_errors: int = Field(default=0, ge=0, description="Notifications that failed to send")
    document_errors: int = Field(default=0, ge=0, description="Documents that could not be processed")

    @property
    def has_errors(self) -> bool:
        """Whether any errors occurred during the cycle."""
        return self.notification_errors > 0 or self.document_errors > 0

"""Expiry reminder scheduling."""

from .schemas import ReminderCycleStatistics
from .service import ReminderScheduler, select_threshold

__all__ = ["ReminderCycleStatistics", "ReminderScheduler", "select_threshold"]

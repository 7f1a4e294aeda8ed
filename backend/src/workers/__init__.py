"""Background workers module for scheduled task processing.

Tasks open their own record store handle through worker_context() and
dispose it when they finish.
"""

from .base import WorkerContext, worker_context

__all__ = [
    "WorkerContext",
    "worker_context",
]

"""Delayed, cancelable callbacks for page contexts."""

from .service import CancelToken, Scheduler, SchedulerService

__all__ = [
    "SchedulerService",
    "Scheduler",
    "CancelToken",
]

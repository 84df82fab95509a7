"""Scheduler service for delayed, cancelable callbacks."""

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from app.logging import get_logger

logger = get_logger(__name__, component="scheduler")


class CancelToken:
    """Handle for a scheduled callback.

    ``cancel()`` is idempotent and safe to call after the callback has run.
    """

    def __init__(self, job_id: str, remove: Callable[[str], None]):
        self.job_id = job_id
        self._remove = remove
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self._remove(self.job_id)


class Scheduler(Protocol):
    """Interface used by page contexts to delay work."""

    def schedule_after(
        self, delay_seconds: float, callback: Callable[[], None], name: str = ""
    ) -> CancelToken:
        ...


class SchedulerService:
    """
    Wraps APScheduler to run one-shot callbacks after a delay.

    Uses BackgroundScheduler so callbacks run on a worker thread while the
    caller keeps handling user actions and teardown.
    """

    def __init__(self, misfire_grace_seconds: int = 30):
        """
        Initialize the scheduler service.

        Args:
            misfire_grace_seconds: How late a delayed callback may still run
        """
        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": misfire_grace_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Start the background scheduler (idempotent)."""
        if self.scheduler.running:
            return
        self.scheduler.start()
        logger.info("Scheduler started", extra={"event": "scheduler.started"})

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running callbacks to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def schedule_after(
        self, delay_seconds: float, callback: Callable[[], None], name: str = ""
    ) -> CancelToken:
        """
        Run ``callback`` once after ``delay_seconds``.

        Starts the scheduler on first use.

        Args:
            delay_seconds: Delay before the callback runs
            callback: Zero-argument callable
            name: Label used in logs

        Returns:
            CancelToken that removes the job if it has not run yet
        """
        if delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")

        self.start()
        job_id = f"delayed-{uuid4().hex}"
        run_at = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        self.scheduler.add_job(
            func=callback,
            trigger=DateTrigger(run_date=run_at, timezone=timezone.utc),
            id=job_id,
            name=name or job_id,
            replace_existing=True,
        )

        logger.debug(
            f"Scheduled {name or job_id} in {delay_seconds} seconds",
            extra={
                "event": "scheduler.job.scheduled",
                "job_id": job_id,
                "job_name": name,
                "run_at": run_at.isoformat(),
            },
        )
        return CancelToken(job_id, self._remove_job)

    def _remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
            logger.debug(
                "Scheduled job cancelled",
                extra={"event": "scheduler.job.cancelled", "job_id": job_id},
            )
        except JobLookupError:
            # Already ran or never registered
            pass

    def wait_for_idle(self, timeout: float, poll_interval: float = 0.1) -> bool:
        """
        Block until no job is waiting to run, or ``timeout`` elapses.

        Jobs already executing are not waited for; use ``shutdown(wait=True)``.

        Returns:
            True if the scheduler became idle within the timeout
        """
        deadline = time.monotonic() + timeout
        while self.scheduler.get_jobs():
            if time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval)
        return True

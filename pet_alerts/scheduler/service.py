"""Background execution of listing alert cycles."""

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES, JobEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from pet_alerts.logging import get_logger

logger = get_logger(__name__, component="scheduler")


class BackgroundRunner:
    """
    Wraps APScheduler to run one-off jobs off the caller's thread.

    Every submitted callable becomes a date-triggered job due immediately.
    Jobs never misfire, so a busy pool delays a cycle rather than dropping it.
    """

    def __init__(self, worker_count: int = 2):
        """
        Initialize the background runner.

        Args:
            worker_count: Threads available for concurrently running jobs
        """
        self.worker_count = worker_count
        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=worker_count)},
            job_defaults={
                "coalesce": False,
                "max_instances": 1,
                "misfire_grace_time": None,  # Run late rather than never
            },
            timezone=timezone.utc,
        )
        self.scheduler.add_listener(self._on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES)

    def start(self) -> None:
        """Start the scheduler thread. Calling start twice is a no-op."""
        if self.scheduler.running:
            return

        self.scheduler.start()
        logger.info(
            f"Background runner started with {self.worker_count} workers",
            extra={"event": "scheduler.started", "worker_count": self.worker_count},
        )

    def submit(self, func: Callable, *args, name: Optional[str] = None, **kwargs) -> str:
        """
        Schedule func(*args, **kwargs) to run as soon as a worker is free.

        Args:
            func: Callable to run
            *args: Positional arguments for func
            name: Human-readable job name for logs
            **kwargs: Keyword arguments for func

        Returns:
            The job id

        Raises:
            RuntimeError: If the runner is not running
        """
        if not self.scheduler.running:
            raise RuntimeError("Background runner is not running; call start() first")

        job_id = uuid4().hex
        self.scheduler.add_job(
            func,
            trigger=DateTrigger(run_date=datetime.now(timezone.utc), timezone=timezone.utc),
            args=args,
            kwargs=kwargs,
            id=job_id,
            name=name or getattr(func, "__name__", "job"),
        )

        logger.debug(
            f"Submitted background job {name or job_id}",
            extra={"event": "scheduler.job.submitted", "job_id": job_id},
        )
        return job_id

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler.

        Args:
            wait: If True, wait for running jobs to complete before returning
        """
        logger.info(
            "Shutting down background runner",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        logger.info("Background runner shutdown complete", extra={"event": "scheduler.stopped"})

    def is_running(self) -> bool:
        """Check if the scheduler is currently running."""
        return self.scheduler.running

    def _on_job_event(self, event: JobEvent) -> None:
        if event.code == EVENT_JOB_MAX_INSTANCES:
            logger.warning(
                f"Background job {event.job_id} skipped: already running",
                extra={"event": "scheduler.job.skipped", "job_id": event.job_id},
            )
            return

        logger.error(
            f"Background job {event.job_id} raised: {event.exception}",
            extra={"event": "scheduler.job.failed", "job_id": event.job_id},
        )

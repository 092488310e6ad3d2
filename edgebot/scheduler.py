"""
Scheduler module for automated scan execution.

This module runs the scan cycle on a fixed interval using APScheduler. The
job is a one-shot DateTrigger that is re-armed only after the previous cycle
settles, so cycles never overlap and a slow cycle pushes the next one back
instead of queueing behind it.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR
import pytz

from edgebot.config import Config
from edgebot.utils import utc_now

# Configure module logger
logger = logging.getLogger(__name__)


class Scheduler:
    """
    Scheduler for automated scan execution.

    Manages scheduled execution of the scan cycle with overlap prevention,
    error handling, and graceful shutdown support.
    """

    def __init__(self):
        """Initialize the scheduler."""
        self.scheduler: Optional[BackgroundScheduler] = None
        self.scan_function: Optional[Callable] = None
        self.interval_seconds: Optional[int] = None
        self.is_running = False
        self.runs_completed = 0
        self._execution_lock = threading.Lock()
        self._job_id: Optional[str] = None
        self._arm_count = 0

    def start(
        self,
        scan_function: Callable,
        interval_seconds: Optional[int] = None,
        run_immediately: bool = True,
    ) -> bool:
        """
        Start the scheduler with the given scan function.

        Args:
            scan_function: Callable that executes one scan cycle
            interval_seconds: Seconds between the end of one cycle and the start of
                the next. If None, uses Config.SCAN_INTERVAL_SECONDS
            run_immediately: Run the first cycle right away instead of after one interval

        Returns:
            True if scheduler started successfully, False otherwise
        """
        if self.is_running:
            logger.warning("Scheduler is already running")
            return False

        if not callable(scan_function):
            logger.error("scan_function must be callable")
            return False

        if interval_seconds is None:
            interval_seconds = Config.SCAN_INTERVAL_SECONDS

        if interval_seconds < 1:
            logger.error(f"Invalid interval_seconds: {interval_seconds}. Must be >= 1")
            return False

        self.scan_function = scan_function
        self.interval_seconds = interval_seconds

        try:
            timezone = pytz.timezone(Config.SCHEDULER_TIMEZONE)
            self.scheduler = BackgroundScheduler(timezone=timezone)

            self.scheduler.add_listener(
                self._on_job_executed,
                EVENT_JOB_EXECUTED | EVENT_JOB_ERROR
            )

            self.scheduler.start()
            self.is_running = True

            delay = 0 if run_immediately else interval_seconds
            self._arm(delay)

            logger.info(f"Scheduler started with {interval_seconds}s interval")
            return True

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}", exc_info=True)
            self.is_running = False
            return False

    def stop(self, wait: bool = True) -> bool:
        """
        Stop the scheduler gracefully.

        Args:
            wait: Whether to wait for a running cycle to complete

        Returns:
            True if scheduler stopped successfully, False otherwise
        """
        if not self.is_running or not self.scheduler:
            logger.warning("Scheduler is not running")
            return False

        try:
            logger.info("Stopping scheduler...")

            # Flag first so a settling cycle does not re-arm
            self.is_running = False
            self.scheduler.shutdown(wait=wait)
            self.scheduler = None

            logger.info("Scheduler stopped successfully")
            return True

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}", exc_info=True)
            return False

    def _arm(self, delay_seconds: float) -> None:
        """Schedule the next single run delay_seconds from now."""
        scheduler = self.scheduler
        if not self.is_running or not scheduler:
            return

        # APScheduler removes a fired one-shot job after submitting it, so each
        # armed run needs its own id or the re-armed run can be removed with it
        self._arm_count += 1
        job_id = f"scan_job_{self._arm_count}"

        run_date = datetime.now(scheduler.timezone) + timedelta(seconds=delay_seconds)
        scheduler.add_job(
            func=self._safe_execute_scan,
            trigger=DateTrigger(run_date=run_date),
            id=job_id,
            name="Edge Scan",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=None,
        )
        self._job_id = job_id
        logger.debug(f"Next scan armed for {run_date.isoformat()}")

    def _safe_execute_scan(self) -> None:
        """
        Execute the scan function with overlap prevention, then re-arm.

        The next run is scheduled from the moment this cycle settles, whether
        it succeeded or failed.
        """
        if not self._execution_lock.acquire(blocking=False):
            logger.warning("Scan execution skipped: previous run still in progress")
            return

        start_time = utc_now()

        try:
            if not self.scan_function:
                logger.error("Scan function not set")
                return

            result = self.scan_function()

            duration = (utc_now() - start_time).total_seconds()
            error = getattr(result, "error", None)
            if error:
                logger.warning(f"Scheduled scan ended early after {duration:.2f}s: {error}")
            else:
                logger.debug(f"Scheduled scan finished in {duration:.2f}s")

        except Exception as e:
            duration = (utc_now() - start_time).total_seconds()
            logger.error(f"Scan execution failed after {duration:.2f} seconds")
            logger.error(f"Error: {e}", exc_info=True)

        finally:
            self.runs_completed += 1
            self._execution_lock.release()
            self._arm(self.interval_seconds)

    def _on_job_executed(self, event) -> None:
        """
        Event listener for job execution events.

        Args:
            event: APScheduler event object
        """
        if event.exception:
            logger.error(f"Job {event.job_id} raised an exception: {event.exception}")
        else:
            logger.debug(f"Job {event.job_id} executed successfully")

    def get_next_run_time(self) -> Optional[datetime]:
        """
        Get the next scheduled run time.

        Returns:
            Next run time as datetime, or None if no run is armed
        """
        if not self.is_running or not self.scheduler or not self._job_id:
            return None

        job = self.scheduler.get_job(self._job_id)
        return job.next_run_time if job else None

    def is_job_running(self) -> bool:
        """Check if a scan cycle is currently executing."""
        return self._execution_lock.locked()

    def get_status(self) -> dict:
        """
        Get current scheduler status.

        Returns:
            Dictionary with scheduler status information
        """
        next_run = self.get_next_run_time()
        return {
            "is_running": self.is_running,
            "has_scan_function": self.scan_function is not None,
            "job_running": self.is_job_running(),
            "runs_completed": self.runs_completed,
            "next_run_time": next_run.isoformat() if next_run else None,
            "interval_seconds": self.interval_seconds if self.is_running else None,
        }

"""
Scheduler for Top1000 ingestion runs.
Runs the pipeline once at start and then daily at fixed wall-clock times.
"""
import logging
import schedule
import time
import threading
from datetime import datetime
from typing import List, Callable, Optional, Dict, Any
import pytz

from top1000.config_manager import ConfigManager

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Manages scheduled execution of the ingestion pipeline.
    """

    def __init__(self, times: List[str], job_func: Callable[[], Optional[Dict[str, Any]]],
                 timezone: str = "Asia/Shanghai", run_on_start: bool = True):
        """
        Initialize the scheduler.

        Args:
            times: List of times in HH:MM format (e.g., ["09:00"])
            job_func: Callable running one ingestion. Should return a stats
                      dictionary or None.
            timezone: Timezone the times are expressed in
            run_on_start: Run the job once as soon as the scheduler starts
        """
        self.times = times
        self.job_func = job_func
        self.run_on_start = run_on_start
        self.running = False
        self.thread = None
        self._jobs = schedule.Scheduler()

        try:
            pytz.timezone(timezone)
            self.timezone = timezone
            logger.info(f"Scheduler initialized with timezone: {timezone}")
        except pytz.exceptions.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone: {timezone}, using system local time")
            self.timezone = None

        logger.debug(f"Scheduler initialized for times: {times}")

    def _run_job_safely(self):
        """
        Run the job function with error handling.
        """
        try:
            logger.info("Executing scheduled ingestion job...")
            start_time = time.time()

            # The pipeline logs its own run summary
            self.job_func()

            duration = time.time() - start_time
            logger.info(f"Scheduled job completed in {duration:.2f} seconds")

        except Exception as e:
            # A failed run waits for the next regular tick
            logger.error(f"Error executing scheduled job: {e}", exc_info=True)

    def start(self):
        """
        Start the scheduler in a separate thread.
        """
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self._jobs.clear()

        for time_str in self.times:
            try:
                datetime.strptime(time_str, "%H:%M")
                self._jobs.every().day.at(time_str, self.timezone).do(self._run_job_safely)
                logger.info(f"Scheduled ingestion job at {time_str}")
            except ValueError:
                logger.error(f"Invalid time format in schedule: {time_str}. Skipping.")

        if not self._jobs.get_jobs():
            logger.warning("No valid jobs scheduled. Scheduler will not run any tasks.")
            return

        self.running = True
        self.thread = threading.Thread(target=self._scheduler_loop, name="top1000-scheduler", daemon=True)
        self.thread.start()

        logger.info("Scheduler started in a separate thread.")

    def stop(self):
        """
        Stop the scheduler.
        """
        if not self.running:
            logger.warning("Scheduler is not running")
            return

        logger.info("Stopping scheduler...")
        self.running = False

        if self.thread and self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=5)
            if self.thread.is_alive():
                logger.warning("Scheduler thread did not terminate cleanly.")
            else:
                logger.info("Scheduler thread stopped.")

        self._jobs.clear()

        logger.info("Scheduler stopped")

    def _scheduler_loop(self):
        """
        Main scheduler loop running in separate thread.
        """
        logger.debug("Scheduler loop started")

        if self.run_on_start:
            logger.info("Running startup ingestion")
            self._run_job_safely()

        while self.running:
            try:
                self._jobs.run_pending()
                time.sleep(1)

            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}", exc_info=True)
                time.sleep(5)

        logger.debug("Scheduler loop stopped")

    def get_next_run_time(self) -> Optional[datetime]:
        """
        Get the next scheduled run time.

        Returns:
            Next run time as a naive local datetime or None if no jobs scheduled
        """
        next_runs = [job.next_run for job in self._jobs.get_jobs() if job.next_run]
        return min(next_runs) if next_runs else None

    def get_status(self) -> dict:
        """
        Get scheduler status information.

        Returns:
            Dictionary with scheduler status
        """
        next_run = self.get_next_run_time()

        return {
            "running": self.running,
            "scheduled_times": self.times,
            "timezone": self.timezone,
            "next_run": next_run.isoformat() if next_run else None,
            "jobs_count": len(self._jobs.get_jobs()),
            "thread_alive": self.thread.is_alive() if self.thread else False
        }

    def run_now(self):
        """
        Execute the ingestion job immediately (outside of schedule).
        """
        logger.info("Running ingestion job immediately...")
        self._run_job_safely()


def initialize_scheduler(config_manager: ConfigManager,
                         run_pipeline_func: Callable[[], Optional[Dict[str, Any]]]) -> Optional[Scheduler]:
    """
    Initializes the scheduler based on the application settings.

    Args:
        config_manager: The ConfigManager instance with loaded settings.
        run_pipeline_func: The function to call for each ingestion run.

    Returns:
        A configured Scheduler instance, or None if no schedule times are configured.
    """
    schedule_times = config_manager.get_config_value("schedule.times", [])
    timezone = config_manager.get_config_value("schedule.timezone", "Asia/Shanghai")
    run_on_start = config_manager.get_config_value("schedule.run_on_start", True)

    if not schedule_times:
        logger.warning("No schedule times configured in settings.")
        return None

    scheduler = Scheduler(times=schedule_times, job_func=run_pipeline_func,
                          timezone=timezone, run_on_start=run_on_start)

    logger.info(f"Scheduler initialized with {len(schedule_times)} schedule times.")
    return scheduler

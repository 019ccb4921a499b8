"""APScheduler wiring for the daily sweep and periodic health checks"""

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from recurring_cron.config import Settings, settings as default_settings
from recurring_cron.domain.exceptions import SweepAlreadyRunningError
from recurring_cron.infrastructure.observability.metrics import record_sweep_skipped
from recurring_cron.services.health_monitor import HEALTHY, HealthMonitor
from recurring_cron.services.sweep import DEV_JOB, RECURRING_JOB, SweepRunner

logger = logging.getLogger(__name__)

HEALTH_CHECK_JOB = "health-check"


class SweepScheduler:
    """Owns the background scheduler that fires sweeps and health checks"""

    def __init__(
        self,
        runner: SweepRunner,
        health_monitor: HealthMonitor,
        settings: Settings = default_settings,
    ):
        self.runner = runner
        self.health_monitor = health_monitor
        self.settings = settings
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def build(self) -> BackgroundScheduler:
        """Create a scheduler with every job registered, not yet started"""
        timezone = self.settings.scheduler_timezone
        scheduler = BackgroundScheduler(timezone=timezone)

        # Daily sweep (default 09:00 in the configured timezone)
        scheduler.add_job(
            self.run_scheduled_sweep,
            trigger=CronTrigger.from_crontab(self.settings.sweep_cron, timezone=timezone),
            args=[RECURRING_JOB],
            id=RECURRING_JOB,
            name="Recurring transactions sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=self.settings.sweep_misfire_grace_seconds,
        )

        if self.settings.environment == "development":
            scheduler.add_job(
                self.run_scheduled_sweep,
                trigger=IntervalTrigger(minutes=self.settings.dev_sweep_interval_minutes, timezone=timezone),
                args=[DEV_JOB],
                id=DEV_JOB,
                name="Recurring transactions sweep (development)",
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )
            logger.info(
                f"Development mode: sweeping every {self.settings.dev_sweep_interval_minutes} minutes"
            )

        scheduler.add_job(
            self.run_health_check,
            trigger=IntervalTrigger(minutes=self.settings.health_check_interval_minutes, timezone=timezone),
            id=HEALTH_CHECK_JOB,
            name="Periodic health check",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        return scheduler

    def start(self) -> None:
        if self._scheduler is not None:
            logger.info("Scheduler already started; ignoring duplicate start.")
            return

        scheduler = self.build()
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Scheduler started",
            extra={"sweep_cron": self.settings.sweep_cron, "timezone": self.settings.scheduler_timezone},
        )

    def stop(self) -> None:
        if self._scheduler is None:
            return
        try:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped.")
        finally:
            self._scheduler = None

    def run_scheduled_sweep(self, job_name: str = RECURRING_JOB) -> None:
        """Scheduler callback: never lets an exception reach APScheduler"""
        try:
            self.runner.run_tracked(job_name)
        except SweepAlreadyRunningError:
            record_sweep_skipped(job_name)
            logger.warning(f"Skipping {job_name}: a previous sweep is still running")
        except Exception as e:
            # Already recorded as a failed job by the runner
            logger.error(f"Scheduled sweep {job_name} failed: {e}")

    def run_health_check(self) -> None:
        try:
            health = self.health_monitor.perform_all_checks()
        except Exception:
            logger.exception("Periodic health check failed")
            return

        if health["overall"] != HEALTHY:
            logger.warning(
                "Periodic health check detected issues",
                extra={
                    "overall": health["overall"],
                    "issues": [check for check in health["checks"] if check["status"] != HEALTHY],
                },
            )

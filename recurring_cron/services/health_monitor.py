"""Health checks over the rule store and the job tracker"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from recurring_cron.config import Settings, settings as default_settings
from recurring_cron.domain.store import RuleStore
from recurring_cron.services.job_tracker import JobTracker
from recurring_cron.services.sweep import RECURRING_JOB
from recurring_cron.utils.date_utils import duration_ms, process_uptime_seconds, utc_now

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"


@dataclass
class HealthCheck:
    """Result of one named check"""

    name: str
    status: str = HEALTHY
    last_checked: datetime = field(default_factory=utc_now)
    message: Optional[str] = None
    response_time_ms: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "last_checked": self.last_checked.isoformat(),
            "response_time_ms": self.response_time_ms,
            "details": self.details,
        }


def overall_status(checks: List[HealthCheck]) -> str:
    """Worst status wins"""
    if any(check.status == UNHEALTHY for check in checks):
        return UNHEALTHY
    if any(check.status == DEGRADED for check in checks):
        return DEGRADED
    return HEALTHY


class HealthMonitor:
    """Computes quick and detailed health snapshots for the HTTP surface"""

    def __init__(self, store: RuleStore, tracker: JobTracker, settings: Settings = default_settings):
        self.store = store
        self.tracker = tracker
        self.settings = settings

    def check_database(self) -> HealthCheck:
        check = HealthCheck(name="database")
        start = time.perf_counter()

        try:
            self.store.check_connection()
            check.details = dict(self.store.count_summary())
            check.response_time_ms = (time.perf_counter() - start) * 1000

            if check.response_time_ms > self.settings.db_slow_threshold_ms:
                check.status = DEGRADED
                check.message = "Database response time is slow"
        except Exception as e:
            check.status = UNHEALTHY
            check.message = str(e) or "Database connection failed"
            check.response_time_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Database health check failed: {e}")

        return check

    def check_job_system(self) -> HealthCheck:
        check = HealthCheck(name="job_system")

        try:
            stats = self.tracker.get_job_stats(RECURRING_JOB)
            running_jobs = self.tracker.get_running_jobs()
            now = utc_now()
            long_running_limit_ms = self.settings.long_running_job_minutes * 60 * 1000
            long_running = [
                job for job in running_jobs if duration_ms(job.start_time, now) > long_running_limit_ms
            ]

            total = stats["total_executions"]
            failure_rate = stats["failed_executions"] / total if total > 0 else 0.0
            last_execution = stats["last_execution"]

            check.details = {
                "total_executions": total,
                "successful_executions": stats["successful_executions"],
                "failed_executions": stats["failed_executions"],
                "failure_rate": failure_rate,
                "average_duration": stats["average_duration"],
                "running_jobs": len(running_jobs),
                "long_running_jobs": len(long_running),
                "last_execution": last_execution["start_time"] if last_execution else None,
            }

            if long_running:
                check.status = DEGRADED
                check.message = f"{len(long_running)} long-running jobs detected"
            elif failure_rate > self.settings.failure_rate_threshold:
                check.status = DEGRADED
                check.message = f"High failure rate: {failure_rate * 100:.1f}%"
        except Exception as e:
            check.status = UNHEALTHY
            check.message = str(e) or "Job system check failed"
            logger.error(f"Job system health check failed: {e}")

        return check

    def perform_all_checks(self) -> Dict[str, Any]:
        """Run every check and derive the overall status"""
        logger.debug("Performing health checks")
        checks = [self.check_database(), self.check_job_system()]
        overall = overall_status(checks)

        health = {
            "overall": overall,
            "checks": [check.to_dict() for check in checks],
            "uptime": process_uptime_seconds(),
            "timestamp": utc_now().isoformat(),
            "version": self.settings.app_version,
        }

        if overall != HEALTHY:
            logger.warning(
                "System health degraded",
                extra={"overall": overall, "issues": [c.name for c in checks if c.status != HEALTHY]},
            )
        return health

    def quick_health(self) -> Dict[str, Any]:
        """Liveness answer without touching the store"""
        return {
            "status": HEALTHY,
            "service": self.settings.service_name,
            "uptime": process_uptime_seconds(),
            "timestamp": utc_now().isoformat(),
        }

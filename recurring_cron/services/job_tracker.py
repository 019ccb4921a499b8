"""In-memory bookkeeping of sweep executions.

Nothing here is persisted: history is lost on restart. Every public method is
best-effort and never raises into the caller, so a bookkeeping bug cannot
break rule processing.
"""

import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Deque, Dict, List, Optional, Union

from recurring_cron.config import settings
from recurring_cron.utils.date_utils import duration_ms, utc_now

logger = logging.getLogger(__name__)

RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"


def empty_stats() -> Dict[str, Any]:
    return {
        "total_executions": 0,
        "successful_executions": 0,
        "failed_executions": 0,
        "average_duration": 0.0,
        "last_execution": None,
    }


@dataclass
class JobExecution:
    """One run of a named job"""

    id: str
    job_name: str
    start_time: datetime
    status: str = RUNNING
    end_time: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None
    duration_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_name": self.job_name,
            "status": self.status,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
            "result": self.result,
            "error": self.error,
        }


class JobTracker:
    """Tracks running jobs and keeps a bounded history per job name"""

    def __init__(
        self,
        max_history_per_job: int = settings.job_history_size,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.max_history_per_job = max_history_per_job
        self._clock = clock
        self._running: Dict[str, JobExecution] = {}
        self._history: Dict[str, Deque[JobExecution]] = {}
        self._executions_total = 0
        self._failures_total = 0
        self._lock = Lock()

    def start_job(self, job_name: str) -> str:
        job_id = f"{job_name}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        try:
            with self._lock:
                self._running[job_id] = JobExecution(id=job_id, job_name=job_name, start_time=self._clock())
            logger.info(f"Job started: {job_name}", extra={"job_id": job_id})
        except Exception:
            logger.exception(f"Failed to record start of job {job_name}")
        return job_id

    def complete_job(self, job_id: str, result: Any = None) -> None:
        execution = self._finish(job_id, COMPLETED, result=result)
        if execution is not None:
            logger.info(
                f"Job completed: {execution.job_name}",
                extra={"job_id": job_id, "duration_ms": execution.duration_ms, "result": result},
            )

    def fail_job(self, job_id: str, error: Union[str, BaseException]) -> None:
        message = str(error) if isinstance(error, BaseException) else error
        execution = self._finish(job_id, FAILED, error=message)
        if execution is not None:
            logger.error(
                f"Job failed: {execution.job_name}",
                extra={"job_id": job_id, "duration_ms": execution.duration_ms, "error": message},
            )

    def get_running_jobs(self) -> List[JobExecution]:
        try:
            with self._lock:
                return list(self._running.values())
        except Exception:
            logger.exception("Failed to read running jobs")
            return []

    def get_job_history(self, job_name: Optional[str] = None, limit: Optional[int] = 10) -> List[JobExecution]:
        """Most recent executions first, optionally for a single job name"""
        try:
            with self._lock:
                if job_name is not None:
                    history = list(self._history.get(job_name, ()))
                else:
                    history = [execution for runs in self._history.values() for execution in runs]
                    history.sort(key=lambda execution: execution.end_time or execution.start_time, reverse=True)
        except Exception:
            logger.exception(f"Failed to read job history for {job_name or 'all jobs'}")
            return []
        return history if limit is None else history[: max(limit, 0)]

    def get_job_stats(self, job_name: Optional[str] = None) -> Dict[str, Any]:
        """Aggregates over the retained history"""
        history = self.get_job_history(job_name, limit=None)
        try:
            durations = [execution.duration_ms for execution in history if execution.duration_ms is not None]
            return {
                "total_executions": len(history),
                "successful_executions": sum(1 for execution in history if execution.status == COMPLETED),
                "failed_executions": sum(1 for execution in history if execution.status == FAILED),
                "average_duration": sum(durations) / len(durations) if durations else 0.0,
                "last_execution": history[0].to_dict() if history else None,
            }
        except Exception:
            logger.exception(f"Failed to compute job stats for {job_name or 'all jobs'}")
            return empty_stats()

    def get_lifetime_totals(self) -> Dict[str, int]:
        """Finished and failed executions since start, unaffected by history eviction"""
        with self._lock:
            return {"executions": self._executions_total, "failures": self._failures_total}

    def get_status(self) -> Dict[str, Any]:
        try:
            now = self._clock()
            running_jobs = [
                {
                    "id": job.id,
                    "job_name": job.job_name,
                    "start_time": job.start_time.isoformat(),
                    "duration_ms": duration_ms(job.start_time, now),
                }
                for job in self.get_running_jobs()
            ]
        except Exception:
            logger.exception("Failed to read running job durations")
            running_jobs = []

        return {
            "running_jobs": running_jobs,
            "recent_executions": [execution.to_dict() for execution in self.get_job_history(limit=5)],
            "stats": self.get_job_stats(),
        }

    def clear(self) -> None:
        """Forget all running jobs, history and totals (useful for tests)"""
        with self._lock:
            self._running.clear()
            self._history.clear()
            self._executions_total = 0
            self._failures_total = 0

    def _finish(self, job_id: str, status: str, result: Any = None, error: Optional[str] = None) -> Optional[JobExecution]:
        try:
            with self._lock:
                execution = self._running.pop(job_id, None)
                if execution is None:
                    logger.warning(f"Attempted to {'complete' if status == COMPLETED else 'fail'} unknown job: {job_id}")
                    return None

                execution.end_time = self._clock()
                execution.status = status
                execution.result = result
                execution.error = error
                execution.duration_ms = duration_ms(execution.start_time, execution.end_time)

                # Newest first; deque drops the oldest entry once full
                runs = self._history.setdefault(execution.job_name, deque(maxlen=self.max_history_per_job))
                runs.appendleft(execution)
                self._executions_total += 1
                if status == FAILED:
                    self._failures_total += 1
            return execution
        except Exception:
            logger.exception(f"Failed to record outcome of job {job_id}")
            return None


job_tracker = JobTracker()

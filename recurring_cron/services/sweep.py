"""Sweep over all due recurring rules"""

import logging
import time
from datetime import datetime
from functools import reduce
from threading import Lock
from typing import Callable, Optional, Tuple

from recurring_cron.domain.exceptions import StoreIntegrityError, SweepAlreadyRunningError
from recurring_cron.domain.models import ProcessingResult, RecurringRule
from recurring_cron.domain.rule_processor import RuleProcessor
from recurring_cron.domain.store import RuleStore
from recurring_cron.infrastructure.observability.logging import log_sweep_result
from recurring_cron.infrastructure.observability.metrics import (
    record_rule_error,
    record_rule_outcome,
    record_sweep,
    record_sweep_failure,
)
from recurring_cron.services.job_tracker import JobTracker, job_tracker
from recurring_cron.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

RECURRING_JOB = "recurring-transactions"
MANUAL_JOB = "recurring-transactions-manual"
DEV_JOB = "recurring-transactions-dev"


class SweepRunner:
    """
    Finds due rules and feeds them to the RuleProcessor one at a time.

    One runner is shared by the scheduler and the manual trigger; its lock
    keeps two sweeps from overlapping in this process.
    """

    def __init__(
        self,
        store: RuleStore,
        tracker: JobTracker = job_tracker,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.tracker = tracker
        self.clock = clock
        self.processor = RuleProcessor(store)
        self._lock = Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def run_sweep(self, now: Optional[datetime] = None) -> ProcessingResult:
        """Run one untracked sweep. Raises SweepAlreadyRunningError on overlap."""
        if not self._lock.acquire(blocking=False):
            raise SweepAlreadyRunningError("A recurring transaction sweep is already running")
        try:
            return self._sweep(now)
        finally:
            self._lock.release()

    def run_tracked(self, job_name: str = RECURRING_JOB) -> Tuple[str, ProcessingResult]:
        """
        Run a sweep recorded in the JobTracker under ``job_name``.

        Returns:
            (job_id, result)

        Raises:
            SweepAlreadyRunningError: Another sweep holds the lock (no job recorded)
            Exception: Infrastructure failure, after the job is marked failed
        """
        if not self._lock.acquire(blocking=False):
            raise SweepAlreadyRunningError("A recurring transaction sweep is already running")
        try:
            job_id = self.tracker.start_job(job_name)
            start_time = time.perf_counter()
            try:
                result = self._sweep()
            except Exception as e:
                record_sweep_failure(job_name, time.perf_counter() - start_time)
                self.tracker.fail_job(job_id, e)
                raise

            duration = time.perf_counter() - start_time
            record_sweep(job_name, duration)
            self.tracker.complete_job(job_id, result.to_dict())
            log_sweep_result(job_id, job_name, result, duration * 1000)
            return job_id, result
        finally:
            self._lock.release()

    def _sweep(self, now: Optional[datetime] = None) -> ProcessingResult:
        now = now or self.clock()
        logger.info("Starting recurring transaction processing")

        try:
            self.store.check_connection()
            due_rules = self.store.find_due_rules(now)

            if due_rules is None:
                raise StoreIntegrityError("Due rules query returned no result")
            if not isinstance(due_rules, list):
                raise StoreIntegrityError(f"Expected list of rules, got {type(due_rules).__name__}")
        except Exception as e:
            logger.error(f"Fatal error in recurring transaction processing: {e}")
            raise

        logger.info(f"Found {len(due_rules)} due recurring transaction rules")

        result = reduce(
            lambda acc, rule: acc + self._process_one(rule, now),
            due_rules,
            ProcessingResult(),
        )

        logger.info("Recurring transaction processing completed", extra=result.to_dict())
        return result

    def _process_one(self, rule: RecurringRule, now: datetime) -> ProcessingResult:
        """Process a rule, turning any failure into an error count"""
        try:
            outcome = self.processor.process_rule(rule, now)
        except Exception as e:
            logger.error(
                f"Error processing rule {rule.id}: {e}",
                extra={"rule_id": rule.id, "error_type": type(e).__name__},
            )
            record_rule_error()
            return ProcessingResult.from_error(rule.id)

        record_rule_outcome(outcome)
        return ProcessingResult.from_outcome(outcome)

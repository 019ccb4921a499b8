"""Prometheus metrics for sweep outcomes, rule processing and job tracker aggregates"""

from prometheus_client import REGISTRY, Counter, Histogram
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from recurring_cron.domain.models import RuleOutcome
from recurring_cron.services.job_tracker import JobTracker, job_tracker
from recurring_cron.utils.date_utils import process_uptime_seconds

# Sweep metrics
sweep_counter = Counter(
    "recurring_sweep_total",
    "Recurring transaction sweeps executed",
    ["job_name", "outcome"],  # completed | failed | skipped
)

sweep_duration_histogram = Histogram(
    "recurring_sweep_duration_seconds",
    "Wall time of a full sweep",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0],
)

# Rule metrics
rule_outcome_counter = Counter(
    "recurring_rule_outcomes_total",
    "Per-rule processing outcomes",
    ["outcome"],  # created | skipped | error
)

rule_deactivation_counter = Counter(
    "recurring_rule_deactivations_total",
    "Rules retired by the sweep",
    ["reason"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_rule_outcome(outcome: RuleOutcome) -> None:
    rule_outcome_counter.labels(outcome="skipped" if outcome.skipped else "created").inc()
    if outcome.deactivation_reason:
        rule_deactivation_counter.labels(reason=outcome.deactivation_reason).inc()


def record_rule_error() -> None:
    rule_outcome_counter.labels(outcome="error").inc()


def record_sweep(job_name: str, duration_seconds: float) -> None:
    """Record a finished sweep; a sweep with rule errors still counts as completed"""
    sweep_counter.labels(job_name=job_name, outcome="completed").inc()
    sweep_duration_histogram.observe(duration_seconds)


def record_sweep_failure(job_name: str, duration_seconds: float) -> None:
    sweep_counter.labels(job_name=job_name, outcome="failed").inc()
    sweep_duration_histogram.observe(duration_seconds)


def record_sweep_skipped(job_name: str) -> None:
    sweep_counter.labels(job_name=job_name, outcome="skipped").inc()


class JobTrackerCollector:
    """Exports JobTracker aggregates at scrape time"""

    def __init__(self, tracker: JobTracker):
        self.tracker = tracker

    def collect(self):
        stats = self.tracker.get_job_stats()
        # Counters read lifetime totals; the history behind stats is bounded
        totals = self.tracker.get_lifetime_totals()

        total = CounterMetricFamily("recurring_cron_jobs", "Total number of tracked job executions")
        total.add_metric([], totals["executions"])
        yield total

        failed = CounterMetricFamily("recurring_cron_jobs_failed", "Total number of failed job executions")
        failed.add_metric([], totals["failures"])
        yield failed

        yield GaugeMetricFamily(
            "recurring_cron_jobs_duration_avg_ms",
            "Average job duration in milliseconds",
            value=stats["average_duration"],
        )
        yield GaugeMetricFamily(
            "recurring_cron_jobs_running",
            "Jobs currently running",
            value=len(self.tracker.get_running_jobs()),
        )
        yield GaugeMetricFamily(
            "recurring_cron_uptime_seconds",
            "Service uptime in seconds",
            value=process_uptime_seconds(),
        )


REGISTRY.register(JobTrackerCollector(job_tracker))

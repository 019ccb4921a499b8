"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from recurring_cron.config import settings
from recurring_cron.domain.models import ProcessingResult


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # APScheduler logs every job submission at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def log_sweep_result(
    job_id: str,
    job_name: str,
    result: ProcessingResult,
    duration_ms: float,
) -> None:
    """Log structured sweep outcome for analysis"""
    logging.info(
        "Sweep completed",
        extra={
            "job_id": job_id,
            "job_name": job_name,
            "step": "sweep_complete",
            "processed": result.processed,
            "errors": result.errors,
            "created_transactions": result.created_transactions,
            "deactivated_rules": result.deactivated_rules,
            "skipped_first_occurrences": result.skipped_first_occurrences,
            "duration_ms": duration_ms,
        },
    )

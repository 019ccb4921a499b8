"""Job status, history, stats and manual trigger endpoints"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from recurring_cron.api.v1.schemas import (
    JobExecutionSchema,
    JobHistoryResponse,
    JobStatsSchema,
    JobStatusResponse,
    ProcessingResultSchema,
    TriggerResponse,
)
from recurring_cron.api.dependencies import (
    get_job_tracker,
    get_request_id,
    get_sweep_runner,
    verify_cron_secret,
)
from recurring_cron.domain.exceptions import StoreIntegrityError, StoreUnavailableError, SweepAlreadyRunningError
from recurring_cron.infrastructure.observability.metrics import record_sweep_skipped
from recurring_cron.services.job_tracker import JobTracker
from recurring_cron.services.sweep import MANUAL_JOB, SweepRunner

router = APIRouter()


@router.get("/jobs/status", response_model=JobStatusResponse)
def get_status(tracker: JobTracker = Depends(get_job_tracker)):
    """Running jobs, the five latest executions and global stats"""
    return JobStatusResponse(**tracker.get_status())


@router.get("/jobs/history", response_model=JobHistoryResponse)
@router.get("/jobs/history/{job_name}", response_model=JobHistoryResponse)
def get_history(
    job_name: Optional[str] = None,
    limit: int = Query(10, ge=1, le=1000),
    tracker: JobTracker = Depends(get_job_tracker),
):
    """Most recent executions first"""
    history = [JobExecutionSchema(**execution.to_dict()) for execution in tracker.get_job_history(job_name, limit)]
    return JobHistoryResponse(job_name=job_name, history=history)


@router.get("/jobs/stats", response_model=JobStatsSchema)
@router.get("/jobs/stats/{job_name}", response_model=JobStatsSchema)
def get_stats(job_name: Optional[str] = None, tracker: JobTracker = Depends(get_job_tracker)):
    return JobStatsSchema(**tracker.get_job_stats(job_name))


@router.post(
    "/jobs/trigger/recurring-transactions",
    response_model=TriggerResponse,
    dependencies=[Depends(verify_cron_secret)],
)
def trigger_recurring_transactions(
    request: Request,
    runner: SweepRunner = Depends(get_sweep_runner),
):
    """
    Run a sweep now, on the same code path as the daily schedule.

    Returns:
        Job id and sweep counts; per-rule errors are reported in the counts
    """
    request_id = get_request_id(request)

    try:
        job_id, result = runner.run_tracked(MANUAL_JOB)
    except SweepAlreadyRunningError as e:
        record_sweep_skipped(MANUAL_JOB)
        logging.warning(f"Manual trigger rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))
    except (StoreUnavailableError, StoreIntegrityError) as e:
        logging.error(f"Rule store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Rule store unavailable")
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Failed to process recurring transactions")

    return TriggerResponse(success=True, job_id=job_id, result=ProcessingResultSchema(**result.to_dict()))

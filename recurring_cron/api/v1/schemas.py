"""Pydantic schemas for API responses"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ProcessingResultSchema(BaseModel):
    """Counts produced by one sweep"""

    processed: int
    errors: int
    created_transactions: int
    deactivated_rules: int
    skipped_first_occurrences: int = 0
    failed_rule_ids: List[str] = Field(default_factory=list)


class TriggerResponse(BaseModel):
    """Response for POST /v1/jobs/trigger/recurring-transactions"""

    success: bool
    job_id: str
    result: ProcessingResultSchema


class JobExecutionSchema(BaseModel):
    """One finished or running job execution"""

    id: str
    job_name: str
    status: str
    start_time: str
    end_time: Optional[str] = None
    duration_ms: Optional[float] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class RunningJobSchema(BaseModel):
    id: str
    job_name: str
    start_time: str
    duration_ms: float


class JobStatsSchema(BaseModel):
    """Aggregates over the retained history"""

    total_executions: int
    successful_executions: int
    failed_executions: int
    average_duration: float
    last_execution: Optional[JobExecutionSchema] = None


class JobStatusResponse(BaseModel):
    """Response for GET /v1/jobs/status"""

    running_jobs: List[RunningJobSchema]
    recent_executions: List[JobExecutionSchema]
    stats: JobStatsSchema


class JobHistoryResponse(BaseModel):
    """Response for GET /v1/jobs/history"""

    job_name: Optional[str] = None
    history: List[JobExecutionSchema]

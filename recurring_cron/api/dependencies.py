"""Dependency injection for FastAPI endpoints"""

import secrets
from typing import Optional
from fastapi import Header, HTTPException, Request
from recurring_cron.config import settings
from recurring_cron.services.job_tracker import JobTracker
from recurring_cron.services.sweep import SweepRunner

def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")

def get_sweep_runner(request: Request) -> SweepRunner:
    """Provide the app-wide sweep runner (shared with the scheduler)"""
    return request.app.state.sweep_runner

def get_job_tracker(request: Request) -> JobTracker:
    return request.app.state.job_tracker


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    """Require "Bearer <CRON_SECRET>" when a secret is configured"""
    if not settings.cron_secret:
        return
    expected = f"Bearer {settings.cron_secret}".encode("utf-8")
    # Bytes comparison: compare_digest rejects non-ASCII str
    if authorization is None or not secrets.compare_digest(authorization.encode("utf-8"), expected):
        raise HTTPException(status_code=401, detail="Unauthorized")

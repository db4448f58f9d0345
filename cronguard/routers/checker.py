"""Checker API routes.

This module provides FastAPI endpoints for the background monitor checker:
- Get checker status
- Run an overdue check on demand
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.database import get_db
from cronguard.routers.monitors import ErrorResponse
from cronguard.services.checker import (
    CheckResult,
    MonitorChecker,
    get_monitor_checker,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/checker", tags=["Checker"])


# Pydantic Models

class CheckerStatusResponse(BaseModel):
    """Response model for checker status.

    Attributes:
        is_running: Whether the checker's scheduler is running.
        check_interval_seconds: Seconds between overdue checks.
        next_check_time: The next scheduled overdue check, if any.
        next_cleanup_time: The next scheduled archive cleanup, if any.
        last_check: Summary of the most recent check, if any.
    """

    is_running: bool = Field(default=False, description="Whether the checker is running")
    check_interval_seconds: int = Field(..., description="Seconds between overdue checks")
    next_check_time: Optional[datetime] = Field(default=None, description="Next overdue check")
    next_cleanup_time: Optional[datetime] = Field(default=None, description="Next archive cleanup")
    last_check: Optional[CheckResult] = Field(default=None, description="Most recent check")


# Dependency

def get_checker() -> MonitorChecker:
    """Dependency to get the monitor checker instance."""
    return get_monitor_checker()


# API Endpoints

@router.get(
    "/status",
    response_model=CheckerStatusResponse,
    summary="Get checker status",
)
async def get_status(
    checker: MonitorChecker = Depends(get_checker),
) -> CheckerStatusResponse:
    checker_status = checker.get_status()

    logger.info(
        f"Checker status requested: running={checker_status.is_running}, "
        f"interval={checker_status.check_interval_seconds}s"
    )

    return CheckerStatusResponse(
        is_running=checker_status.is_running,
        check_interval_seconds=checker_status.check_interval_seconds,
        next_check_time=checker_status.next_check_time,
        next_cleanup_time=checker_status.next_cleanup_time,
        last_check=checker_status.last_check,
    )


@router.post(
    "/run",
    response_model=CheckResult,
    responses={500: {"model": ErrorResponse, "description": "Check failed"}},
    summary="Run an overdue check now",
)
async def run_check(
    checker: MonitorChecker = Depends(get_checker),
    db: AsyncSession = Depends(get_db),
) -> CheckResult:
    """Run one overdue check immediately, outside the schedule.

    Overdue monitors are moved to LATE or DOWN exactly as the scheduled
    check would, and down alerts are sent.
    """
    try:
        return await checker.run_check(db_session=db)
    except Exception as e:
        logger.error(f"Manual overdue check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Check failed: {str(e)}",
        )

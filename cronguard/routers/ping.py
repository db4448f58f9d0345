"""Ping API routes used by monitored jobs to check in.

Each endpoint accepts GET as well as POST so a job can ping with a bare
``curl`` call.
"""

import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.database import get_db
from cronguard.models.monitor import Monitor
from cronguard.services.alerts import AlertNotifier, get_alert_notifier
from cronguard.services.clock import Clock, get_clock
from cronguard.services.monitors import MonitorNotFoundError, get_monitor_by_slug
from cronguard.services.pings import (
    PingSource,
    record_failure,
    record_start,
    record_success,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ping", tags=["Ping"])


class PingResponse(BaseModel):
    status: str
    next: Optional[datetime] = None


class StartResponse(BaseModel):
    status: str
    started_at: Optional[datetime] = None


class FailResponse(BaseModel):
    status: str
    message: Optional[str] = None
    duration_ms: Optional[int] = None


def get_notifier() -> AlertNotifier:
    """Dependency to get the alert notifier instance."""
    return get_alert_notifier()


def ping_source(request: Request) -> PingSource:
    """Client address and user agent of a check-in."""
    ip_address = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip")
    if ip_address is None and request.client is not None:
        ip_address = request.client.host
    return PingSource(ip_address=ip_address, user_agent=request.headers.get("user-agent"))


async def _load_monitor(db: AsyncSession, slug: str) -> Monitor:
    try:
        return await get_monitor_by_slug(db, slug)
    except MonitorNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Monitor not found")


async def _failure_message(request: Request) -> Optional[str]:
    """Read the optional ``message`` field of a JSON body."""
    body = await request.body()
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if isinstance(data, dict) and data.get("message") is not None:
        return str(data["message"])
    return None


@router.api_route(
    "/{slug}",
    methods=["GET", "POST"],
    response_model=PingResponse,
    response_model_exclude_none=True,
    summary="Report a successful run",
)
async def ping(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: AlertNotifier = Depends(get_notifier),
) -> PingResponse:
    monitor = await _load_monitor(db, slug)
    outcome = await record_success(db, monitor, clock(), ping_source(request), notifier)
    return PingResponse(status=outcome.status, next=outcome.next_expected_at)


@router.api_route(
    "/{slug}/start",
    methods=["GET", "POST"],
    response_model=StartResponse,
    response_model_exclude_none=True,
    summary="Report that a run has started",
)
async def ping_start(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> StartResponse:
    monitor = await _load_monitor(db, slug)
    outcome = await record_start(db, monitor, clock(), ping_source(request))
    return StartResponse(status=outcome.status, started_at=outcome.started_at)


@router.api_route(
    "/{slug}/fail",
    methods=["GET", "POST"],
    response_model=FailResponse,
    response_model_exclude_none=True,
    summary="Report a failed run",
)
async def ping_fail(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: AlertNotifier = Depends(get_notifier),
) -> FailResponse:
    """Report a failed run.

    An optional JSON body ``{"message": "..."}`` describes the failure.
    """
    monitor = await _load_monitor(db, slug)
    message = await _failure_message(request)
    outcome = await record_failure(
        db, monitor, clock(), message=message, source=ping_source(request), notifier=notifier
    )
    return FailResponse(status=outcome.status, message=outcome.message, duration_ms=outcome.duration_ms)

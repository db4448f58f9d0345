"""Public status page, history and badge API routes.

These endpoints need no authentication and only expose monitors whose
status page is enabled. Responses may be embedded on other sites, so they
allow any origin.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.database import get_db
from cronguard.routers.monitors import IncidentResponse, UptimeWindowResponse, incident_response
from cronguard.services.badges import (
    GRAY,
    render_badge,
    status_badge_data,
    uptime_color,
)
from cronguard.services.clock import Clock, get_clock
from cronguard.services.monitors import (
    find_monitor_by_slug,
    list_incidents,
    list_recent_incidents,
)
from cronguard.services.uptime import (
    DEFAULT_HISTORY_DAYS,
    calculate_uptime,
    daily_uptime_history,
    effective_window_start,
    spans_from_incidents,
)


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Public"])

PUBLIC_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

STATUS_BADGE_MAX_AGE = 60
UPTIME_BADGE_MAX_AGE = 300
HISTORY_MAX_AGE = 300

RECENT_INCIDENT_WINDOW = timedelta(days=30)
RECENT_INCIDENTS_SHOWN = 10

BADGE_PERIODS = {"30d": timedelta(days=30), "90d": timedelta(days=90)}


# Pydantic Models

class PublicMonitor(BaseModel):
    name: str
    status: str
    last_ping_at: Optional[datetime] = None
    created_at: datetime
    status_page_title: Optional[str] = None
    status_page_description: Optional[str] = None


class PublicUptime(BaseModel):
    last_30d: UptimeWindowResponse
    last_90d: UptimeWindowResponse


class PublicIncidents(BaseModel):
    recent: List[IncidentResponse]


class PublicAnalytics(BaseModel):
    uptime: PublicUptime
    incidents: PublicIncidents


class StatusPageResponse(BaseModel):
    """Response model for a public status page."""

    monitor: PublicMonitor
    analytics: PublicAnalytics


class DailyUptimeResponse(BaseModel):
    date: date
    uptime: float = Field(..., description="Uptime percentage rounded to 2 decimals")


class HistoryResponse(BaseModel):
    daily_uptime: List[DailyUptimeResponse]


def _svg(svg: str, max_age: int) -> Response:
    headers = dict(PUBLIC_HEADERS)
    headers["Cache-Control"] = f"public, max-age={max_age}, s-maxage={max_age}"
    return Response(content=svg, media_type="image/svg+xml", headers=headers)


# API Endpoints

@router.get(
    "/api/status/{slug}",
    response_model=StatusPageResponse,
    summary="Get public status page data",
)
async def get_status_page(
    slug: str,
    response: Response,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> StatusPageResponse:
    """Public status page data: 30 and 90 day uptime and recent incidents."""
    monitor = await find_monitor_by_slug(db, slug)
    if monitor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Monitor not found")
    if not monitor.status_page_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Status page not enabled")

    now = clock()
    created_at = monitor.created_at or now
    start_90d = effective_window_start(timedelta(days=90), created_at, now)
    start_30d = effective_window_start(timedelta(days=30), created_at, now)

    spans = spans_from_incidents(await list_incidents(db, monitor.id, since=start_90d))
    uptime_30d = calculate_uptime(spans, start_30d, now)
    uptime_90d = calculate_uptime(spans, start_90d, now)

    recent = await list_recent_incidents(
        db, monitor.id, limit=RECENT_INCIDENTS_SHOWN, since=now - RECENT_INCIDENT_WINDOW
    )

    response.headers.update(PUBLIC_HEADERS)
    return StatusPageResponse(
        monitor=PublicMonitor(
            name=monitor.name,
            status=monitor.status,
            last_ping_at=monitor.last_ping_at,
            created_at=created_at,
            status_page_title=monitor.status_page_title or None,
            status_page_description=monitor.status_page_description or None,
        ),
        analytics=PublicAnalytics(
            uptime=PublicUptime(
                last_30d=UptimeWindowResponse(
                    uptime=uptime_30d.uptime_percent, downtime_ms=uptime_30d.downtime_ms
                ),
                last_90d=UptimeWindowResponse(
                    uptime=uptime_90d.uptime_percent, downtime_ms=uptime_90d.downtime_ms
                ),
            ),
            incidents=PublicIncidents(recent=[incident_response(i, now) for i in recent]),
        ),
    )


@router.get(
    "/api/status/{slug}/history",
    response_model=HistoryResponse,
    summary="Get daily uptime history",
)
async def get_status_history(
    slug: str,
    response: Response,
    days: int = Query(default=DEFAULT_HISTORY_DAYS, ge=1, le=DEFAULT_HISTORY_DAYS),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> HistoryResponse:
    """Daily uptime bars for the last ``days`` UTC days, oldest first."""
    monitor = await find_monitor_by_slug(db, slug)
    if monitor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Monitor not found")
    if not monitor.status_page_enabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Status page not enabled")

    now = clock()
    created_at = monitor.created_at or now
    since = now - timedelta(days=days)
    spans = spans_from_incidents(await list_incidents(db, monitor.id, since=since))
    history = daily_uptime_history(spans, created_at, now, days=days)

    response.headers.update(PUBLIC_HEADERS)
    response.headers["Cache-Control"] = f"public, max-age={HISTORY_MAX_AGE}, s-maxage={HISTORY_MAX_AGE}"
    return HistoryResponse(
        daily_uptime=[DailyUptimeResponse(date=d.day, uptime=d.uptime_percent) for d in history]
    )


@router.get(
    "/api/badge/{slug}",
    response_class=Response,
    summary="Get a status badge",
)
async def get_status_badge(
    slug: str,
    style: str = Query(default="flat"),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """SVG badge showing the monitor's status.

    Missing or private monitors get a grey badge rather than an error so
    embedded images never break.
    """
    try:
        monitor = await find_monitor_by_slug(db, slug)
        if monitor is None:
            return _svg(render_badge("monitor", "not found", GRAY, style), STATUS_BADGE_MAX_AGE)
        if not monitor.status_page_enabled:
            return _svg(render_badge("monitor", "private", GRAY, style), STATUS_BADGE_MAX_AGE)

        badge = status_badge_data(monitor.status)
        return _svg(render_badge(badge.label, badge.message, badge.color, style), STATUS_BADGE_MAX_AGE)
    except Exception as e:
        logger.error(f"Badge generation failed for {slug}: {e}")
        return _svg(render_badge("monitor", "error", GRAY, style), STATUS_BADGE_MAX_AGE)


@router.get(
    "/api/badge/{slug}/uptime",
    response_class=Response,
    summary="Get an uptime badge",
)
async def get_uptime_badge(
    slug: str,
    style: str = Query(default="flat"),
    period: Literal["30d", "90d"] = Query(default="30d"),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Response:
    """SVG badge showing uptime over the last 30 or 90 days."""
    try:
        monitor = await find_monitor_by_slug(db, slug)
        if monitor is None:
            return _svg(render_badge("uptime", "not found", GRAY, style), UPTIME_BADGE_MAX_AGE)
        if not monitor.status_page_enabled:
            return _svg(render_badge("uptime", "private", GRAY, style), UPTIME_BADGE_MAX_AGE)

        now = clock()
        window_start = effective_window_start(BADGE_PERIODS[period], monitor.created_at or now, now)
        spans = spans_from_incidents(await list_incidents(db, monitor.id, since=window_start))
        uptime = calculate_uptime(spans, window_start, now).uptime_percent

        return _svg(
            render_badge("uptime", f"{uptime:.2f}%", uptime_color(uptime), style),
            UPTIME_BADGE_MAX_AGE,
        )
    except Exception as e:
        logger.error(f"Uptime badge generation failed for {slug}: {e}")
        return _svg(render_badge("uptime", "error", GRAY, style), UPTIME_BADGE_MAX_AGE)

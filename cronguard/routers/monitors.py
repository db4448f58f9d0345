"""Monitor management and analytics API routes.

This module provides FastAPI endpoints for:
- Creating, listing, updating, archiving and deleting monitors
- Monitor analytics (rolling uptime, incident statistics, recent pings)
- Paginated incident history
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.config import get_settings
from cronguard.database import get_db
from cronguard.models.enums import AlertEvent, MonitorStatus
from cronguard.models.incident import Incident
from cronguard.models.monitor import Monitor
from cronguard.routers.ping import get_notifier
from cronguard.services.alerts import AlertNotifier, build_payload
from cronguard.services.clock import Clock, get_clock
from cronguard.services.monitors import (
    MonitorNotFoundError,
    get_monitor,
    list_incidents,
    list_monitors,
    list_recent_incidents,
    list_recent_pings,
    slugify,
)
from cronguard.services.uptime import (
    incident_statistics,
    rolling_uptime,
    spans_from_incidents,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/monitors", tags=["Monitors"])

MIN_EXPECTED_INTERVAL = 60
MAX_EXPECTED_INTERVAL = 86400 * 7
MAX_GRACE_PERIOD = 3600

ANALYTICS_PING_LIMIT = 100
RECENT_PINGS_SHOWN = 20
RECENT_INCIDENTS_SHOWN = 10


# Pydantic Models

class MonitorCreate(BaseModel):
    """Request model for creating a monitor."""

    name: str = Field(..., min_length=1, max_length=100)
    expected_interval: int = Field(
        ...,
        ge=MIN_EXPECTED_INTERVAL,
        le=MAX_EXPECTED_INTERVAL,
        description="Seconds between expected pings (1 minute to 7 days)",
    )
    grace_period: Optional[int] = Field(
        default=None,
        ge=0,
        le=MAX_GRACE_PERIOD,
        description="Extra seconds allowed before the monitor is DOWN",
    )
    owner_id: Optional[str] = Field(default=None, max_length=128)
    team_id: Optional[str] = Field(default=None, max_length=128)
    webhook_url: Optional[AnyHttpUrl] = None
    timezone: str = Field(default="UTC", max_length=64)
    status_page_enabled: bool = False
    status_page_title: Optional[str] = Field(default=None, max_length=100)
    status_page_description: Optional[str] = Field(default=None, max_length=500)


class MonitorUpdate(BaseModel):
    """Request model for updating monitor settings. Omitted fields are unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    expected_interval: Optional[int] = Field(
        default=None, ge=MIN_EXPECTED_INTERVAL, le=MAX_EXPECTED_INTERVAL
    )
    grace_period: Optional[int] = Field(default=None, ge=0, le=MAX_GRACE_PERIOD)
    webhook_url: Optional[AnyHttpUrl] = None
    timezone: Optional[str] = Field(default=None, max_length=64)
    status_page_enabled: Optional[bool] = None
    status_page_title: Optional[str] = Field(default=None, max_length=100)
    status_page_description: Optional[str] = Field(default=None, max_length=500)
    paused: Optional[bool] = Field(default=None, description="Pause or resume the monitor")

    @field_validator(
        "name", "expected_interval", "grace_period", "timezone", "status_page_enabled", "paused",
        mode="before",
    )
    @classmethod
    def reject_null(cls, v):
        """Omit a field to leave it unchanged; null is not a valid value."""
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class MonitorResponse(BaseModel):
    """Response model for a monitor."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: Optional[str] = None
    team_id: Optional[str] = None
    name: str
    slug: str
    status: str
    expected_interval: int
    grace_period: int
    last_ping_at: Optional[datetime] = None
    next_expected_at: Optional[datetime] = None
    last_started_at: Optional[datetime] = None
    last_duration_ms: Optional[int] = None
    webhook_url: Optional[str] = None
    timezone: str
    status_page_enabled: bool
    status_page_title: Optional[str] = None
    status_page_description: Optional[str] = None
    archived_at: Optional[datetime] = None
    delete_after: Optional[datetime] = None
    created_at: datetime


class MonitorListResponse(BaseModel):
    monitors: List[MonitorResponse]
    total: int


class IncidentResponse(BaseModel):
    """Response model for an incident."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    started_at: datetime
    resolved_at: Optional[datetime] = None
    type: str
    message: Optional[str] = None
    duration_ms: Optional[int] = None


class IncidentListResponse(BaseModel):
    incidents: List[IncidentResponse]
    limit: int
    offset: int


class UptimeWindowResponse(BaseModel):
    uptime: float = Field(..., description="Uptime percentage, 0-100")
    downtime_ms: int = Field(..., description="Merged downtime in milliseconds")


class RecentPing(BaseModel):
    received_at: datetime
    type: str
    ip_address: Optional[str] = None


class PingSummary(BaseModel):
    total: int
    recent: List[RecentPing]


class IncidentSummary(BaseModel):
    total: int
    total_downtime_ms: int
    average_duration_ms: int
    recent: List[IncidentResponse]


class CurrentStatus(BaseModel):
    status: str
    last_ping_at: Optional[datetime] = None
    next_expected_at: Optional[datetime] = None


class MonitorAnalyticsResponse(BaseModel):
    """Response model for monitor analytics."""

    uptime: Dict[str, UptimeWindowResponse]
    pings: PingSummary
    incidents: IncidentSummary
    current_status: CurrentStatus


class ErrorResponse(BaseModel):
    """Response model for error messages."""

    detail: str


def _ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


def incident_response(incident: Incident, now: datetime) -> IncidentResponse:
    """Serialize an incident; ongoing incidents report their duration so far."""
    duration_ms = incident.duration_ms
    if duration_ms is None:
        end = incident.resolved_at or now
        duration_ms = _ms(end - incident.started_at)
    return IncidentResponse(
        id=incident.id,
        started_at=incident.started_at,
        resolved_at=incident.resolved_at,
        type=incident.type,
        message=incident.message,
        duration_ms=duration_ms,
    )


async def _load_monitor(db: AsyncSession, monitor_id: uuid.UUID) -> Monitor:
    try:
        return await get_monitor(db, monitor_id)
    except MonitorNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# API Endpoints

@router.get(
    "",
    response_model=MonitorListResponse,
    summary="List monitors",
)
async def get_monitors(
    owner_id: Optional[str] = Query(default=None, description="Only monitors of this owner"),
    db: AsyncSession = Depends(get_db),
) -> MonitorListResponse:
    """List non-archived monitors, newest first."""
    monitors = await list_monitors(db, owner_id=owner_id)
    return MonitorListResponse(
        monitors=[MonitorResponse.model_validate(m) for m in monitors],
        total=len(monitors),
    )


@router.post(
    "",
    response_model=MonitorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a monitor",
)
async def create_monitor(
    payload: MonitorCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MonitorResponse:
    """Create a monitor in the PENDING state.

    The first ping is expected ``expected_interval`` seconds after creation.
    """
    now = clock()
    grace_period = payload.grace_period
    if grace_period is None:
        grace_period = get_settings().default_grace_period_seconds

    monitor = Monitor(
        id=uuid.uuid4(),
        owner_id=payload.owner_id,
        team_id=payload.team_id,
        name=payload.name,
        slug=slugify(payload.name, now),
        status=MonitorStatus.PENDING.value,
        expected_interval=payload.expected_interval,
        grace_period=grace_period,
        last_ping_at=None,
        next_expected_at=now + timedelta(seconds=payload.expected_interval),
        webhook_url=str(payload.webhook_url) if payload.webhook_url else None,
        timezone=payload.timezone,
        status_page_enabled=payload.status_page_enabled,
        status_page_title=payload.status_page_title,
        status_page_description=payload.status_page_description,
        created_at=now,
    )
    db.add(monitor)
    await db.flush()

    logger.info(f"Created monitor {monitor.slug} ({monitor.id})")
    return MonitorResponse.model_validate(monitor)


@router.get(
    "/{monitor_id}",
    response_model=MonitorResponse,
    responses={404: {"model": ErrorResponse, "description": "Monitor not found"}},
    summary="Get a monitor",
)
async def get_monitor_by_id(
    monitor_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> MonitorResponse:
    monitor = await _load_monitor(db, monitor_id)
    return MonitorResponse.model_validate(monitor)


@router.patch(
    "/{monitor_id}",
    response_model=MonitorResponse,
    responses={404: {"model": ErrorResponse, "description": "Monitor not found"}},
    summary="Update monitor settings",
)
async def update_monitor(
    monitor_id: uuid.UUID,
    payload: MonitorUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: AlertNotifier = Depends(get_notifier),
) -> MonitorResponse:
    """Update monitor settings.

    ``paused: true`` pauses the monitor; ``paused: false`` resumes a paused
    monitor as PENDING with a fresh expected ping time. Either transition
    sends a paused or resumed alert.
    """
    monitor = await _load_monitor(db, monitor_id)
    changes = payload.model_dump(exclude_unset=True)
    paused = changes.pop("paused", None)

    for field, value in changes.items():
        if field == "webhook_url" and value is not None:
            value = str(value)
        setattr(monitor, field, value)

    now = clock()
    event = None
    if paused is True and monitor.status != MonitorStatus.PAUSED.value:
        monitor.status = MonitorStatus.PAUSED.value
        event = AlertEvent.PAUSED
        logger.info(f"Paused monitor {monitor.slug}")
    elif paused is False and monitor.status == MonitorStatus.PAUSED.value:
        monitor.status = MonitorStatus.PENDING.value
        monitor.next_expected_at = now + timedelta(seconds=monitor.expected_interval)
        event = AlertEvent.RESUMED
        logger.info(f"Resumed monitor {monitor.slug}")

    await db.flush()

    if event is not None:
        await notifier.send(monitor, build_payload(monitor, event, now))

    return MonitorResponse.model_validate(monitor)


@router.delete(
    "/{monitor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Monitor not found"}},
    summary="Delete a monitor",
)
async def delete_monitor(
    monitor_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a monitor together with its incidents and pings."""
    monitor = await _load_monitor(db, monitor_id)
    await db.delete(monitor)
    await db.flush()
    logger.info(f"Deleted monitor {monitor_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{monitor_id}/archive",
    response_model=MonitorResponse,
    responses={404: {"model": ErrorResponse, "description": "Monitor not found"}},
    summary="Archive a monitor",
)
async def archive_monitor(
    monitor_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MonitorResponse:
    """Soft-archive a monitor.

    Archived monitors are paused, hidden from listings and deleted by the
    archive cleanup once the retention period has passed.
    """
    monitor = await _load_monitor(db, monitor_id)
    if monitor.archived_at is None:
        now = clock()
        monitor.archived_at = now
        monitor.delete_after = now + timedelta(days=get_settings().archive_retention_days)
        monitor.status = MonitorStatus.PAUSED.value
        await db.flush()
        logger.info(f"Archived monitor {monitor.slug}, deleting after {monitor.delete_after}")
    return MonitorResponse.model_validate(monitor)


@router.get(
    "/{monitor_id}/analytics",
    response_model=MonitorAnalyticsResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Monitor not found"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Get monitor analytics",
)
async def get_monitor_analytics(
    monitor_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MonitorAnalyticsResponse:
    """Get analytics for a monitor.

    This endpoint provides:
    - Uptime over the last 24 hours, 7, 30 and 90 days and all time, each
      window starting no earlier than the monitor's creation
    - Incident totals with overlapping incidents merged
    - The most recent pings and incidents
    - The monitor's current status
    """
    monitor = await _load_monitor(db, monitor_id)

    try:
        now = clock()
        created_at = monitor.created_at or now

        incidents = await list_incidents(db, monitor.id)
        pings = await list_recent_pings(db, monitor.id, limit=ANALYTICS_PING_LIMIT)

        spans = spans_from_incidents(incidents)
        windows = rolling_uptime(spans, created_at, now)
        stats = incident_statistics(spans, now)

        recent_incidents = sorted(incidents, key=lambda i: i.started_at, reverse=True)
        return MonitorAnalyticsResponse(
            uptime={
                name: UptimeWindowResponse(
                    uptime=window.uptime_percent,
                    downtime_ms=window.downtime_ms,
                )
                for name, window in windows.items()
            },
            pings=PingSummary(
                total=len(pings),
                recent=[
                    RecentPing(received_at=p.received_at, type=p.type, ip_address=p.ip_address)
                    for p in pings[:RECENT_PINGS_SHOWN]
                ],
            ),
            incidents=IncidentSummary(
                total=stats.total,
                total_downtime_ms=_ms(stats.total_downtime),
                average_duration_ms=_ms(stats.average_duration),
                recent=[
                    incident_response(i, now)
                    for i in recent_incidents[:RECENT_INCIDENTS_SHOWN]
                ],
            ),
            current_status=CurrentStatus(
                status=monitor.status,
                last_ping_at=monitor.last_ping_at,
                next_expected_at=monitor.next_expected_at,
            ),
        )

    except Exception as e:
        logger.error(f"Error computing analytics for monitor {monitor_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to compute analytics: {str(e)}",
        )


@router.get(
    "/{monitor_id}/incidents",
    response_model=IncidentListResponse,
    responses={404: {"model": ErrorResponse, "description": "Monitor not found"}},
    summary="List monitor incidents",
)
async def get_monitor_incidents(
    monitor_id: uuid.UUID,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> IncidentListResponse:
    """List a monitor's incidents, newest first."""
    monitor = await _load_monitor(db, monitor_id)
    incidents = await list_recent_incidents(db, monitor.id, limit=limit, offset=offset)
    now = clock()
    return IncidentListResponse(
        incidents=[incident_response(i, now) for i in incidents],
        limit=limit,
        offset=offset,
    )

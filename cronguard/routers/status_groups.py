"""Status group API routes.

This module provides FastAPI endpoints for:
- Managing status groups (create, list, get, update, delete)
- The public status group page combining several monitors
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.database import get_db
from cronguard.models.enums import OverallStatus
from cronguard.models.status_group import StatusGroup
from cronguard.routers.monitors import ErrorResponse
from cronguard.routers.status import PUBLIC_HEADERS
from cronguard.services.clock import Clock, get_clock
from cronguard.services.monitors import (
    InvalidMonitorConfigError,
    StatusGroupNotFoundError,
    find_status_group_by_slug,
    get_monitors_by_ids,
    get_status_group,
    list_incidents,
    list_status_groups,
    slugify,
    validate_monitor_ids,
)
from cronguard.services.status_page import (
    GroupStats,
    display_name,
    group_stats,
    overall_status,
    statuses_of,
)
from cronguard.services.uptime import (
    calculate_uptime,
    effective_window_start,
    spans_from_incidents,
)


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Status Groups"])

MAX_GROUP_MONITORS = 50
GROUP_MAX_AGE = 30
GROUP_UPTIME_PERIOD = timedelta(days=30)


# Pydantic Models

class StatusGroupCreate(BaseModel):
    """Request model for creating a status group."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    monitor_ids: List[str] = Field(
        ...,
        min_length=1,
        max_length=MAX_GROUP_MONITORS,
        description="Monitors shown on the group page, in display order",
    )
    custom_title: Optional[str] = Field(default=None, max_length=100)
    custom_description: Optional[str] = Field(default=None, max_length=500)
    enabled: bool = True
    owner_id: Optional[str] = Field(default=None, max_length=128)


class StatusGroupUpdate(BaseModel):
    """Request model for updating a status group. Omitted fields are unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    monitor_ids: Optional[List[str]] = Field(
        default=None, min_length=1, max_length=MAX_GROUP_MONITORS
    )
    custom_title: Optional[str] = Field(default=None, max_length=100)
    custom_description: Optional[str] = Field(default=None, max_length=500)
    enabled: Optional[bool] = None

    @field_validator("name", "monitor_ids", "enabled", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class StatusGroupResponse(BaseModel):
    """Response model for a status group."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: Optional[str] = None
    name: str
    slug: str
    description: Optional[str] = None
    custom_title: Optional[str] = None
    custom_description: Optional[str] = None
    enabled: bool
    monitor_ids: List[str]
    created_at: datetime


class StatusGroupListResponse(BaseModel):
    groups: List[StatusGroupResponse]
    total: int


class PublicGroup(BaseModel):
    name: str
    description: Optional[str] = None
    custom_title: Optional[str] = None
    custom_description: Optional[str] = None


class PublicGroupMonitor(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    status: str
    last_ping_at: Optional[datetime] = None
    uptime_30d: float = Field(..., description="30 day uptime rounded to 2 decimals")


class PublicStatusGroupResponse(BaseModel):
    """Response model for the public status group page."""

    group: PublicGroup
    overall_status: OverallStatus
    monitors: List[PublicGroupMonitor]
    stats: GroupStats


async def _load_group(db: AsyncSession, group_id: uuid.UUID) -> StatusGroup:
    try:
        return await get_status_group(db, group_id)
    except StatusGroupNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


async def _checked_monitor_ids(
    db: AsyncSession, monitor_ids: List[str], owner_id: Optional[str]
) -> List[str]:
    try:
        return await validate_monitor_ids(db, monitor_ids, owner_id=owner_id)
    except InvalidMonitorConfigError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# Management Endpoints

@router.get(
    "/api/status-groups",
    response_model=StatusGroupListResponse,
    summary="List status groups",
)
async def get_status_groups(
    owner_id: Optional[str] = Query(default=None, description="Only groups of this owner"),
    db: AsyncSession = Depends(get_db),
) -> StatusGroupListResponse:
    groups = await list_status_groups(db, owner_id=owner_id)
    return StatusGroupListResponse(
        groups=[StatusGroupResponse.model_validate(g) for g in groups],
        total=len(groups),
    )


@router.post(
    "/api/status-groups",
    response_model=StatusGroupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Invalid monitor ids"}},
    summary="Create a status group",
)
async def create_status_group(
    payload: StatusGroupCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> StatusGroupResponse:
    """Create a status group.

    Every monitor id must name an existing monitor; when ``owner_id`` is set
    the monitors must also belong to that owner.
    """
    monitor_ids = await _checked_monitor_ids(db, payload.monitor_ids, payload.owner_id)
    now = clock()

    group = StatusGroup(
        id=uuid.uuid4(),
        owner_id=payload.owner_id,
        name=payload.name,
        slug=slugify(payload.name, now),
        description=payload.description,
        custom_title=payload.custom_title,
        custom_description=payload.custom_description,
        enabled=payload.enabled,
        monitor_ids=monitor_ids,
        created_at=now,
    )
    db.add(group)
    await db.flush()

    logger.info(f"Created status group {group.slug} with {len(monitor_ids)} monitors")
    return StatusGroupResponse.model_validate(group)


@router.get(
    "/api/status-groups/{group_id}",
    response_model=StatusGroupResponse,
    responses={404: {"model": ErrorResponse, "description": "Status group not found"}},
    summary="Get a status group",
)
async def get_status_group_by_id(
    group_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> StatusGroupResponse:
    group = await _load_group(db, group_id)
    return StatusGroupResponse.model_validate(group)


@router.patch(
    "/api/status-groups/{group_id}",
    response_model=StatusGroupResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid monitor ids"},
        404: {"model": ErrorResponse, "description": "Status group not found"},
    },
    summary="Update a status group",
)
async def update_status_group(
    group_id: uuid.UUID,
    payload: StatusGroupUpdate,
    db: AsyncSession = Depends(get_db),
) -> StatusGroupResponse:
    group = await _load_group(db, group_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("monitor_ids") is not None:
        changes["monitor_ids"] = await _checked_monitor_ids(
            db, changes["monitor_ids"], group.owner_id
        )

    for field, value in changes.items():
        setattr(group, field, value)

    await db.flush()
    logger.info(f"Updated status group {group.slug}")
    return StatusGroupResponse.model_validate(group)


@router.delete(
    "/api/status-groups/{group_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Status group not found"}},
    summary="Delete a status group",
)
async def delete_status_group(
    group_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    group = await _load_group(db, group_id)
    await db.delete(group)
    await db.flush()
    logger.info(f"Deleted status group {group_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Public Endpoint

@router.get(
    "/api/status-group/{slug}",
    response_model=PublicStatusGroupResponse,
    responses={404: {"model": ErrorResponse, "description": "Status group not found"}},
    tags=["Public"],
    summary="Get a public status group page",
)
async def get_public_status_group(
    slug: str,
    response: Response,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> PublicStatusGroupResponse:
    """Public view of a status group.

    Each monitor reports its 30 day uptime. Monitors deleted since the group
    was saved are left out. The overall status is rolled up from the
    remaining monitors' statuses.
    """
    group = await find_status_group_by_slug(db, slug)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Status group not found")
    if not group.enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Status group not enabled")

    now = clock()
    monitors = await get_monitors_by_ids(db, group.monitor_ids or [])

    entries = []
    for monitor in monitors:
        window_start = effective_window_start(GROUP_UPTIME_PERIOD, monitor.created_at or now, now)
        spans = spans_from_incidents(await list_incidents(db, monitor.id, since=window_start))
        uptime = calculate_uptime(spans, window_start, now)
        entries.append(PublicGroupMonitor(
            id=monitor.id,
            name=display_name(monitor),
            description=monitor.status_page_description or None,
            status=monitor.status,
            last_ping_at=monitor.last_ping_at,
            uptime_30d=round(uptime.uptime_percent, 2),
        ))

    statuses = statuses_of(monitors)

    response.headers.update(PUBLIC_HEADERS)
    response.headers["Cache-Control"] = (
        f"public, max-age={GROUP_MAX_AGE}, s-maxage={GROUP_MAX_AGE}, must-revalidate"
    )
    return PublicStatusGroupResponse(
        group=PublicGroup(
            name=group.name,
            description=group.description or None,
            custom_title=group.custom_title or None,
            custom_description=group.custom_description or None,
        ),
        overall_status=overall_status(statuses),
        monitors=entries,
        stats=group_stats(statuses),
    )

"""Alert channel API routes.

This module provides FastAPI endpoints for managing the notification
destinations of a monitor: Slack, Discord, Microsoft Teams and Telegram
chats, and custom webhooks.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.database import get_db
from cronguard.models.alert_channel import AlertChannel
from cronguard.models.enums import AlertChannelType
from cronguard.services.alert_channels import InvalidChannelConfigError, validate_channel_config
from cronguard.services.clock import Clock, get_clock
from cronguard.services.monitors import (
    AlertChannelNotFoundError,
    MonitorNotFoundError,
    get_alert_channel,
    get_monitor,
    list_alert_channels,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/monitors/{monitor_id}/channels", tags=["Alert Channels"])


# Pydantic Models

class AlertChannelCreate(BaseModel):
    """Request model for adding an alert channel to a monitor."""

    type: AlertChannelType
    name: str = Field(..., min_length=1, max_length=100)
    enabled: bool = True
    config: Dict[str, Any] = Field(
        ...,
        description="Type-specific settings, e.g. webhook_url or bot_token and chat_id",
    )


class AlertChannelUpdate(BaseModel):
    """Request model for updating an alert channel. Omitted fields are unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    enabled: Optional[bool] = None
    config: Optional[Dict[str, Any]] = None

    @field_validator("name", "enabled", "config", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class AlertChannelResponse(BaseModel):
    """Response model for an alert channel."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    monitor_id: uuid.UUID
    type: str
    name: str
    enabled: bool
    config: Dict[str, Any]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AlertChannelListResponse(BaseModel):
    channels: List[AlertChannelResponse]
    total: int


class ErrorResponse(BaseModel):
    """Error response model."""
    detail: str


async def _ensure_monitor(db: AsyncSession, monitor_id: uuid.UUID) -> None:
    try:
        await get_monitor(db, monitor_id)
    except MonitorNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


async def _load_channel(db: AsyncSession, monitor_id: uuid.UUID, channel_id: uuid.UUID) -> AlertChannel:
    await _ensure_monitor(db, monitor_id)
    try:
        return await get_alert_channel(db, monitor_id, channel_id)
    except AlertChannelNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _checked_config(channel_type: str, config: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return validate_channel_config(channel_type, config)
    except InvalidChannelConfigError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# API Endpoints

@router.get(
    "",
    response_model=AlertChannelListResponse,
    responses={404: {"model": ErrorResponse, "description": "Monitor not found"}},
    summary="List a monitor's alert channels",
)
async def get_channels(
    monitor_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> AlertChannelListResponse:
    """List alert channels, newest first."""
    await _ensure_monitor(db, monitor_id)
    channels = await list_alert_channels(db, monitor_id)
    return AlertChannelListResponse(
        channels=[AlertChannelResponse.model_validate(c) for c in channels],
        total=len(channels),
    )


@router.post(
    "",
    response_model=AlertChannelResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Config does not match the channel type"},
        404: {"model": ErrorResponse, "description": "Monitor not found"},
    },
    summary="Add an alert channel",
)
async def create_channel(
    monitor_id: uuid.UUID,
    payload: AlertChannelCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AlertChannelResponse:
    await _ensure_monitor(db, monitor_id)
    config = _checked_config(payload.type.value, payload.config)

    now = clock()
    channel = AlertChannel(
        id=uuid.uuid4(),
        monitor_id=monitor_id,
        type=payload.type.value,
        name=payload.name,
        enabled=payload.enabled,
        config=config,
        created_at=now,
        updated_at=now,
    )
    db.add(channel)
    await db.flush()

    logger.info(f"Added {channel.type} alert channel {channel.id} to monitor {monitor_id}")
    return AlertChannelResponse.model_validate(channel)


@router.patch(
    "/{channel_id}",
    response_model=AlertChannelResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Config does not match the channel type"},
        404: {"model": ErrorResponse, "description": "Monitor or channel not found"},
    },
    summary="Update an alert channel",
)
async def update_channel(
    monitor_id: uuid.UUID,
    channel_id: uuid.UUID,
    payload: AlertChannelUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AlertChannelResponse:
    """Update a channel's name, enabled flag or config.

    The channel type cannot change; a new config is validated against it.
    """
    channel = await _load_channel(db, monitor_id, channel_id)
    changes = payload.model_dump(exclude_unset=True)

    if "config" in changes:
        changes["config"] = _checked_config(channel.type, changes["config"])

    for field, value in changes.items():
        setattr(channel, field, value)
    channel.updated_at = clock()

    await db.flush()
    return AlertChannelResponse.model_validate(channel)


@router.delete(
    "/{channel_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Monitor or channel not found"}},
    summary="Delete an alert channel",
)
async def delete_channel(
    monitor_id: uuid.UUID,
    channel_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    channel = await _load_channel(db, monitor_id, channel_id)
    await db.delete(channel)
    await db.flush()
    logger.info(f"Deleted alert channel {channel_id} of monitor {monitor_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

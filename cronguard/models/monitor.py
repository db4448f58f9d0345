"""Monitor model for tracked scheduled jobs."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cronguard.database import Base
from cronguard.models.enums import MonitorStatus

if TYPE_CHECKING:
    from cronguard.models.alert_channel import AlertChannel
    from cronguard.models.incident import Incident
    from cronguard.models.ping import Ping


class Monitor(Base):
    """SQLAlchemy model for monitors.

    A monitor expects a ping every ``expected_interval`` seconds and is given
    ``grace_period`` extra seconds before it is considered down. Incidents, pings
    and alert channels are deleted together with their monitor.
    """
    __tablename__ = "monitors"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        index=True,
    )
    team_id: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    slug: Mapped[str] = mapped_column(
        String(160),
        nullable=False,
        unique=True,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=MonitorStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    expected_interval: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    grace_period: Mapped[int] = mapped_column(
        Integer,
        default=300,
        nullable=False,
    )
    last_ping_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    next_expected_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    last_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_duration_ms: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    webhook_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    timezone: Mapped[str] = mapped_column(
        String(64),
        default="UTC",
        nullable=False,
    )
    status_page_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    status_page_title: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    status_page_description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    archived_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    delete_after: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    incidents: Mapped[List["Incident"]] = relationship(
        "Incident",
        back_populates="monitor",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Incident.started_at",
    )
    pings: Mapped[List["Ping"]] = relationship(
        "Ping",
        back_populates="monitor",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    alert_channels: Mapped[List["AlertChannel"]] = relationship(
        "AlertChannel",
        back_populates="monitor",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="AlertChannel.created_at",
    )

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def __repr__(self) -> str:
        return f"<Monitor(id={self.id}, slug='{self.slug}', status='{self.status}')>"

"""Ping model for check-ins received from monitored jobs."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cronguard.database import Base
from cronguard.models.enums import PingType

if TYPE_CHECKING:
    from cronguard.models.monitor import Monitor


class Ping(Base):
    """SQLAlchemy model for pings."""
    __tablename__ = "pings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    monitor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("monitors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        default=PingType.SUCCESS.value,
        nullable=False,
    )
    message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    duration_ms: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    user_agent: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    monitor: Mapped["Monitor"] = relationship(
        "Monitor",
        back_populates="pings",
    )

    def __repr__(self) -> str:
        return f"<Ping(id={self.id}, monitor_id={self.monitor_id}, type='{self.type}')>"

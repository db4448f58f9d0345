"""Incident model for periods during which a monitor was down or failed."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cronguard.database import Base
from cronguard.models.enums import IncidentType

if TYPE_CHECKING:
    from cronguard.models.monitor import Monitor


class Incident(Base):
    """SQLAlchemy model for incidents.

    An incident with no ``resolved_at`` is still ongoing.
    """
    __tablename__ = "incidents"

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
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        default=IncidentType.MISSED.value,
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

    monitor: Mapped["Monitor"] = relationship(
        "Monitor",
        back_populates="incidents",
    )

    @property
    def is_ongoing(self) -> bool:
        return self.resolved_at is None

    def __repr__(self) -> str:
        return f"<Incident(id={self.id}, monitor_id={self.monitor_id}, type='{self.type}')>"

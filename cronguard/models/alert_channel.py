"""Alert channel model for per-monitor notification destinations."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cronguard.database import Base
from cronguard.models.enums import AlertChannelType

if TYPE_CHECKING:
    from cronguard.models.monitor import Monitor


class AlertChannel(Base):
    """SQLAlchemy model for alert channels.

    ``config`` holds the type-specific settings, for example a Slack webhook
    URL or a Telegram bot token and chat id.
    """
    __tablename__ = "alert_channels"

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
    type: Mapped[str] = mapped_column(
        String(20),
        default=AlertChannelType.WEBHOOK.value,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    config: Mapped[Dict[str, Any]] = mapped_column(
        JSONB,
        default=dict,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    monitor: Mapped["Monitor"] = relationship(
        "Monitor",
        back_populates="alert_channels",
    )

    def __repr__(self) -> str:
        return f"<AlertChannel(id={self.id}, monitor_id={self.monitor_id}, type='{self.type}')>"

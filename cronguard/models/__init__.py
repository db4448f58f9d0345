"""Database models package for SQLAlchemy ORM.

This module exports all SQLAlchemy models and enums used by CronGuard.
"""

from cronguard.models.enums import (
    AlertChannelType,
    AlertEvent,
    IncidentType,
    MonitorStatus,
    OverallStatus,
    PingType,
)
from cronguard.models.alert_channel import AlertChannel
from cronguard.models.incident import Incident
from cronguard.models.monitor import Monitor
from cronguard.models.ping import Ping
from cronguard.models.status_group import StatusGroup

__all__ = [
    # Models
    "Monitor",
    "Incident",
    "Ping",
    "StatusGroup",
    "AlertChannel",
    # Enums
    "MonitorStatus",
    "IncidentType",
    "PingType",
    "AlertEvent",
    "AlertChannelType",
    "OverallStatus",
]

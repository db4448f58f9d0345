"""Enum definitions for the CronGuard models."""

from enum import Enum


class MonitorStatus(str, Enum):
    """Current state of a monitored job."""
    PENDING = "PENDING"
    HEALTHY = "HEALTHY"
    LATE = "LATE"
    DOWN = "DOWN"
    PAUSED = "PAUSED"
    FAILED = "FAILED"
    RUNNING = "RUNNING"


class IncidentType(str, Enum):
    """Why an incident was opened."""
    MISSED = "missed"
    FAILED = "failed"


class PingType(str, Enum):
    """Kind of check-in received from a job."""
    SUCCESS = "success"
    START = "start"
    FAIL = "fail"


class AlertEvent(str, Enum):
    """Event carried by an outbound alert."""
    DOWN = "down"
    RECOVERED = "recovered"
    PAUSED = "paused"
    RESUMED = "resumed"


class AlertChannelType(str, Enum):
    """Destination an alert channel posts to."""
    SLACK = "slack"
    DISCORD = "discord"
    TELEGRAM = "telegram"
    TEAMS = "teams"
    WEBHOOK = "webhook"


class OverallStatus(str, Enum):
    """Rolled-up status of a status group."""
    OPERATIONAL = "operational"
    DEGRADED_PERFORMANCE = "degraded_performance"
    PARTIAL_OUTAGE = "partial_outage"
    MAJOR_OUTAGE = "major_outage"

"""Status group rollups."""

from typing import Iterable, List

from pydantic import BaseModel, Field

from cronguard.models.enums import MonitorStatus, OverallStatus


class GroupStats(BaseModel):
    """Monitor counts shown on a status group page."""
    total: int = Field(default=0)
    operational: int = Field(default=0, description="HEALTHY monitors")
    degraded: int = Field(default=0, description="LATE monitors")
    down: int = Field(default=0, description="DOWN monitors")


def group_stats(statuses: Iterable[str]) -> GroupStats:
    statuses = list(statuses)
    return GroupStats(
        total=len(statuses),
        operational=statuses.count(MonitorStatus.HEALTHY.value),
        degraded=statuses.count(MonitorStatus.LATE.value),
        down=statuses.count(MonitorStatus.DOWN.value),
    )


def overall_status(statuses: Iterable[str]) -> OverallStatus:
    """Roll monitor statuses up into one group status.

    Every monitor DOWN is a major outage, some DOWN a partial outage, none
    DOWN but some LATE degraded performance. FAILED, PAUSED and the other
    states do not affect the rollup.
    """
    stats = group_stats(statuses)
    if stats.down > 0:
        if stats.down == stats.total:
            return OverallStatus.MAJOR_OUTAGE
        return OverallStatus.PARTIAL_OUTAGE
    if stats.degraded > 0:
        return OverallStatus.DEGRADED_PERFORMANCE
    return OverallStatus.OPERATIONAL


def display_name(monitor) -> str:
    return monitor.status_page_title or monitor.name


def statuses_of(monitors: Iterable) -> List[str]:
    return [monitor.status for monitor in monitors]

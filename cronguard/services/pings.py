"""Check-in handling for monitored jobs.

A job reports in three ways:

- ``start`` when it begins, enabling duration tracking,
- a success ping when it completes,
- ``fail`` when it reports an error.

Each check-in is stored as a Ping and moves the monitor's status. Incidents
are opened on failure and resolved on the next success.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.models.enums import AlertEvent, IncidentType, MonitorStatus, PingType
from cronguard.models.incident import Incident
from cronguard.models.monitor import Monitor
from cronguard.models.ping import Ping
from cronguard.services.alerts import AlertNotifier, build_payload
from cronguard.services.monitors import list_open_incidents

logger = logging.getLogger(__name__)

# Statuses from which a success ping closing an incident counts as a recovery
RECOVERY_STATUSES = {
    MonitorStatus.DOWN.value,
    MonitorStatus.LATE.value,
    MonitorStatus.FAILED.value,
}

# Statuses from which a failure opens a new incident
FAILURE_OPENS_INCIDENT = {
    MonitorStatus.HEALTHY.value,
    MonitorStatus.RUNNING.value,
}


class PingSource(BaseModel):
    """Where a check-in came from."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class PingOutcome(BaseModel):
    """Result of handling a check-in.

    Attributes:
        status: ok, running, failed or paused.
        next_expected_at: When the next success ping is due (success only).
        started_at: When the job started (start only).
        message: Failure message (fail only).
        duration_ms: Time since the recorded start, if any.
        resolved_incidents: Number of incidents closed by this ping.
    """
    status: str
    next_expected_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    message: Optional[str] = None
    duration_ms: Optional[int] = None
    resolved_incidents: int = Field(default=0)


def _is_ignoring_pings(monitor: Monitor) -> bool:
    return monitor.status == MonitorStatus.PAUSED.value or monitor.archived_at is not None


def _elapsed_ms(since: Optional[datetime], now: datetime) -> Optional[int]:
    if since is None:
        return None
    return int((now - since).total_seconds() * 1000)


def _record_ping(
    db: AsyncSession,
    monitor: Monitor,
    ping_type: PingType,
    now: datetime,
    source: Optional[PingSource],
    message: Optional[str] = None,
    duration_ms: Optional[int] = None,
) -> Ping:
    source = source or PingSource()
    ping = Ping(
        monitor_id=monitor.id,
        received_at=now,
        type=ping_type.value,
        message=message,
        duration_ms=duration_ms,
        ip_address=source.ip_address,
        user_agent=source.user_agent,
    )
    db.add(ping)
    return ping


def resolve_incidents(incidents: List[Incident], now: datetime) -> int:
    """Close ``incidents`` at ``now``, recording their durations."""
    for incident in incidents:
        incident.resolved_at = now
        incident.duration_ms = _elapsed_ms(incident.started_at, now)
    return len(incidents)


async def record_success(
    db: AsyncSession,
    monitor: Monitor,
    now: datetime,
    source: Optional[PingSource] = None,
    notifier: Optional[AlertNotifier] = None,
) -> PingOutcome:
    """Handle a success ping."""
    if _is_ignoring_pings(monitor):
        return PingOutcome(status="paused")

    previous_status = monitor.status
    duration_ms = None
    if previous_status == MonitorStatus.RUNNING.value:
        duration_ms = _elapsed_ms(monitor.last_started_at, now)

    next_expected_at = now + timedelta(seconds=monitor.expected_interval)
    monitor.last_ping_at = now
    monitor.next_expected_at = next_expected_at
    monitor.status = MonitorStatus.HEALTHY.value
    if duration_ms is not None:
        monitor.last_duration_ms = duration_ms

    _record_ping(db, monitor, PingType.SUCCESS, now, source, duration_ms=duration_ms)

    open_incidents = await list_open_incidents(db, monitor.id)
    resolved = resolve_incidents(open_incidents, now)
    await db.flush()

    if resolved:
        logger.info(f"Monitor {monitor.slug} recovered, resolved {resolved} incident(s)")

    if previous_status in RECOVERY_STATUSES and open_incidents and notifier is not None:
        downtime_ms = _elapsed_ms(min(i.started_at for i in open_incidents), now)
        await notifier.send(
            monitor,
            build_payload(monitor, AlertEvent.RECOVERED, now, downtime_ms=downtime_ms),
        )

    return PingOutcome(
        status="ok",
        next_expected_at=next_expected_at,
        duration_ms=duration_ms,
        resolved_incidents=resolved,
    )


async def record_start(
    db: AsyncSession,
    monitor: Monitor,
    now: datetime,
    source: Optional[PingSource] = None,
) -> PingOutcome:
    """Handle a start ping."""
    if _is_ignoring_pings(monitor):
        return PingOutcome(status="paused")

    monitor.status = MonitorStatus.RUNNING.value
    monitor.last_started_at = now
    _record_ping(db, monitor, PingType.START, now, source)
    await db.flush()

    return PingOutcome(status="running", started_at=now)


async def record_failure(
    db: AsyncSession,
    monitor: Monitor,
    now: datetime,
    message: Optional[str] = None,
    source: Optional[PingSource] = None,
    notifier: Optional[AlertNotifier] = None,
) -> PingOutcome:
    """Handle a failure ping.

    A new ``failed`` incident is opened only when the monitor was HEALTHY or
    RUNNING; repeated failures extend the current one.
    """
    if _is_ignoring_pings(monitor):
        return PingOutcome(status="paused")

    previous_status = monitor.status
    duration_ms = _elapsed_ms(monitor.last_started_at, now)

    monitor.status = MonitorStatus.FAILED.value
    monitor.last_ping_at = now
    if duration_ms is not None:
        monitor.last_duration_ms = duration_ms

    _record_ping(db, monitor, PingType.FAIL, now, source, message=message, duration_ms=duration_ms)

    if previous_status in FAILURE_OPENS_INCIDENT:
        db.add(Incident(
            monitor_id=monitor.id,
            started_at=now,
            resolved_at=None,
            type=IncidentType.FAILED.value,
            message=message,
        ))
        await db.flush()
        logger.warning(f"Monitor {monitor.slug} reported failure: {message or 'no message'}")

        if notifier is not None:
            await notifier.send(
                monitor,
                build_payload(
                    monitor,
                    AlertEvent.DOWN,
                    now,
                    failure_message=message or "Job reported failure",
                ),
            )
    else:
        await db.flush()

    return PingOutcome(status="failed", message=message, duration_ms=duration_ms)

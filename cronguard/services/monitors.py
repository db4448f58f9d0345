"""Query helpers for monitors, incidents, pings and alert channels.

Routers and background jobs go through these helpers instead of building
queries inline so that lookups by id and slug behave the same everywhere.
"""

import logging
import re
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cronguard.models.alert_channel import AlertChannel
from cronguard.models.incident import Incident
from cronguard.models.monitor import Monitor
from cronguard.models.ping import Ping
from cronguard.models.status_group import StatusGroup

logger = logging.getLogger(__name__)

_SLUG_INVALID_CHARS = re.compile(r"[^a-z0-9]+")


class MonitorNotFoundError(Exception):
    """Raised when a monitor does not exist."""
    pass


class StatusGroupNotFoundError(Exception):
    """Raised when a status group does not exist."""
    pass


class AlertChannelNotFoundError(Exception):
    """Raised when an alert channel does not exist on a monitor."""
    pass


class InvalidMonitorConfigError(Exception):
    """Raised when a monitor or status group configuration is rejected."""
    pass


def slugify(name: str, now: datetime) -> str:
    """Build a public slug from a display name.

    Runs of characters other than lowercase letters and digits become a
    single dash and a millisecond timestamp is appended for uniqueness.
    """
    base = _SLUG_INVALID_CHARS.sub("-", name.lower())
    return f"{base}-{int(now.timestamp() * 1000)}"


async def get_monitor(db: AsyncSession, monitor_id: uuid.UUID) -> Monitor:
    """Fetch a monitor by id.

    Raises:
        MonitorNotFoundError: If no monitor has this id.
    """
    result = await db.execute(select(Monitor).where(Monitor.id == monitor_id))
    monitor = result.scalar_one_or_none()
    if monitor is None:
        raise MonitorNotFoundError(f"Monitor {monitor_id} not found")
    return monitor


async def find_monitor_by_slug(db: AsyncSession, slug: str) -> Optional[Monitor]:
    """Fetch a monitor by its public slug, or None."""
    result = await db.execute(select(Monitor).where(Monitor.slug == slug).limit(1))
    return result.scalar_one_or_none()


async def get_monitor_by_slug(db: AsyncSession, slug: str) -> Monitor:
    """Fetch a monitor by its public slug.

    Raises:
        MonitorNotFoundError: If no monitor has this slug.
    """
    monitor = await find_monitor_by_slug(db, slug)
    if monitor is None:
        raise MonitorNotFoundError(f"Monitor '{slug}' not found")
    return monitor


async def list_monitors(db: AsyncSession, owner_id: Optional[str] = None) -> List[Monitor]:
    """List non-archived monitors, newest first."""
    query = select(Monitor).where(Monitor.archived_at.is_(None))
    if owner_id is not None:
        query = query.where(Monitor.owner_id == owner_id)
    result = await db.execute(query.order_by(Monitor.created_at.desc()))
    return list(result.scalars().all())


async def get_monitors_by_ids(db: AsyncSession, monitor_ids: List[str]) -> List[Monitor]:
    """Fetch monitors by id, keeping the order of ``monitor_ids``.

    Ids that are malformed or no longer exist are skipped.
    """
    ids = []
    for raw_id in monitor_ids:
        try:
            ids.append(uuid.UUID(str(raw_id)))
        except ValueError:
            logger.warning(f"Skipping malformed monitor id in status group: {raw_id!r}")
    if not ids:
        return []

    result = await db.execute(select(Monitor).where(Monitor.id.in_(ids)))
    by_id = {monitor.id: monitor for monitor in result.scalars().all()}
    return [by_id[monitor_id] for monitor_id in ids if monitor_id in by_id]


async def validate_monitor_ids(
    db: AsyncSession,
    monitor_ids: List[str],
    owner_id: Optional[str] = None,
) -> List[str]:
    """Check that every id names an existing monitor of ``owner_id``.

    Returns the ids normalised to their canonical string form, duplicates
    removed and order kept.

    Raises:
        InvalidMonitorConfigError: If an id is malformed or unknown.
    """
    ids: List[uuid.UUID] = []
    for raw_id in monitor_ids:
        try:
            monitor_id = uuid.UUID(str(raw_id))
        except ValueError:
            raise InvalidMonitorConfigError(f"Invalid monitor id: {raw_id!r}")
        if monitor_id not in ids:
            ids.append(monitor_id)

    query = select(Monitor.id).where(Monitor.id.in_(ids))
    if owner_id is not None:
        query = query.where(Monitor.owner_id == owner_id)
    result = await db.execute(query)
    found = set(result.scalars().all())
    missing = [str(monitor_id) for monitor_id in ids if monitor_id not in found]
    if missing:
        raise InvalidMonitorConfigError(f"Unknown monitor ids: {', '.join(missing)}")
    return [str(monitor_id) for monitor_id in ids]


async def list_incidents(
    db: AsyncSession,
    monitor_id: uuid.UUID,
    since: Optional[datetime] = None,
) -> List[Incident]:
    """List a monitor's incidents ordered by start.

    When ``since`` is given only incidents that may overlap ``[since, ...)``
    are returned: those still open and those resolved at or after ``since``.
    """
    query = select(Incident).where(Incident.monitor_id == monitor_id)
    if since is not None:
        query = query.where(
            or_(Incident.resolved_at.is_(None), Incident.resolved_at >= since)
        )
    result = await db.execute(query.order_by(Incident.started_at.asc()))
    return list(result.scalars().all())


async def list_recent_incidents(
    db: AsyncSession,
    monitor_id: uuid.UUID,
    limit: int = 10,
    offset: int = 0,
    since: Optional[datetime] = None,
) -> List[Incident]:
    """List a monitor's incidents newest first."""
    query = select(Incident).where(Incident.monitor_id == monitor_id)
    if since is not None:
        query = query.where(Incident.started_at >= since)
    result = await db.execute(
        query.order_by(Incident.started_at.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


async def list_open_incidents(db: AsyncSession, monitor_id: uuid.UUID) -> List[Incident]:
    """List a monitor's unresolved incidents, newest first."""
    result = await db.execute(
        select(Incident)
        .where(Incident.monitor_id == monitor_id, Incident.resolved_at.is_(None))
        .order_by(Incident.started_at.desc())
    )
    return list(result.scalars().all())


async def list_recent_pings(db: AsyncSession, monitor_id: uuid.UUID, limit: int = 100) -> List[Ping]:
    """List a monitor's pings newest first."""
    result = await db.execute(
        select(Ping)
        .where(Ping.monitor_id == monitor_id)
        .order_by(Ping.received_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_status_group(db: AsyncSession, group_id: uuid.UUID) -> StatusGroup:
    """Fetch a status group by id.

    Raises:
        StatusGroupNotFoundError: If no group has this id.
    """
    result = await db.execute(select(StatusGroup).where(StatusGroup.id == group_id))
    group = result.scalar_one_or_none()
    if group is None:
        raise StatusGroupNotFoundError(f"Status group {group_id} not found")
    return group


async def find_status_group_by_slug(db: AsyncSession, slug: str) -> Optional[StatusGroup]:
    """Fetch a status group by its public slug, or None."""
    result = await db.execute(select(StatusGroup).where(StatusGroup.slug == slug).limit(1))
    return result.scalar_one_or_none()


async def list_status_groups(db: AsyncSession, owner_id: Optional[str] = None) -> List[StatusGroup]:
    """List status groups, newest first."""
    query = select(StatusGroup)
    if owner_id is not None:
        query = query.where(StatusGroup.owner_id == owner_id)
    result = await db.execute(query.order_by(StatusGroup.created_at.desc()))
    return list(result.scalars().all())


async def list_alert_channels(db: AsyncSession, monitor_id: uuid.UUID) -> List[AlertChannel]:
    """List a monitor's alert channels, newest first."""
    result = await db.execute(
        select(AlertChannel)
        .where(AlertChannel.monitor_id == monitor_id)
        .order_by(AlertChannel.created_at.desc())
    )
    return list(result.scalars().all())


async def get_alert_channel(
    db: AsyncSession,
    monitor_id: uuid.UUID,
    channel_id: uuid.UUID,
) -> AlertChannel:
    """Fetch one of a monitor's alert channels.

    Raises:
        AlertChannelNotFoundError: If the monitor has no channel with this id.
    """
    result = await db.execute(
        select(AlertChannel).where(
            AlertChannel.id == channel_id,
            AlertChannel.monitor_id == monitor_id,
        )
    )
    channel = result.scalar_one_or_none()
    if channel is None:
        raise AlertChannelNotFoundError(f"Alert channel {channel_id} not found")
    return channel

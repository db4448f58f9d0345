"""Shared fixtures for building model instances without a database."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from cronguard.models import AlertChannel, Incident, Monitor, MonitorStatus, StatusGroup


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed clock reading shared by a test and the code under test."""
    return NOW


@pytest.fixture
def make_monitor():
    """Factory for Monitor instances with every column set.

    Column defaults only apply on flush, so tests set them explicitly.
    """
    def _make(**overrides) -> Monitor:
        values = dict(
            id=uuid.uuid4(),
            owner_id="user-1",
            team_id=None,
            name="Nightly backup",
            slug="nightly-backup-1718000000000",
            status=MonitorStatus.HEALTHY.value,
            expected_interval=3600,
            grace_period=300,
            last_ping_at=NOW - timedelta(minutes=30),
            next_expected_at=NOW + timedelta(minutes=30),
            last_started_at=None,
            last_duration_ms=None,
            webhook_url="https://hooks.example.com/cron",
            timezone="UTC",
            status_page_enabled=True,
            status_page_title=None,
            status_page_description=None,
            archived_at=None,
            delete_after=None,
            created_at=NOW - timedelta(days=120),
        )
        values.update(overrides)
        return Monitor(**values)

    return _make


@pytest.fixture
def make_incident():
    """Factory for Incident instances."""
    def _make(monitor_id=None, started_at=None, resolved_at=None, **overrides) -> Incident:
        values = dict(
            id=uuid.uuid4(),
            monitor_id=monitor_id or uuid.uuid4(),
            started_at=started_at or NOW - timedelta(hours=2),
            resolved_at=resolved_at,
            type="missed",
            message=None,
            duration_ms=None,
        )
        values.update(overrides)
        return Incident(**values)

    return _make


@pytest.fixture
def make_status_group():
    """Factory for StatusGroup instances."""
    def _make(**overrides) -> StatusGroup:
        values = dict(
            id=uuid.uuid4(),
            owner_id="user-1",
            name="Production",
            slug="production-1718000000000",
            description="Production jobs",
            custom_title=None,
            custom_description=None,
            enabled=True,
            monitor_ids=[],
            created_at=NOW - timedelta(days=10),
        )
        values.update(overrides)
        return StatusGroup(**values)

    return _make


@pytest.fixture
def make_alert_channel():
    """Factory for AlertChannel instances; a Slack channel unless overridden."""
    def _make(monitor_id=None, **overrides) -> AlertChannel:
        values = dict(
            id=uuid.uuid4(),
            monitor_id=monitor_id or uuid.uuid4(),
            type="slack",
            name="Ops Slack",
            enabled=True,
            config={"webhook_url": "https://hooks.slack.com/services/T000/B000/XXX"},
            created_at=NOW - timedelta(days=5),
            updated_at=NOW - timedelta(days=5),
        )
        values.update(overrides)
        return AlertChannel(**values)

    return _make


@pytest.fixture
def mock_db():
    """AsyncSession stand-in; ``add`` and ``delete`` are recorded."""
    db = MagicMock()
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.close = AsyncMock()
    db.delete = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def mock_notifier():
    """AlertNotifier stand-in whose deliveries always succeed."""
    notifier = MagicMock()
    notifier.send = AsyncMock(return_value=True)
    return notifier

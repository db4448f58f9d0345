"""Unit tests for the Monitors API routes."""

import pytest
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from cronguard.database import get_db
from cronguard.models.enums import AlertEvent, MonitorStatus
from cronguard.models.monitor import Monitor
from cronguard.routers.monitors import router
from cronguard.routers.ping import get_notifier
from cronguard.services.clock import get_clock
from cronguard.services.monitors import MonitorNotFoundError


# Create test app
def create_test_app(db, now, notifier) -> FastAPI:
    """Create a FastAPI app for testing."""
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_clock] = lambda: (lambda: now)
    app.dependency_overrides[get_notifier] = lambda: notifier
    return app


@pytest.fixture
def client(mock_db, now, mock_notifier):
    return TestClient(create_test_app(mock_db, now, mock_notifier))


class TestListMonitors:
    """Tests for GET /api/monitors."""

    def test_list(self, client, make_monitor):
        monitors = [make_monitor(name="a"), make_monitor(name="b")]

        with patch("cronguard.routers.monitors.list_monitors", AsyncMock(return_value=monitors)) as mocked:
            response = client.get("/api/monitors", params={"owner_id": "user-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [m["name"] for m in data["monitors"]] == ["a", "b"]
        assert mocked.call_args.kwargs["owner_id"] == "user-1"

    def test_empty(self, client):
        with patch("cronguard.routers.monitors.list_monitors", AsyncMock(return_value=[])):
            response = client.get("/api/monitors")

        assert response.status_code == 200
        assert response.json() == {"monitors": [], "total": 0}


class TestCreateMonitor:
    """Tests for POST /api/monitors."""

    def test_create(self, client, mock_db, now):
        response = client.post(
            "/api/monitors",
            json={"name": "Nightly Backup!", "expected_interval": 3600},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == MonitorStatus.PENDING.value
        assert data["grace_period"] == 300
        assert data["slug"] == f"nightly-backup--{int(now.timestamp() * 1000)}"
        assert data["last_ping_at"] is None

        monitor = mock_db.add.call_args[0][0]
        assert isinstance(monitor, Monitor)
        assert monitor.next_expected_at == now + timedelta(hours=1)
        mock_db.flush.assert_awaited_once()

    def test_create_with_grace_and_webhook(self, client, mock_db):
        response = client.post(
            "/api/monitors",
            json={
                "name": "sync",
                "expected_interval": 60,
                "grace_period": 0,
                "webhook_url": "https://hooks.example.com/cron",
                "status_page_enabled": True,
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["grace_period"] == 0
        assert data["webhook_url"] == "https://hooks.example.com/cron"
        assert data["status_page_enabled"] is True

    @pytest.mark.parametrize("interval", [59, 86400 * 7 + 1])
    def test_interval_out_of_range(self, client, mock_db, interval):
        response = client.post("/api/monitors", json={"name": "x", "expected_interval": interval})

        assert response.status_code == 422
        mock_db.add.assert_not_called()

    def test_grace_period_too_long(self, client):
        response = client.post(
            "/api/monitors",
            json={"name": "x", "expected_interval": 60, "grace_period": 3601},
        )

        assert response.status_code == 422

    def test_empty_name(self, client):
        response = client.post("/api/monitors", json={"name": "", "expected_interval": 60})

        assert response.status_code == 422


class TestGetMonitor:
    """Tests for GET /api/monitors/{id}."""

    def test_found(self, client, make_monitor):
        monitor = make_monitor()

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.get(f"/api/monitors/{monitor.id}")

        assert response.status_code == 200
        assert response.json()["id"] == str(monitor.id)

    def test_not_found(self, client):
        missing = uuid.uuid4()

        with patch(
            "cronguard.routers.monitors.get_monitor",
            AsyncMock(side_effect=MonitorNotFoundError(f"Monitor {missing} not found")),
        ):
            response = client.get(f"/api/monitors/{missing}")

        assert response.status_code == 404
        assert str(missing) in response.json()["detail"]

    def test_invalid_uuid(self, client):
        assert client.get("/api/monitors/not-a-uuid").status_code == 422


class TestUpdateMonitor:
    """Tests for PATCH /api/monitors/{id}."""

    def test_update_fields(self, client, make_monitor):
        monitor = make_monitor(name="old")

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.patch(
                f"/api/monitors/{monitor.id}",
                json={"name": "new", "grace_period": 60},
            )

        assert response.status_code == 200
        assert monitor.name == "new"
        assert monitor.grace_period == 60

    def test_pause(self, client, mock_notifier, make_monitor, now):
        monitor = make_monitor()

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.patch(f"/api/monitors/{monitor.id}", json={"paused": True})

        assert response.status_code == 200
        assert response.json()["status"] == MonitorStatus.PAUSED.value

        sent_to, payload = mock_notifier.send.call_args[0]
        assert sent_to is monitor
        assert payload.event == AlertEvent.PAUSED
        assert payload.timestamp == now

    def test_resume(self, client, mock_notifier, make_monitor, now):
        monitor = make_monitor(status=MonitorStatus.PAUSED.value, expected_interval=600)

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.patch(f"/api/monitors/{monitor.id}", json={"paused": False})

        assert response.status_code == 200
        assert monitor.status == MonitorStatus.PENDING.value
        assert monitor.next_expected_at == now + timedelta(minutes=10)

        _, payload = mock_notifier.send.call_args[0]
        assert payload.event == AlertEvent.RESUMED

    def test_resume_active_monitor_is_noop(self, client, mock_notifier, make_monitor):
        monitor = make_monitor(status=MonitorStatus.DOWN.value)

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            client.patch(f"/api/monitors/{monitor.id}", json={"paused": False})

        assert monitor.status == MonitorStatus.DOWN.value
        mock_notifier.send.assert_not_called()

    def test_settings_change_sends_no_alert(self, client, mock_notifier, make_monitor):
        monitor = make_monitor()

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            client.patch(f"/api/monitors/{monitor.id}", json={"name": "renamed"})

        mock_notifier.send.assert_not_called()

    def test_null_rejected_on_resume(self, client, mock_db, mock_notifier, make_monitor):
        monitor = make_monitor(status=MonitorStatus.PAUSED.value, expected_interval=600)

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.patch(
                f"/api/monitors/{monitor.id}",
                json={"expected_interval": None, "paused": False},
            )

        assert response.status_code == 422
        assert monitor.expected_interval == 600
        assert monitor.status == MonitorStatus.PAUSED.value
        mock_db.flush.assert_not_called()
        mock_notifier.send.assert_not_called()

    @pytest.mark.parametrize(
        "field", ["name", "grace_period", "timezone", "status_page_enabled", "paused"]
    )
    def test_null_rejected(self, client, make_monitor, field):
        monitor = make_monitor()

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.patch(f"/api/monitors/{monitor.id}", json={field: None})

        assert response.status_code == 422

    def test_webhook_url_can_be_cleared(self, client, make_monitor):
        monitor = make_monitor(webhook_url="https://hooks.example.com/x")

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.patch(f"/api/monitors/{monitor.id}", json={"webhook_url": None})

        assert response.status_code == 200
        assert monitor.webhook_url is None


class TestDeleteAndArchive:
    """Tests for DELETE /api/monitors/{id} and POST /api/monitors/{id}/archive."""

    def test_delete(self, client, mock_db, make_monitor):
        monitor = make_monitor()

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.delete(f"/api/monitors/{monitor.id}")

        assert response.status_code == 204
        mock_db.delete.assert_awaited_once_with(monitor)

    def test_archive(self, client, make_monitor, now):
        monitor = make_monitor()

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            response = client.post(f"/api/monitors/{monitor.id}/archive")

        assert response.status_code == 200
        assert monitor.archived_at == now
        assert monitor.delete_after == now + timedelta(days=30)
        assert monitor.status == MonitorStatus.PAUSED.value

    def test_archive_twice_keeps_first_date(self, client, make_monitor, now):
        archived_at = now - timedelta(days=3)
        monitor = make_monitor(archived_at=archived_at, delete_after=archived_at + timedelta(days=30))

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)):
            client.post(f"/api/monitors/{monitor.id}/archive")

        assert monitor.archived_at == archived_at


class TestAnalytics:
    """Tests for GET /api/monitors/{id}/analytics."""

    def test_analytics(self, client, make_monitor, make_incident, now):
        monitor = make_monitor(created_at=now - timedelta(days=100))
        incidents = [
            make_incident(monitor_id=monitor.id, started_at=now - timedelta(hours=3),
                          resolved_at=now - timedelta(hours=2)),
            make_incident(monitor_id=monitor.id, started_at=now - timedelta(hours=2, minutes=30),
                          resolved_at=now - timedelta(hours=1, minutes=30)),
        ]

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)), \
                patch("cronguard.routers.monitors.list_incidents", AsyncMock(return_value=incidents)), \
                patch("cronguard.routers.monitors.list_recent_pings", AsyncMock(return_value=[])):
            response = client.get(f"/api/monitors/{monitor.id}/analytics")

        assert response.status_code == 200
        data = response.json()
        assert set(data["uptime"]) == {"last_24h", "last_7d", "last_30d", "last_90d", "all_time"}
        assert data["uptime"]["last_24h"]["downtime_ms"] == 90 * 60 * 1000
        assert data["uptime"]["last_24h"]["uptime"] == pytest.approx(93.75)
        assert data["incidents"]["total"] == 2
        assert data["incidents"]["total_downtime_ms"] == 90 * 60 * 1000
        assert data["incidents"]["average_duration_ms"] == 90 * 60 * 1000
        assert [i["started_at"] for i in data["incidents"]["recent"]] == sorted(
            [i["started_at"] for i in data["incidents"]["recent"]], reverse=True
        )
        assert data["pings"] == {"total": 0, "recent": []}
        assert data["current_status"]["status"] == monitor.status

    def test_recent_pings_limited(self, client, make_monitor, now):
        monitor = make_monitor()
        pings = [
            type("P", (), {"received_at": now - timedelta(minutes=i), "type": "success", "ip_address": None})()
            for i in range(50)
        ]

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)), \
                patch("cronguard.routers.monitors.list_incidents", AsyncMock(return_value=[])), \
                patch("cronguard.routers.monitors.list_recent_pings", AsyncMock(return_value=pings)):
            response = client.get(f"/api/monitors/{monitor.id}/analytics")

        data = response.json()
        assert data["pings"]["total"] == 50
        assert len(data["pings"]["recent"]) == 20

    def test_analytics_failure_is_500(self, client, make_monitor):
        monitor = make_monitor()

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)), \
                patch("cronguard.routers.monitors.list_incidents", AsyncMock(side_effect=RuntimeError("boom"))):
            response = client.get(f"/api/monitors/{monitor.id}/analytics")

        assert response.status_code == 500
        assert "boom" in response.json()["detail"]


class TestIncidents:
    """Tests for GET /api/monitors/{id}/incidents."""

    def test_paginated(self, client, make_monitor, make_incident, now):
        monitor = make_monitor()
        ongoing = make_incident(monitor_id=monitor.id, started_at=now - timedelta(minutes=5))

        with patch("cronguard.routers.monitors.get_monitor", AsyncMock(return_value=monitor)), \
                patch(
                    "cronguard.routers.monitors.list_recent_incidents",
                    AsyncMock(return_value=[ongoing]),
                ) as mocked:
            response = client.get(f"/api/monitors/{monitor.id}/incidents", params={"limit": 5, "offset": 10})

        assert response.status_code == 200
        data = response.json()
        assert data["limit"] == 5
        assert data["offset"] == 10
        assert data["incidents"][0]["resolved_at"] is None
        assert data["incidents"][0]["duration_ms"] == 5 * 60 * 1000
        assert mocked.call_args.kwargs == {"limit": 5, "offset": 10}

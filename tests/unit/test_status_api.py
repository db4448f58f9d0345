"""Unit tests for the public status page and badge routes."""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from cronguard.database import get_db
from cronguard.models.enums import MonitorStatus
from cronguard.routers.status import router
from cronguard.services.badges import GRAY, GREEN, RED
from cronguard.services.clock import get_clock


def create_test_app(db, now) -> FastAPI:
    """Create a FastAPI app for testing."""
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_clock] = lambda: (lambda: now)
    return app


@pytest.fixture
def client(mock_db, now):
    return TestClient(create_test_app(mock_db, now))


def patch_lookup(monitor):
    return patch("cronguard.routers.status.find_monitor_by_slug", AsyncMock(return_value=monitor))


def patch_incidents(incidents):
    return patch("cronguard.routers.status.list_incidents", AsyncMock(return_value=incidents))


class TestStatusPage:
    """Tests for GET /api/status/{slug}."""

    def test_status_page(self, client, make_monitor, make_incident, now):
        monitor = make_monitor(
            created_at=now - timedelta(days=200),
            status_page_title="Backups",
            status_page_description="Nightly database backups",
        )
        incident = make_incident(
            monitor_id=monitor.id,
            started_at=now - timedelta(days=2),
            resolved_at=now - timedelta(days=2) + timedelta(hours=6),
        )

        with patch_lookup(monitor), patch_incidents([incident]), \
                patch(
                    "cronguard.routers.status.list_recent_incidents",
                    AsyncMock(return_value=[incident]),
                ) as recent:
            response = client.get(f"/api/status/{monitor.slug}")

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        data = response.json()
        assert data["monitor"]["name"] == monitor.name
        assert data["monitor"]["status_page_title"] == "Backups"
        uptime = data["analytics"]["uptime"]
        assert uptime["last_30d"]["downtime_ms"] == 6 * 3600 * 1000
        assert uptime["last_30d"]["uptime"] == pytest.approx(99.1666666, rel=1e-6)
        assert uptime["last_90d"]["uptime"] == pytest.approx(99.7222222, rel=1e-6)
        assert len(data["analytics"]["incidents"]["recent"]) == 1
        assert recent.call_args.kwargs["since"] == now - timedelta(days=30)
        assert recent.call_args.kwargs["limit"] == 10

    def test_new_monitor_window_starts_at_creation(self, client, make_monitor, make_incident, now):
        monitor = make_monitor(created_at=now - timedelta(hours=10))
        incident = make_incident(monitor_id=monitor.id, started_at=now - timedelta(hours=1))

        with patch_lookup(monitor), patch_incidents([incident]), \
                patch("cronguard.routers.status.list_recent_incidents", AsyncMock(return_value=[])):
            response = client.get(f"/api/status/{monitor.slug}")

        uptime = response.json()["analytics"]["uptime"]
        assert uptime["last_30d"]["uptime"] == pytest.approx(90.0)
        assert uptime["last_90d"]["uptime"] == pytest.approx(90.0)

    def test_missing(self, client):
        with patch_lookup(None):
            response = client.get("/api/status/nope")

        assert response.status_code == 404

    def test_disabled(self, client, make_monitor):
        monitor = make_monitor(status_page_enabled=False)

        with patch_lookup(monitor):
            response = client.get(f"/api/status/{monitor.slug}")

        assert response.status_code == 404


class TestStatusHistory:
    """Tests for GET /api/status/{slug}/history."""

    def test_history(self, client, make_monitor, now):
        monitor = make_monitor(created_at=now - timedelta(days=365))

        with patch_lookup(monitor), patch_incidents([]):
            response = client.get(f"/api/status/{monitor.slug}/history")

        assert response.status_code == 200
        assert response.headers["cache-control"].startswith("public, max-age=300")
        assert response.headers["access-control-allow-origin"] == "*"
        bars = response.json()["daily_uptime"]
        assert len(bars) == 90
        assert bars[-1] == {"date": now.date().isoformat(), "uptime": 100.0}

    def test_history_for_new_monitor(self, client, make_monitor, now):
        monitor = make_monitor(created_at=now - timedelta(days=2))

        with patch_lookup(monitor), patch_incidents([]):
            response = client.get(f"/api/status/{monitor.slug}/history")

        assert len(response.json()["daily_uptime"]) == 3

    def test_history_missing(self, client):
        with patch_lookup(None):
            response = client.get("/api/status/nope/history")

        assert response.status_code == 404

    def test_history_disabled(self, client, make_monitor):
        monitor = make_monitor(status_page_enabled=False)

        with patch_lookup(monitor):
            response = client.get(f"/api/status/{monitor.slug}/history")

        assert response.status_code == 403


class TestStatusBadge:
    """Tests for GET /api/badge/{slug}."""

    def test_healthy_badge(self, client, make_monitor):
        monitor = make_monitor(status=MonitorStatus.HEALTHY.value)

        with patch_lookup(monitor):
            response = client.get(f"/api/badge/{monitor.slug}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert "max-age=60" in response.headers["cache-control"]
        assert "healthy" in response.text
        assert GREEN in response.text

    def test_flat_square_style(self, client, make_monitor):
        monitor = make_monitor(status=MonitorStatus.DOWN.value)

        with patch_lookup(monitor):
            response = client.get(f"/api/badge/{monitor.slug}", params={"style": "flat-square"})

        assert 'rx="0"' in response.text
        assert RED in response.text

    def test_not_found_badge(self, client):
        with patch_lookup(None):
            response = client.get("/api/badge/nope")

        assert response.status_code == 200
        assert "not found" in response.text
        assert GRAY in response.text

    def test_private_badge(self, client, make_monitor):
        monitor = make_monitor(status_page_enabled=False)

        with patch_lookup(monitor):
            response = client.get(f"/api/badge/{monitor.slug}")

        assert response.status_code == 200
        assert "private" in response.text

    def test_lookup_error_gives_error_badge(self, client):
        with patch(
            "cronguard.routers.status.find_monitor_by_slug",
            AsyncMock(side_effect=RuntimeError("db down")),
        ):
            response = client.get("/api/badge/anything")

        assert response.status_code == 200
        assert "error" in response.text

    def test_error_badge_keeps_style(self, client):
        with patch(
            "cronguard.routers.status.find_monitor_by_slug",
            AsyncMock(side_effect=RuntimeError("db down")),
        ):
            response = client.get("/api/badge/anything", params={"style": "flat-square"})

        assert "error" in response.text
        assert 'rx="0"' in response.text


class TestUptimeBadge:
    """Tests for GET /api/badge/{slug}/uptime."""

    def test_uptime_badge(self, client, make_monitor, make_incident, now):
        monitor = make_monitor(created_at=now - timedelta(days=100))
        incident = make_incident(
            monitor_id=monitor.id,
            started_at=now - timedelta(days=1),
            resolved_at=now - timedelta(days=1) + timedelta(hours=6),
        )

        with patch_lookup(monitor), patch_incidents([incident]):
            response = client.get(f"/api/badge/{monitor.slug}/uptime")

        assert response.status_code == 200
        assert "99.17%" in response.text
        assert "max-age=300" in response.headers["cache-control"]

    def test_ninety_day_period(self, client, make_monitor, make_incident, now):
        monitor = make_monitor(created_at=now - timedelta(days=100))
        incident = make_incident(
            monitor_id=monitor.id,
            started_at=now - timedelta(days=1),
            resolved_at=now - timedelta(days=1) + timedelta(hours=6),
        )

        with patch_lookup(monitor), patch_incidents([incident]):
            response = client.get(f"/api/badge/{monitor.slug}/uptime", params={"period": "90d"})

        assert "99.72%" in response.text

    def test_perfect_uptime(self, client, make_monitor):
        monitor = make_monitor()

        with patch_lookup(monitor), patch_incidents([]):
            response = client.get(f"/api/badge/{monitor.slug}/uptime")

        assert "100.00%" in response.text
        assert GREEN in response.text

    def test_invalid_period(self, client):
        assert client.get("/api/badge/x/uptime", params={"period": "7d"}).status_code == 422

    def test_private_uptime_badge(self, client, make_monitor):
        monitor = make_monitor(status_page_enabled=False)

        with patch_lookup(monitor):
            response = client.get(f"/api/badge/{monitor.slug}/uptime")

        assert "private" in response.text

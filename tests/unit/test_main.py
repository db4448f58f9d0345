"""Unit tests for the application factory."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from cronguard.main import create_app


def route_paths(app):
    return {route.path for route in app.routes}


class TestCreateApp:
    def test_registers_all_routers(self):
        paths = route_paths(create_app())

        assert "/api/monitors" in paths
        assert "/api/monitors/{monitor_id}/analytics" in paths
        assert "/api/monitors/{monitor_id}/channels/{channel_id}" in paths
        assert "/api/ping/{slug}" in paths
        assert "/api/status/{slug}/history" in paths
        assert "/api/badge/{slug}/uptime" in paths
        assert "/api/status-groups" in paths
        assert "/api/status-group/{slug}" in paths
        assert "/api/checker/run" in paths

    def test_health(self):
        with patch("cronguard.main.get_monitor_checker"), \
                patch("cronguard.main.get_alert_notifier"), \
                patch("cronguard.main.reset_monitor_checker"), \
                patch("cronguard.main.reset_alert_notifier"), \
                patch("cronguard.main.close_db"):
            with TestClient(create_app()) as client:
                response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["app_name"] == "CronGuard"

    def test_lifespan_starts_and_stops_services(self):
        with patch("cronguard.main.get_monitor_checker") as get_checker, \
                patch("cronguard.main.get_alert_notifier") as get_notifier, \
                patch("cronguard.main.reset_monitor_checker") as reset_checker, \
                patch("cronguard.main.reset_alert_notifier") as reset_notifier, \
                patch("cronguard.main.close_db") as close_db:
            with TestClient(create_app()):
                get_checker.return_value.start.assert_called_once()
                get_notifier.return_value.start.assert_called_once()

        reset_checker.assert_called_once()
        reset_notifier.assert_awaited_once()
        close_db.assert_awaited_once()

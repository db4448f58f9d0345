"""Unit tests for SVG badge rendering."""

import pytest
from xml.etree import ElementTree

from cronguard.models.enums import MonitorStatus
from cronguard.services.badges import (
    BLUE,
    GRAY,
    GREEN,
    ORANGE,
    RED,
    SLATE,
    YELLOW,
    render_badge,
    status_badge_data,
    uptime_color,
)


class TestStatusBadgeData:
    @pytest.mark.parametrize(
        "status, message, color",
        [
            (MonitorStatus.HEALTHY, "healthy", GREEN),
            (MonitorStatus.LATE, "late", YELLOW),
            (MonitorStatus.DOWN, "down", RED),
            (MonitorStatus.FAILED, "failed", RED),
            (MonitorStatus.PAUSED, "paused", SLATE),
            (MonitorStatus.PENDING, "pending", BLUE),
            (MonitorStatus.RUNNING, "running", BLUE),
        ],
    )
    def test_known_statuses(self, status, message, color):
        badge = status_badge_data(status.value)

        assert badge.label == "status"
        assert badge.message == message
        assert badge.color == color

    def test_unknown_status(self):
        badge = status_badge_data("EXPLODED")

        assert badge.message == "unknown"
        assert badge.color == GRAY


class TestUptimeColor:
    @pytest.mark.parametrize(
        "uptime, color",
        [
            (100.0, GREEN),
            (99.9, GREEN),
            (99.89, YELLOW),
            (99.0, YELLOW),
            (98.99, ORANGE),
            (95.0, ORANGE),
            (94.99, RED),
            (0.0, RED),
        ],
    )
    def test_thresholds(self, uptime, color):
        assert uptime_color(uptime) == color


class TestRenderBadge:
    def test_valid_svg_with_text(self):
        svg = render_badge("uptime", "99.95%", GREEN)

        root = ElementTree.fromstring(svg)
        texts = [el.text for el in root.iter("{http://www.w3.org/2000/svg}text")]
        assert texts.count("uptime") == 2
        assert texts.count("99.95%") == 2

    def test_width_from_text_length(self):
        svg = render_badge("status", "healthy", GREEN)

        root = ElementTree.fromstring(svg)
        label_width = len("status") * 7 + 20
        message_width = len("healthy") * 7 + 20
        assert root.get("width") == str(label_width + message_width)

    def test_flat_style_rounded(self):
        assert 'rx="3"' in render_badge("status", "down", RED, style="flat")

    def test_flat_square_style(self):
        assert 'rx="0"' in render_badge("status", "down", RED, style="flat-square")

    def test_unknown_style_falls_back_to_flat(self):
        assert 'rx="3"' in render_badge("status", "down", RED, style="plastic")

    def test_text_is_escaped(self):
        svg = render_badge("a<b", "x&y", GRAY)

        assert "a&lt;b" in svg
        assert "x&amp;y" in svg
        ElementTree.fromstring(svg)

    def test_message_colour_used(self):
        assert f'fill="{ORANGE}"' in render_badge("uptime", "96.00%", ORANGE)

"""SVG status and uptime badges in the shields.io style."""

from typing import NamedTuple
from xml.sax.saxutils import escape

from cronguard.models.enums import MonitorStatus

GRAY = "#9ca3af"
GREEN = "#10b981"
YELLOW = "#eab308"
ORANGE = "#f97316"
RED = "#ef4444"
SLATE = "#6b7280"
BLUE = "#3b82f6"

BADGE_STYLES = ("flat", "flat-square")

# Approximate glyph width of the 11px badge font
CHAR_WIDTH = 7
PADDING = 20


class BadgeData(NamedTuple):
    label: str
    message: str
    color: str


_STATUS_BADGES = {
    MonitorStatus.HEALTHY.value: BadgeData("status", "healthy", GREEN),
    MonitorStatus.LATE.value: BadgeData("status", "late", YELLOW),
    MonitorStatus.DOWN.value: BadgeData("status", "down", RED),
    MonitorStatus.FAILED.value: BadgeData("status", "failed", RED),
    MonitorStatus.PAUSED.value: BadgeData("status", "paused", SLATE),
    MonitorStatus.PENDING.value: BadgeData("status", "pending", BLUE),
    MonitorStatus.RUNNING.value: BadgeData("status", "running", BLUE),
}


def status_badge_data(status: str) -> BadgeData:
    """Label, message and colour for a monitor status."""
    return _STATUS_BADGES.get(status, BadgeData("status", "unknown", GRAY))


def uptime_color(uptime_percent: float) -> str:
    if uptime_percent >= 99.9:
        return GREEN
    if uptime_percent >= 99.0:
        return YELLOW
    if uptime_percent >= 95.0:
        return ORANGE
    return RED


def measure_text(text: str) -> int:
    return len(text) * CHAR_WIDTH


def render_badge(label: str, message: str, color: str, style: str = "flat") -> str:
    """Render a two-part badge as SVG.

    Args:
        label: Left-hand text, drawn on a dark background.
        message: Right-hand text, drawn on ``color``.
        color: Background colour of the message part.
        style: ``flat`` (rounded corners) or ``flat-square``. Unknown styles
            fall back to ``flat``.
    """
    label_width = measure_text(label) + PADDING
    message_width = measure_text(message) + PADDING
    total_width = label_width + message_width
    radius = 0 if style == "flat-square" else 3

    label_text = escape(label)
    message_text = escape(message)
    label_x = label_width / 2
    message_x = label_width + message_width / 2

    return f"""<svg xmlns="http://www.w3.org/2000/svg" width="{total_width}" height="20">
  <linearGradient id="b" x2="0" y2="100%">
    <stop offset="0" stop-color="#bbb" stop-opacity=".1"/>
    <stop offset="1" stop-opacity=".1"/>
  </linearGradient>
  <mask id="a">
    <rect width="{total_width}" height="20" rx="{radius}" fill="#fff"/>
  </mask>
  <g mask="url(#a)">
    <path fill="#555" d="M0 0h{label_width}v20H0z"/>
    <path fill="{color}" d="M{label_width} 0h{message_width}v20H{label_width}z"/>
    <path fill="url(#b)" d="M0 0h{total_width}v20H0z"/>
  </g>
  <g fill="#fff" text-anchor="middle" font-family="DejaVu Sans,Verdana,Geneva,sans-serif" font-size="11">
    <text x="{label_x:g}" y="14" fill="#010101" fill-opacity=".3">{label_text}</text>
    <text x="{label_x:g}" y="13">{label_text}</text>
    <text x="{message_x:g}" y="14" fill="#010101" fill-opacity=".3">{message_text}</text>
    <text x="{message_x:g}" y="13">{message_text}</text>
  </g>
</svg>"""

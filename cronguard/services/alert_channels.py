"""Per-destination formatting of alerts.

Each alert channel type has a config model that is validated when the
channel is saved, and a formatter that turns an AlertPayload into the HTTP
request the destination expects. Sending is left to AlertNotifier.
"""

import html
from typing import Any, Callable, Dict, List, Literal, NamedTuple, Optional, Tuple, Type

from pydantic import AnyHttpUrl, BaseModel, Field, ValidationError

from cronguard import __version__
from cronguard.models.alert_channel import AlertChannel
from cronguard.models.enums import AlertChannelType, AlertEvent

TELEGRAM_API_BASE = "https://api.telegram.org"

EVENT_COLORS = {
    AlertEvent.DOWN: "#dc2626",
    AlertEvent.RECOVERED: "#10b981",
}
NEUTRAL_COLOR = "#f59e0b"

EVENT_EMOJI = {
    AlertEvent.DOWN: "🚨",
    AlertEvent.RECOVERED: "✅",
    AlertEvent.PAUSED: "⏸️",
    AlertEvent.RESUMED: "▶️",
}

EVENT_TITLES = {
    AlertEvent.DOWN: "Monitor Down",
    AlertEvent.RECOVERED: "Monitor Recovered",
    AlertEvent.PAUSED: "Monitor Paused",
    AlertEvent.RESUMED: "Monitor Resumed",
}

EVENT_DESCRIPTIONS = {
    AlertEvent.DOWN: "has not checked in and is now marked as DOWN.",
    AlertEvent.RECOVERED: "has recovered and is now HEALTHY.",
    AlertEvent.PAUSED: "has been paused.",
    AlertEvent.RESUMED: "has been resumed.",
}

# Payload detail keys shown as fields, in display order
DETAIL_LABELS = [
    ("last_ping_at", "Last Ping"),
    ("expected_at", "Expected By"),
    ("failure_message", "Failure"),
    ("downtime_ms", "Downtime"),
]


class InvalidChannelConfigError(Exception):
    """Raised when an alert channel's config does not fit its type."""
    pass


# Config models

class SlackConfig(BaseModel):
    webhook_url: AnyHttpUrl


class DiscordConfig(BaseModel):
    webhook_url: AnyHttpUrl


class TeamsConfig(BaseModel):
    webhook_url: AnyHttpUrl


class TelegramConfig(BaseModel):
    bot_token: str = Field(..., min_length=1)
    chat_id: str = Field(..., min_length=1)


class WebhookConfig(BaseModel):
    """Custom webhook settings.

    Without ``include_details`` only the event, monitor name and timestamp
    are sent. GET webhooks carry no body.
    """
    url: AnyHttpUrl
    method: Literal["POST", "GET"] = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)
    include_details: bool = False


CONFIG_MODELS: Dict[AlertChannelType, Type[BaseModel]] = {
    AlertChannelType.SLACK: SlackConfig,
    AlertChannelType.DISCORD: DiscordConfig,
    AlertChannelType.TEAMS: TeamsConfig,
    AlertChannelType.TELEGRAM: TelegramConfig,
    AlertChannelType.WEBHOOK: WebhookConfig,
}


class OutboundRequest(NamedTuple):
    """An HTTP request ready to be sent by the notifier."""
    method: str
    url: str
    json: Optional[Dict[str, Any]]
    headers: Dict[str, str]


def _parse_config(channel_type: str, config: Dict[str, Any]) -> BaseModel:
    try:
        model = CONFIG_MODELS[AlertChannelType(channel_type)]
    except ValueError:
        raise InvalidChannelConfigError(f"Unknown alert channel type: {channel_type}")
    try:
        return model.model_validate(config)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidChannelConfigError(f"Invalid {channel_type} channel config: {fields}")


def validate_channel_config(channel_type: str, config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate ``config`` for ``channel_type`` and return it normalized for storage.

    Raises:
        InvalidChannelConfigError: If the type is unknown or the config does
            not match it.
    """
    return _parse_config(channel_type, config).model_dump(mode="json")


def format_duration(duration_ms: int) -> str:
    """Render a downtime as ``2h 5m`` or ``5m``."""
    total_minutes = duration_ms // 60000
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"


def detail_fields(details: Dict[str, Any]) -> List[Tuple[str, str]]:
    fields = []
    for key, label in DETAIL_LABELS:
        value = details.get(key)
        if value is None:
            continue
        if key == "downtime_ms":
            value = format_duration(int(value))
        fields.append((label, str(value)))
    return fields


def monitor_link(monitor_id: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/dashboard/monitors/{monitor_id}"


def _title(payload) -> str:
    return f"{EVENT_TITLES[payload.event]}: {payload.monitor_name}"


def _json_post(url: Any, body: Dict[str, Any]) -> OutboundRequest:
    return OutboundRequest("POST", str(url), body, {"Content-Type": "application/json"})


def slack_request(config: SlackConfig, payload, link: str) -> OutboundRequest:
    verb = {
        AlertEvent.DOWN: "is DOWN",
        AlertEvent.RECOVERED: "has recovered",
        AlertEvent.PAUSED: "has been paused",
        AlertEvent.RESUMED: "has been resumed",
    }[payload.event]
    body = {
        "text": f"{EVENT_EMOJI[payload.event]} Monitor *{payload.monitor_name}* {verb}",
        "attachments": [
            {
                "color": EVENT_COLORS.get(payload.event, NEUTRAL_COLOR),
                "fields": [
                    {"title": label, "value": value, "short": True}
                    for label, value in detail_fields(payload.details)
                ],
                "footer": "CronGuard",
                "ts": int(payload.timestamp.timestamp()),
                "actions": [{"type": "button", "text": "View Monitor", "url": link}],
            }
        ],
    }
    return _json_post(config.webhook_url, body)


def discord_request(config: DiscordConfig, payload, link: str) -> OutboundRequest:
    title = _title(payload)
    color = EVENT_COLORS.get(payload.event, NEUTRAL_COLOR)
    body = {
        "content": f"{EVENT_EMOJI[payload.event]} **{title}**",
        "embeds": [
            {
                "title": title,
                "description": (
                    f"Your monitor **{payload.monitor_name}** {EVENT_DESCRIPTIONS[payload.event]}"
                ),
                "color": int(color.lstrip("#"), 16),
                "fields": [
                    {"name": label, "value": value, "inline": True}
                    for label, value in detail_fields(payload.details)
                ],
                "footer": {"text": "CronGuard"},
                "timestamp": payload.timestamp.isoformat(),
                "url": link,
            }
        ],
    }
    return _json_post(config.webhook_url, body)


def teams_request(config: TeamsConfig, payload, link: str) -> OutboundRequest:
    title = _title(payload)
    body = {
        "@type": "MessageCard",
        "@context": "http://schema.org/extensions",
        "themeColor": EVENT_COLORS.get(payload.event, NEUTRAL_COLOR).lstrip("#"),
        "summary": title,
        "sections": [
            {
                "activityTitle": f"{EVENT_EMOJI[payload.event]} {title}",
                "activitySubtitle": payload.monitor_name,
                "facts": [
                    {"name": label, "value": value}
                    for label, value in detail_fields(payload.details)
                ],
                "markdown": True,
            }
        ],
        "potentialAction": [
            {
                "@type": "OpenUri",
                "name": "View Monitor",
                "targets": [{"os": "default", "uri": link}],
            }
        ],
    }
    return _json_post(config.webhook_url, body)


def telegram_request(config: TelegramConfig, payload, link: str) -> OutboundRequest:
    name = html.escape(payload.monitor_name)
    lines = [
        f"{EVENT_EMOJI[payload.event]} <b>{EVENT_TITLES[payload.event]}: {name}</b>",
        "",
        f"Your monitor <b>{name}</b> {EVENT_DESCRIPTIONS[payload.event]}",
    ]
    lines.extend(f"{label}: {html.escape(value)}" for label, value in detail_fields(payload.details))
    lines.extend(["", f'<a href="{html.escape(link)}">View Monitor</a>'])
    body = {
        "chat_id": config.chat_id,
        "text": "\n".join(lines),
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }
    return _json_post(f"{TELEGRAM_API_BASE}/bot{config.bot_token}/sendMessage", body)


def webhook_request(config: WebhookConfig, payload, link: str) -> OutboundRequest:
    headers = {
        "Content-Type": "application/json",
        "User-Agent": f"CronGuard/{__version__}",
    }
    headers.update(config.headers)

    if config.method == "GET":
        return OutboundRequest("GET", str(config.url), None, headers)

    if config.include_details:
        body = payload.model_dump(mode="json")
    else:
        body = {
            "event": payload.event.value,
            "monitor_name": payload.monitor_name,
            "timestamp": payload.timestamp.isoformat(),
        }
    return OutboundRequest("POST", str(config.url), body, headers)


FORMATTERS: Dict[AlertChannelType, Callable[..., OutboundRequest]] = {
    AlertChannelType.SLACK: slack_request,
    AlertChannelType.DISCORD: discord_request,
    AlertChannelType.TEAMS: teams_request,
    AlertChannelType.TELEGRAM: telegram_request,
    AlertChannelType.WEBHOOK: webhook_request,
}


def build_channel_request(channel: AlertChannel, payload, base_url: str) -> OutboundRequest:
    """Format ``payload`` for ``channel``.

    Raises:
        InvalidChannelConfigError: If the stored config no longer validates.
    """
    config = _parse_config(channel.type, channel.config or {})
    formatter = FORMATTERS[AlertChannelType(channel.type)]
    return formatter(config, payload, monitor_link(payload.monitor_id, base_url))

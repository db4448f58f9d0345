"""Services package for business logic components."""

from cronguard.services.alert_channels import InvalidChannelConfigError, build_channel_request
from cronguard.services.alerts import AlertNotifier, get_alert_notifier
from cronguard.services.checker import (
    CheckerConfigError,
    MonitorChecker,
    get_monitor_checker,
)
from cronguard.services.monitors import (
    AlertChannelNotFoundError,
    InvalidMonitorConfigError,
    MonitorNotFoundError,
    StatusGroupNotFoundError,
)
from cronguard.services.uptime import (
    UptimeStats,
    calculate_uptime,
    merge_intervals,
)

__all__ = [
    "InvalidChannelConfigError",
    "build_channel_request",
    "AlertNotifier",
    "get_alert_notifier",
    "CheckerConfigError",
    "MonitorChecker",
    "get_monitor_checker",
    "AlertChannelNotFoundError",
    "InvalidMonitorConfigError",
    "MonitorNotFoundError",
    "StatusGroupNotFoundError",
    "UptimeStats",
    "calculate_uptime",
    "merge_intervals",
]

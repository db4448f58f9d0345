"""Alert delivery.

An alert goes to the monitor's own ``webhook_url`` as a JSON document, and to
each of its enabled alert channels in the format that channel expects.
Delivery is best effort: failures are logged and reported to the caller but
never raised, so a broken destination cannot fail a ping or a check run.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, Field

from cronguard.config import get_settings
from cronguard.models.enums import AlertEvent
from cronguard.models.monitor import Monitor
from cronguard.services.alert_channels import (
    InvalidChannelConfigError,
    OutboundRequest,
    build_channel_request,
)

logger = logging.getLogger(__name__)


class AlertPayload(BaseModel):
    """Body of an outbound alert."""
    monitor_id: str = Field(..., description="Monitor identifier")
    monitor_name: str = Field(..., description="Monitor display name")
    monitor_slug: str = Field(..., description="Monitor public slug")
    event: AlertEvent = Field(..., description="down, recovered, paused or resumed")
    timestamp: datetime = Field(..., description="When the event happened")
    details: Dict[str, Any] = Field(default_factory=dict)


def build_payload(
    monitor: Monitor,
    event: AlertEvent,
    timestamp: datetime,
    **details: Any,
) -> AlertPayload:
    """Build the alert payload for ``monitor``."""
    return AlertPayload(
        monitor_id=str(monitor.id),
        monitor_name=monitor.name,
        monitor_slug=monitor.slug,
        event=event,
        timestamp=timestamp,
        details={key: value for key, value in details.items() if value is not None},
    )


class AlertNotifier:
    """Posts alerts to monitor webhooks and alert channels.

    Usage:
        notifier = AlertNotifier()
        notifier.start()
        await notifier.send(monitor, payload)
        await notifier.close()

    A client may be injected for testing; an injected client is never closed
    by the notifier.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
    ):
        settings = get_settings()
        self._timeout = timeout if timeout is not None else settings.alert_timeout_seconds
        self._base_url = base_url if base_url is not None else settings.base_url
        self._client = client
        self._owns_client = client is None

    def start(self) -> None:
        """Create the HTTP client if none was injected."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True

    async def close(self) -> None:
        """Close the HTTP client if the notifier created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _destinations(self, monitor: Monitor, payload: AlertPayload) -> List[Tuple[str, OutboundRequest]]:
        destinations = []
        if monitor.webhook_url:
            destinations.append((
                "webhook",
                OutboundRequest("POST", monitor.webhook_url, payload.model_dump(mode="json"), {}),
            ))

        for channel in monitor.alert_channels:
            target = f"{channel.type} channel '{channel.name}'"
            if not channel.enabled:
                logger.debug(f"Skipping disabled {target} of {monitor.slug}")
                continue
            try:
                destinations.append((target, build_channel_request(channel, payload, self._base_url)))
            except InvalidChannelConfigError as e:
                logger.error(f"Cannot alert {target} of {monitor.slug}: {e}")
        return destinations

    async def _deliver(self, target: str, request: OutboundRequest, payload: AlertPayload) -> bool:
        try:
            response = await self._client.request(
                request.method,
                request.url,
                json=request.json,
                headers=request.headers or None,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to deliver {payload.event.value} alert for {payload.monitor_slug} "
                f"to {target}: {type(e).__name__}"
            )
            return False
        return True

    async def send(self, monitor: Monitor, payload: AlertPayload) -> bool:
        """Deliver ``payload`` to every destination of the monitor.

        Destinations are tried one after another; one failing does not stop
        the rest.

        Returns:
            True if at least one destination accepted the alert, False if the
            monitor has none configured or every delivery failed.
        """
        destinations = self._destinations(monitor, payload)
        if not destinations:
            logger.info(f"Monitor {monitor.slug} has no alert destinations, alert not sent")
            return False

        if self._client is None:
            self.start()

        delivered = 0
        for target, request in destinations:
            if await self._deliver(target, request, payload):
                delivered += 1

        logger.info(
            f"Delivered {payload.event.value} alert for {monitor.slug} "
            f"to {delivered} of {len(destinations)} destination(s)"
        )
        return delivered > 0


# Global notifier instance
_notifier_instance: Optional[AlertNotifier] = None


def get_alert_notifier() -> AlertNotifier:
    """Get or create the global AlertNotifier instance."""
    global _notifier_instance
    if _notifier_instance is None:
        _notifier_instance = AlertNotifier()
    return _notifier_instance


async def reset_alert_notifier() -> None:
    """Close and discard the global notifier.

    This is primarily useful for testing and application shutdown.
    """
    global _notifier_instance
    if _notifier_instance is not None:
        await _notifier_instance.close()
        _notifier_instance = None

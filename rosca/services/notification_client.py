# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Outbound notification requests.
Asks an external notification service to tell a member it is their turn.
Delivery is that service's job; this client only hands the request over.
"""

from typing import Optional

import httpx

from rosca.core.config import settings
from rosca.core.logging import get_logger
from rosca.metrics.prometheus import NOTIFICATIONS_SENT

logger = get_logger(__name__)


class NotificationClient:
    """Fire-and-forget; disabled when no base URL is configured."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        url = settings.NOTIFICATION_SERVICE_URL if base_url is None else base_url
        self._base_url = url.rstrip("/")
        self._timeout = timeout or settings.NOTIFICATION_TIMEOUT

    @property
    def enabled(self) -> bool:
        return bool(self._base_url)

    def send(self, channel: str, recipient: str, message: str, group_id: str = "N/A") -> None:
        if not self.enabled:
            logger.debug("Notifications disabled; not sending to %s", recipient)
            return

        payload = {
            "channel": channel,
            "recipient": recipient,
            "message": message,
            "group_id": group_id,
        }
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(f"{self._base_url}/api/v1/notify", json=payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "Notification to %s failed: %s", recipient, exc, extra={"group_id": group_id}
            )
            return

        NOTIFICATIONS_SENT.labels(channel=channel).inc()
        logger.info(
            "Notification requested: channel=%s, recipient=%s, status=%d",
            channel, recipient, resp.status_code,
            extra={"group_id": group_id},
        )

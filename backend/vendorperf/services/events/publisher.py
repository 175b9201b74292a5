"""
Vendor Performance - Alert Event Publisher
Best-effort fan-out of newly created alerts

Contract:
    - One event per newly created alert (never for a deduplicated hit)
    - Published only after the alert's transaction commits
    - Delivery is best-effort; callers log and swallow failures

Subject: agog.alerts.vendor-performance (ALERT_SUBJECT)
"""

import logging
from typing import Optional

import httpx

from vendorperf.core.config import settings
from vendorperf.models.alerts import AlertEvent

logger = logging.getLogger(__name__)


class AlertPublisher:
    """
    Publisher for alert notifications.
    
    Every event is kept in an in-process log. When ALERT_WEBHOOK_URL is
    configured the event is also POSTed there as JSON; downstream
    notifiers (email, chat) subscribe on the other side.
    """
    
    def __init__(
        self,
        webhook_url: Optional[str] = None,
        token: Optional[str] = None,
        subject: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._event_log: list[AlertEvent] = []
        self.webhook_url = webhook_url if webhook_url is not None else settings.ALERT_WEBHOOK_URL
        self.token = token if token is not None else settings.ALERT_WEBHOOK_TOKEN
        self.subject = subject or settings.ALERT_SUBJECT
        self.timeout = timeout or settings.ALERT_PUBLISH_TIMEOUT_SECONDS
    
    async def publish(self, event: AlertEvent) -> None:
        """
        Publish one alert event.
        
        Raises:
            httpx.HTTPError: webhook unreachable or rejected the event.
        """
        self._event_log.append(event)
        
        if not self.webhook_url:
            return
        
        headers = {
            "Content-Type": "application/json",
            "X-Event-Subject": self.subject,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.webhook_url,
                json={"subject": self.subject, "data": event.model_dump(mode="json")},
                headers=headers,
            )
            response.raise_for_status()
        
        logger.debug(f"Published alert {event.alert_id} to {self.subject}")
    
    # =========================================================================
    # QUERY METHODS
    # =========================================================================
    
    def get_event_log(self) -> list[dict]:
        """Get all published events."""
        return [e.model_dump(mode="json") for e in self._event_log]
    
    def clear_log(self) -> None:
        self._event_log.clear()


# Singleton instance
alert_publisher = AlertPublisher()

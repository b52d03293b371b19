"""Notification collaborator"""

from abc import ABC, abstractmethod
from datetime import datetime

import httpx
import structlog

from app.config import settings

logger = structlog.get_logger()


class Notifier(ABC):
    """Receives booking lifecycle events (booking.created, booking.cancelled, ...)"""

    @abstractmethod
    async def notify(self, event: str, payload: dict) -> None:
        pass


class LogNotifier(Notifier):
    """Writes events to the structured log only"""

    async def notify(self, event: str, payload: dict) -> None:
        logger.info("Notification", notification_event=event, **payload)


class WebhookNotifier(Notifier):
    """POSTs events as JSON to a webhook endpoint"""

    def __init__(self, url: str, timeout: float = None):
        self.url = url
        self.timeout = timeout or settings.http_timeout_seconds

    async def notify(self, event: str, payload: dict) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.url,
                json={
                    "event": event,
                    "payload": payload,
                    "sent_at": datetime.utcnow().isoformat(),
                },
            )
            response.raise_for_status()


async def notify_safely(notifier: Notifier, event: str, payload: dict) -> None:
    """Fire-and-forget delivery; failures are logged and never reach the caller"""
    try:
        await notifier.notify(event, payload)
    except Exception as e:
        logger.warning("Notification failed", notification_event=event, error=str(e))

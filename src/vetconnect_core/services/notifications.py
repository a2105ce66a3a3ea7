"""
Notification delivery port and adapters.

Notifications are recorded in the veterinarian's workflow state as part of
the aggregate transaction; delivery happens afterwards, fire-and-forget,
through the ``NotificationDispatcher``. A failing channel is logged and
never affects the workflow that produced the notification.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set

import requests

from ..exceptions import NotificationDeliveryException, log_exception_context
from ..schemas.workflow import Notification

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """A way of delivering a notification to a veterinarian."""

    name = "channel"

    @abstractmethod
    async def send(self, veterinarian_id: str, notification: Notification) -> None:
        """
        Deliver a notification.

        Raises:
            NotificationDeliveryException: If delivery failed
        """


class LoggingNotificationChannel(NotificationChannel):
    """Channel that writes notifications to the log."""

    name = "log"

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def send(self, veterinarian_id: str, notification: Notification) -> None:
        self.logger.info(
            f"[{notification.priority.value}] {notification.title} "
            f"-> veterinarian {veterinarian_id}: {notification.message}"
        )


class WebhookNotificationChannel(NotificationChannel):
    """Channel that POSTs notifications as JSON to a webhook URL."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        """
        Initialize the webhook channel.

        Args:
            url: Endpoint receiving the notification payloads
            timeout: Request timeout in seconds
        """
        self.url = url
        self.timeout = timeout
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def build_payload(
        self, veterinarian_id: str, notification: Notification
    ) -> Dict[str, Any]:
        """Build the JSON body posted to the webhook."""
        return {
            "veterinarian_id": veterinarian_id,
            "notification": notification.model_dump(mode="json"),
        }

    def _post(self, payload: Dict[str, Any]) -> None:
        response = requests.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()

    async def send(self, veterinarian_id: str, notification: Notification) -> None:
        payload = self.build_payload(veterinarian_id, notification)
        try:
            # requests is blocking; keep it off the event loop
            await asyncio.to_thread(self._post, payload)
        except requests.RequestException as e:
            raise NotificationDeliveryException(
                f"Webhook delivery failed: {e}",
                channel=self.name,
                notification_id=notification.id,
                original_error=e,
            ) from e
        self.logger.debug(f"Delivered notification {notification.id} to {self.url}")


class NotificationDispatcher:
    """Fans notifications out to every configured channel in the background."""

    def __init__(self, channels: Optional[List[NotificationChannel]] = None):
        self.channels: List[NotificationChannel] = (
            list(channels) if channels is not None else [LoggingNotificationChannel()]
        )
        self._pending: Set["asyncio.Task[None]"] = set()

    def add_channel(self, channel: NotificationChannel) -> None:
        """Register another delivery channel."""
        self.channels.append(channel)

    def dispatch(self, veterinarian_id: str, notification: Notification) -> None:
        """
        Schedule delivery of a notification without waiting for it.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(self._deliver(veterinarian_id, notification))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, veterinarian_id: str, notification: Notification) -> None:
        for channel in self.channels:
            try:
                await channel.send(veterinarian_id, notification)
            except NotificationDeliveryException as e:
                e.log_error(logger)
            except Exception as e:
                log_exception_context(
                    e,
                    {
                        "channel": channel.name,
                        "notification_id": notification.id,
                        "veterinarian_id": veterinarian_id,
                    },
                    logger,
                )

    @property
    def pending(self) -> int:
        """Number of deliveries still running."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

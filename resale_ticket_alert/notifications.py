"""
Notification handling for the Resale Ticket Alert.
"""
import asyncio
import logging
import webbrowser
from typing import Callable, Dict, Optional, Sequence

import httpx

from .errors import NotificationDeliveryError
from .models import NotificationConfig, TicketInfo

logger = logging.getLogger(__name__)


def format_ticket_details(tickets: Sequence[TicketInfo]) -> str:
    """One line per listing with whichever of section, row and price are known."""
    return "\n".join(ticket.summary() for ticket in tickets)


def format_summary(ticket_count: int, tickets: Sequence[TicketInfo]) -> str:
    return f"Found {ticket_count} resale ticket(s) available!\n{format_ticket_details(tickets)}"


class NtfyNotificationService:
    """Push notifications through an ntfy topic URL."""

    def __init__(self, config: NotificationConfig, event_url: str, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.event_url = event_url
        self._client = client

    def build_headers(self) -> Dict[str, str]:
        return {
            "Title": self.config.title,
            "Priority": self.config.priority,
            "Tags": ",".join(self.config.tags),
            "Actions": f"view, {self.config.action_label}, {self.event_url}",
        }

    async def _post(self, body: str) -> httpx.Response:
        headers = self.build_headers()
        if self._client is not None:
            return await self._client.post(self.config.notify_url, content=body.encode("utf-8"), headers=headers)
        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            return await client.post(self.config.notify_url, content=body.encode("utf-8"), headers=headers)

    async def deliver(self, ticket_count: int) -> None:
        """Send the notification, raising NotificationDeliveryError on failure."""
        try:
            response = await self._post(f"Found {ticket_count} tickets!")
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(f"Error sending web notification: {e}") from e

        if not response.is_success:
            raise NotificationDeliveryError(
                f"Failed to send notification: {response.status_code} {response.reason_phrase}"
            )

    async def send(self, ticket_count: int) -> bool:
        """Send once; failures are logged and never retried."""
        logger.info(f"📣 Sending notification for {ticket_count} tickets found")
        try:
            await self.deliver(ticket_count)
        except NotificationDeliveryError as e:
            logger.error(f"❌ {e}")
            return False

        logger.info("✅ Web notification sent successfully")
        return True


class TicketNotifier:
    """Tells the user about available tickets through every configured channel."""

    def __init__(
        self,
        config: NotificationConfig,
        event_url: str,
        service: Optional[NtfyNotificationService] = None,
        open_url: Callable[[str], bool] = webbrowser.open,
    ):
        self.config = config
        self.event_url = event_url
        self.service = service or NtfyNotificationService(config, event_url)
        self._open_url = open_url

    async def open_ticket_page(self) -> bool:
        """Open the event page in the default browser.

        The opener runs in a worker thread since console browsers block until
        they exit.
        """
        try:
            opened = await asyncio.to_thread(self._open_url, self.event_url)
        except Exception as e:
            logger.error(f"❌ Error opening browser: {e}")
            return False

        if not opened:
            logger.warning("⚠️ No local browser available to open the event page")
            return False

        logger.info("🌐 Opened browser to event page")
        return True

    async def notify_tickets_found(self, ticket_count: int, tickets: Sequence[TicketInfo]) -> None:
        logger.warning(format_summary(ticket_count, tickets))

        await self.service.send(ticket_count)

        if self.config.open_browser:
            await self.open_ticket_page()

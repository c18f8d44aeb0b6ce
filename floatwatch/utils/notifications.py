"""
Notification Service for monitor results.
Logs every terminal event and forwards it to Telegram when configured.
"""

from typing import Optional
from loguru import logger
from telegram import Bot

from floatwatch.config import NotificationConfig
from floatwatch.models import MonitorEvent, MonitorStatus, WatchedItem


class NotificationService:
    """
    Handles notifications for monitor lifecycle ends.
    Currently supports Telegram.
    """

    def __init__(self, config: NotificationConfig):
        self.config = config
        self.telegram_enabled = config.telegram_enabled
        self._bot = None

        if self.telegram_enabled:
            try:
                self._bot = Bot(token=config.telegram_bot_token)
                logger.info("Telegram notifications enabled")
            except Exception as e:
                logger.error(f"Failed to initialize Telegram: {e}")
                self.telegram_enabled = False

    async def send_event(self, event: MonitorEvent):
        """Send the terminal event of one monitor."""
        if event.status is MonitorStatus.MATCHED:
            message = self._format_match(event)
        elif event.status is MonitorStatus.FAILED:
            message = self._format_failure(event)
        else:
            message = f"MONITOR STOPPED\nItem: {event.label}\nTime: {event.at.strftime('%H:%M:%S')}"
        await self._send(message)

    async def send_registration(self, item: WatchedItem):
        """Confirm an item was added to the watchlist."""
        await self._send(
            f"ITEM ADDED\n"
            f"Item: {item.label}\n"
            f"Target float: {item.target_float}\n"
            f"Target price: ${item.target_price}"
        )

    def _format_match(self, event: MonitorEvent) -> str:
        snapshot = event.snapshot
        lines = ["MATCH FOUND", f"Item: {event.label}"]
        if snapshot:
            lines.append(f"Float: {snapshot.float_value:.10f}")
            lines.append(f"Price: ${snapshot.price}")
            if snapshot.listing_id:
                lines.append(f"Listing: {snapshot.listing_id}")
        lines.append(f"Time: {event.at.strftime('%H:%M:%S')}")
        return "\n".join(lines)

    def _format_failure(self, event: MonitorEvent) -> str:
        return (
            f"MONITOR FAILED\n"
            f"Item: {event.label}\n"
            f"Reason: {event.reason or 'unknown'}\n"
            f"Time: {event.at.strftime('%H:%M:%S')}"
        )

    async def _send(self, message: str, chat_id: Optional[str] = None):
        """Send message via configured channels."""
        if self.telegram_enabled and self._bot:
            try:
                await self._bot.send_message(
                    chat_id=chat_id or self.config.telegram_chat_id,
                    text=message,
                )
            except Exception as e:
                logger.error(f"Telegram send failed: {e}")

        # Always log the message
        logger.info(f"[NOTIFICATION] {message.replace(chr(10), ' | ')}")

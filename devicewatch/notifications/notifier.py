"""Main notification orchestrator."""

import logging

from devicewatch.config import settings
from devicewatch.metrics import notifications_failed_total, notifications_sent_total
from devicewatch.notifications.telegram_notifier import NotifyError, send_telegram_message

logger = logging.getLogger(__name__)


async def send_status_change_notification(text: str) -> bool:
    """Deliver a status change message through Telegram.

    Delivery failures are logged and counted, never raised.

    Args:
        text: Message body, one line per changed device.

    Returns:
        True if the message was delivered, False otherwise.
    """
    if not settings.telegram_configured:
        logger.warning("Telegram not configured, skipping notification")
        notifications_failed_total.labels(channel="telegram").inc()
        return False

    try:
        await send_telegram_message(
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            text,
            api_url=settings.telegram_api_url,
        )
    except NotifyError as e:
        logger.error("Error sending Telegram message: %s", e)
        notifications_failed_total.labels(channel="telegram").inc()
        return False

    notifications_sent_total.labels(channel="telegram").inc()
    logger.info("Status change notification sent (%d lines)", len(text.splitlines()))
    return True

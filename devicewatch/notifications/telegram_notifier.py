"""Telegram Bot API notifications."""

import json
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.telegram.org"

# Explicit bound on the sendMessage call
REQUEST_TIMEOUT_SECONDS = 10.0


class NotifyError(Exception):
    """Raised when a message could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _error_description(response: httpx.Response) -> str:
    """Extract Telegram's error description from a failed response."""
    try:
        return str(response.json().get("description", ""))
    except (ValueError, AttributeError):
        return response.text[:200]


async def send_telegram_message(
    bot_token: str,
    chat_id: str,
    text: str,
    api_url: str = DEFAULT_API_URL,
) -> None:
    """Send a text message to a Telegram chat.

    Empty text is sent as-is; rejecting it is left to Telegram.

    Args:
        bot_token: Bot token issued by BotFather.
        chat_id: Destination chat identifier.
        text: Message body.
        api_url: Bot API base URL.

    Raises:
        NotifyError: On serialization failure, transport failure or any
            response status other than 200.
    """
    url = f"{api_url.rstrip('/')}/bot{bot_token}/sendMessage"

    try:
        body = json.dumps({"chat_id": chat_id, "text": text})
    except (TypeError, ValueError) as e:
        raise NotifyError(f"could not encode message to JSON: {e}") from e

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                content=body,
                headers={"Content-Type": "application/json"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
    except httpx.HTTPError as e:
        # Exception text may carry the URL, which contains the token
        raise NotifyError(f"could not send message to Telegram: {type(e).__name__}") from e

    if response.status_code != httpx.codes.OK:
        description = _error_description(response)
        raise NotifyError(
            f"unexpected status code: {response.status_code}"
            + (f" ({description})" if description else ""),
            status_code=response.status_code,
        )

    logger.debug("Telegram message delivered to chat %s", chat_id)

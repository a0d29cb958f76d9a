"""
Telegram Bot API client for external notification delivery.

Sends rendered notification text to a member's chat via sendMessage. Every
request carries a bounded timeout; a slow API is a failure, never a hang.
"""

import json
import logging

import requests

logger = logging.getLogger(__name__)

_API_BASE = "https://api.telegram.org"


class TelegramError(Exception):
    """Raised when a Telegram API request fails or times out."""


class TelegramClient:
    """
    Send messages via the Telegram Bot API.

    A client built without a bot token is disabled: `enabled` is False and
    the notification engine records deliveries as skipped instead of
    calling send_message.
    """

    name = "telegram"

    def __init__(self, bot_token: str | None, timeout_seconds: float = 10.0, api_base: str = _API_BASE):
        """
        Initialize with bot credentials.

        Args:
            bot_token: Bot token from BotFather; empty or None disables the client
            timeout_seconds: Connect+read timeout per request
            api_base: API host (overridable for tests and proxies)

        Raises:
            ValueError: If timeout is not positive
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.bot_token = bot_token or None
        self.timeout_seconds = timeout_seconds
        self.api_base = api_base.rstrip("/")

        if not self.enabled:
            logger.warning("Telegram notifications disabled: no bot token configured")

    @property
    def enabled(self) -> bool:
        return self.bot_token is not None

    def _redact(self, error: Exception) -> str:
        """Error text with the bot token masked; requests errors echo the URL."""
        return str(error).replace(self.bot_token, "<redacted>")

    def _call(self, method: str, payload: dict) -> dict:
        """
        POST a Bot API method and return its `result`.

        Raises:
            TelegramError: On connection failure, timeout, bad JSON or ok=false
        """
        if not self.enabled:
            raise TelegramError("Telegram client is disabled")

        url = f"{self.api_base}/bot{self.bot_token}/{method}"

        try:
            response = requests.post(url, json=payload, timeout=self.timeout_seconds)
        except requests.exceptions.Timeout as e:
            raise TelegramError(f"Timed out after {self.timeout_seconds}s: {self._redact(e)}")
        except requests.exceptions.RequestException as e:
            raise TelegramError(f"Connection failed: {self._redact(e)}")

        try:
            response_data = response.json()
        except (json.JSONDecodeError, ValueError):
            raise TelegramError(f"Invalid response from Telegram (HTTP {response.status_code})")

        if response.status_code != 200 or not response_data.get("ok"):
            description = response_data.get("description", "Unknown error")
            raise TelegramError(f"Telegram API error: {description}")

        return response_data.get("result", {})

    def send(self, recipient_handle: str, text: str, format: str = "HTML") -> bool:
        """
        Deliver rendered text to one chat.

        Args:
            recipient_handle: Numeric chat_id or @username
            text: Rendered message body
            format: Telegram parse_mode ("HTML" or "Markdown")

        Returns:
            True once Telegram accepted the message

        Raises:
            TelegramError: On any failure
        """
        self._call("sendMessage", {
            "chat_id": recipient_handle,
            "text": text,
            "parse_mode": format,
            "disable_web_page_preview": True,
        })
        logger.info(f"Telegram message sent to {recipient_handle}")
        return True

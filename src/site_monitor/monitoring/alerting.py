"""
Alert dispatch for down and recovered notifications.

The monitoring core only decides when to alert and with what payload; the
classes here deliver it. AlertManager sends via Telegram.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import requests

logger = logging.getLogger(__name__)

# Characters legacy Telegram Markdown treats as entity delimiters
_MARKDOWN_SPECIAL_RE = re.compile(r"([_*`\[])")


def escape_markdown(text: str) -> str:
    """Backslash-escape text so Telegram renders it literally."""
    return _MARKDOWN_SPECIAL_RE.sub(r"\\\1", text)


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Contract the scheduler uses to deliver alerts. Best-effort."""

    def send_down(
        self, name: str, url: str, status_code: int, timestamp: datetime
    ) -> Any:
        ...

    def send_recovered(
        self, name: str, url: str, status_code: int, timestamp: datetime
    ) -> Any:
        ...


class AlertManager:
    """
    Sends down/recovered alerts via Telegram.

    Without credentials every send logs a warning and returns False, so an
    unconfigured manager is a safe no-op.

    Usage:
        manager = AlertManager(
            telegram_bot_token="...",
            telegram_chat_id="...",
        )

        manager.send_down("Example API", url, 503, timestamp)
        manager.send_recovered("Example API", url, 200, timestamp)
    """

    def __init__(
        self,
        telegram_bot_token: Optional[str] = None,
        telegram_chat_id: Optional[str] = None,
        request_timeout: float = 10.0,
        _telegram_api: Optional[Any] = None,  # For testing
    ) -> None:
        """
        Initialize the alert manager.

        Args:
            telegram_bot_token: Bot token from @BotFather
            telegram_chat_id: Chat ID to send messages to
            request_timeout: Timeout for the Telegram API call
            _telegram_api: Injected API client for testing
        """
        self._bot_token = telegram_bot_token
        self._chat_id = telegram_chat_id
        self._request_timeout = request_timeout
        self._telegram_api = _telegram_api

        self._sent: Dict[str, int] = {"down": 0, "recovered": 0}

    @property
    def is_configured(self) -> bool:
        return self._telegram_api is not None or bool(self._bot_token and self._chat_id)

    def send_down(
        self,
        name: str,
        url: str,
        status_code: int,
        timestamp: datetime,
    ) -> bool:
        """
        Send a website down alert.

        Returns:
            True if sent
        """
        title = "⚠️ Website DOWN:"
        message = self._format_details(name, url, status_code, timestamp, "UNHEALTHY")

        sent = self.send_alert(
            title=title, message=message, priority="high", subject=name
        )
        if sent:
            self._sent["down"] += 1
        return sent

    def send_recovered(
        self,
        name: str,
        url: str,
        status_code: int,
        timestamp: datetime,
    ) -> bool:
        """
        Send a website recovered alert.

        Returns:
            True if sent
        """
        title = "✅ Website RECOVERED:"
        message = self._format_details(name, url, status_code, timestamp, "HEALTHY")

        sent = self.send_alert(
            title=title, message=message, priority="normal", subject=name
        )
        if sent:
            self._sent["recovered"] += 1
        return sent

    def send_alert(
        self,
        title: str,
        message: str,
        priority: str = "normal",
        subject: Optional[str] = None,
    ) -> bool:
        """
        Send an alert via Telegram.

        Args:
            title: Alert title, rendered bold (must be valid Markdown)
            message: Alert message body (must be valid Markdown)
            priority: Priority level ("low", "normal", "high", "critical")
            subject: Plain text shown after the title, escaped for Markdown

        Returns:
            True if the message was delivered
        """
        formatted = self._format_message(title, message, priority, subject)
        return self._send_telegram(formatted)

    def _format_details(
        self,
        name: str,
        url: str,
        status_code: int,
        timestamp: datetime,
        status: str,
    ) -> str:
        local_time = timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        return f"""
Website: {escape_markdown(name)}
URL: {escape_markdown(url)}
Status Code: {status_code}
Time: {local_time}
Status: {status}
"""

    def _format_message(
        self,
        title: str,
        message: str,
        priority: str,
        subject: Optional[str] = None,
    ) -> str:
        """Format alert message for Telegram."""
        priority_markers = {
            "critical": "🚨🚨🚨",
            "high": "🔴",
            "normal": "",
            "low": "ℹ️",
        }

        marker = priority_markers.get(priority, "")
        header = f"{marker} *{title}*" if marker else f"*{title}*"
        if subject:
            header = f"{header} {escape_markdown(subject)}"

        return f"{header}\n\n{message.strip()}"

    def _send_telegram(self, text: str) -> bool:
        """Send message via Telegram API."""
        # Use injected API for testing
        if self._telegram_api:
            try:
                self._telegram_api.send_message(
                    chat_id=self._chat_id,
                    text=text,
                    parse_mode="Markdown",
                )
                return True
            except Exception as e:
                logger.error(f"Telegram API error: {e}")
                return False

        if not self._bot_token or not self._chat_id:
            logger.warning("Telegram credentials not configured, alert not sent")
            return False

        try:
            url = f"https://api.telegram.org/bot{self._bot_token}/sendMessage"
            payload = {
                "chat_id": self._chat_id,
                "text": text,
                "parse_mode": "Markdown",
            }

            response = requests.post(url, json=payload, timeout=self._request_timeout)
            response.raise_for_status()

            logger.info(f"Sent Telegram alert: {text[:50]}...")
            return True

        except requests.RequestException as e:
            logger.error(f"Failed to send Telegram alert: {e}")
            return False

    def get_alert_stats(self) -> Dict[str, int]:
        """Get counts of alerts delivered."""
        return {
            "down": self._sent["down"],
            "recovered": self._sent["recovered"],
            "total_sent": self._sent["down"] + self._sent["recovered"],
        }


class CompositeDispatcher:
    """
    Fans an alert out to several dispatchers.

    Each dispatcher is tried independently; one failing never stops the
    others.
    """

    def __init__(self, dispatchers: Sequence[NotificationDispatcher]) -> None:
        self._dispatchers: List[NotificationDispatcher] = list(dispatchers)

    def send_down(
        self, name: str, url: str, status_code: int, timestamp: datetime
    ) -> bool:
        return self._fan_out("send_down", name, url, status_code, timestamp)

    def send_recovered(
        self, name: str, url: str, status_code: int, timestamp: datetime
    ) -> bool:
        return self._fan_out("send_recovered", name, url, status_code, timestamp)

    def _fan_out(self, method: str, *args: Any) -> bool:
        """Returns True if any dispatcher reported success."""
        delivered = False
        for dispatcher in self._dispatchers:
            try:
                if getattr(dispatcher, method)(*args):
                    delivered = True
            except Exception as e:
                logger.error(f"{type(dispatcher).__name__}.{method} failed: {e}")
        return delivered


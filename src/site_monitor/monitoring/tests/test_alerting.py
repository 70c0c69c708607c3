"""
Tests for alert delivery.

Sending is best-effort: failures return False, they never raise.
"""
import re
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from site_monitor.monitoring.alerting import (
    AlertManager,
    CompositeDispatcher,
    NotificationDispatcher,
    escape_markdown,
)

TIMESTAMP = datetime(2026, 3, 1, 10, 30, 0, tzinfo=timezone.utc)


class TestAlertManager:
    """Tests for Telegram alerts."""

    def test_send_down(self, alert_manager, mock_telegram):
        sent = alert_manager.send_down("Example API", "https://api.example.com", 503, TIMESTAMP)

        assert sent is True
        mock_telegram.send_message.assert_called_once()
        text = mock_telegram.send_message.call_args.kwargs["text"]
        assert text.startswith("🔴 *⚠️ Website DOWN:* Example API")
        assert "https://api.example.com" in text
        assert "Status Code: 503" in text
        assert "UNHEALTHY" in text

    def test_send_recovered(self, alert_manager, mock_telegram):
        sent = alert_manager.send_recovered("Example API", "https://api.example.com", 200, TIMESTAMP)

        assert sent is True
        text = mock_telegram.send_message.call_args.kwargs["text"]
        assert text.startswith("*✅ Website RECOVERED:* Example API")
        assert "Status: HEALTHY" in text

    @pytest.mark.parametrize("method", ["send_down", "send_recovered"])
    def test_escapes_markdown_in_name_and_url(self, alert_manager, mock_telegram, method):
        """Underscores in names or URLs must not open Markdown entities."""
        getattr(alert_manager, method)(
            "my_api *beta*", "https://example.com/health_check?x=[1]", 503, TIMESTAMP
        )

        kwargs = mock_telegram.send_message.call_args.kwargs
        text = kwargs["text"]
        assert kwargs["parse_mode"] == "Markdown"
        assert re.search(r"(?<!\\)[_`\[]", text) is None
        assert "my\\_api \\*beta\\*" in text
        assert "https://example.com/health\\_check?x=\\[1]" in text

    def test_escape_markdown(self):
        assert escape_markdown("a_b*c`d[e]") == "a\\_b\\*c\\`d\\[e]"
        assert escape_markdown("plain") == "plain"

    def test_stats_count_sent_alerts(self, alert_manager):
        alert_manager.send_down("A", "https://a.example", 500, TIMESTAMP)
        alert_manager.send_recovered("A", "https://a.example", 200, TIMESTAMP)
        alert_manager.send_down("A", "https://a.example", 0, TIMESTAMP)

        assert alert_manager.get_alert_stats() == {
            "down": 2,
            "recovered": 1,
            "total_sent": 3,
        }

    def test_api_error_returns_false(self, alert_manager, mock_telegram):
        mock_telegram.send_message.side_effect = Exception("API error")

        # Should not raise
        assert alert_manager.send_down("A", "https://a.example", 500, TIMESTAMP) is False
        assert alert_manager.get_alert_stats()["total_sent"] == 0

    def test_without_credentials_is_noop(self):
        manager = AlertManager()

        assert manager.is_configured is False
        assert manager.send_down("A", "https://a.example", 500, TIMESTAMP) is False

    def test_posts_to_telegram(self):
        manager = AlertManager(telegram_bot_token="token", telegram_chat_id="chat")

        with patch("site_monitor.monitoring.alerting.requests.post") as mock_post:
            mock_post.return_value = MagicMock()
            assert manager.send_down("A", "https://a.example", 500, TIMESTAMP) is True

        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        assert url == "https://api.telegram.org/bottoken/sendMessage"
        assert payload["chat_id"] == "chat"
        assert payload["parse_mode"] == "Markdown"

    def test_http_failure_returns_false(self):
        manager = AlertManager(telegram_bot_token="token", telegram_chat_id="chat")

        with patch(
            "site_monitor.monitoring.alerting.requests.post",
            side_effect=requests.ConnectionError("unreachable"),
        ):
            assert manager.send_down("A", "https://a.example", 500, TIMESTAMP) is False

    def test_priority_markers(self, alert_manager):
        assert alert_manager._format_message("T", "M", "high").startswith("🔴 *T*")
        assert alert_manager._format_message("T", "M", "normal").startswith("*T*")

    def test_satisfies_dispatcher_protocol(self, alert_manager):
        assert isinstance(alert_manager, NotificationDispatcher)


class TestCompositeDispatcher:

    def test_fans_out_to_all(self):
        first, second = MagicMock(), MagicMock()
        composite = CompositeDispatcher([first, second])

        composite.send_down("A", "https://a.example", 500, TIMESTAMP)

        first.send_down.assert_called_once_with("A", "https://a.example", 500, TIMESTAMP)
        second.send_down.assert_called_once_with("A", "https://a.example", 500, TIMESTAMP)

    def test_one_failure_does_not_stop_others(self):
        broken = MagicMock()
        broken.send_recovered.side_effect = RuntimeError("boom")
        working = MagicMock()
        working.send_recovered.return_value = True

        composite = CompositeDispatcher([broken, working])

        assert composite.send_recovered("A", "https://a.example", 200, TIMESTAMP) is True
        working.send_recovered.assert_called_once()

    def test_returns_false_when_nothing_delivered(self):
        composite = CompositeDispatcher([AlertManager()])
        assert composite.send_down("A", "https://a.example", 500, TIMESTAMP) is False

"""Tests for notification modules (Telegram/orchestrator)."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest


def make_client(response=None, side_effect=None):
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    client.post = AsyncMock(return_value=response, side_effect=side_effect)
    return client


def make_response(status_code, payload=None):
    return httpx.Response(
        status_code,
        json=payload if payload is not None else {"ok": status_code == 200},
        request=httpx.Request("POST", "https://api.telegram.org/botTOKEN/sendMessage"),
    )


class TestSendTelegramMessage:
    """Tests for send_telegram_message()."""

    @pytest.mark.asyncio
    async def test_posts_json_payload_to_bot_endpoint(self):
        from devicewatch.notifications import telegram_notifier

        client = make_client(make_response(200))

        with patch.object(telegram_notifier.httpx, "AsyncClient", return_value=client):
            await telegram_notifier.send_telegram_message("123:abc", "-100", "A is Online")

        args, kwargs = client.post.await_args
        assert args[0] == "https://api.telegram.org/bot123:abc/sendMessage"
        assert json.loads(kwargs["content"]) == {"chat_id": "-100", "text": "A is Online"}
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == telegram_notifier.REQUEST_TIMEOUT_SECONDS

    @pytest.mark.asyncio
    async def test_custom_api_url(self):
        from devicewatch.notifications import telegram_notifier

        client = make_client(make_response(200))

        with patch.object(telegram_notifier.httpx, "AsyncClient", return_value=client):
            await telegram_notifier.send_telegram_message(
                "t", "c", "x", api_url="http://localhost:8081/",
            )

        assert client.post.await_args.args[0] == "http://localhost:8081/bott/sendMessage"

    @pytest.mark.asyncio
    async def test_empty_text_is_sent(self):
        from devicewatch.notifications import telegram_notifier

        client = make_client(make_response(200))

        with patch.object(telegram_notifier.httpx, "AsyncClient", return_value=client):
            await telegram_notifier.send_telegram_message("t", "c", "")

        assert json.loads(client.post.await_args.kwargs["content"])["text"] == ""

    @pytest.mark.asyncio
    async def test_non_200_status_raises_with_description(self):
        from devicewatch.notifications import telegram_notifier

        client = make_client(make_response(400, {"ok": False, "description": "Bad Request: chat not found"}))

        with patch.object(telegram_notifier.httpx, "AsyncClient", return_value=client):
            with pytest.raises(telegram_notifier.NotifyError) as exc_info:
                await telegram_notifier.send_telegram_message("secret-token", "c", "x")

        assert exc_info.value.status_code == 400
        assert "chat not found" in str(exc_info.value)
        assert "secret-token" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_other_success_codes_are_failures(self):
        from devicewatch.notifications import telegram_notifier

        client = make_client(make_response(202))

        with patch.object(telegram_notifier.httpx, "AsyncClient", return_value=client):
            with pytest.raises(telegram_notifier.NotifyError):
                await telegram_notifier.send_telegram_message("t", "c", "x")

    @pytest.mark.asyncio
    async def test_transport_error_raises_without_leaking_token(self):
        from devicewatch.notifications import telegram_notifier

        client = make_client(side_effect=httpx.ConnectError("https://api.telegram.org/botsecret-token failed"))

        with patch.object(telegram_notifier.httpx, "AsyncClient", return_value=client):
            with pytest.raises(telegram_notifier.NotifyError) as exc_info:
                await telegram_notifier.send_telegram_message("secret-token", "c", "x")

        assert exc_info.value.status_code is None
        assert "ConnectError" in str(exc_info.value)
        assert "secret-token" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        from devicewatch.notifications import telegram_notifier

        client = make_client(side_effect=httpx.ReadTimeout("slow"))

        with patch.object(telegram_notifier.httpx, "AsyncClient", return_value=client):
            with pytest.raises(telegram_notifier.NotifyError):
                await telegram_notifier.send_telegram_message("t", "c", "x")

    @pytest.mark.asyncio
    async def test_serialization_failure_raises(self):
        from devicewatch.notifications import telegram_notifier

        with pytest.raises(telegram_notifier.NotifyError, match="encode"):
            await telegram_notifier.send_telegram_message("t", "c", object())

    def test_error_description_falls_back_to_body_text(self):
        from devicewatch.notifications import telegram_notifier

        response = httpx.Response(502, text="<html>Bad Gateway</html>")
        assert telegram_notifier._error_description(response) == "<html>Bad Gateway</html>"


class TestStatusChangeNotification:
    """Tests for the notification orchestrator."""

    @pytest.mark.asyncio
    async def test_success_updates_sent_metric(self, monkeypatch):
        from devicewatch.notifications import notifier

        monkeypatch.setattr(notifier, "settings", SimpleNamespace(
            telegram_configured=True,
            telegram_bot_token="t",
            telegram_chat_id="c",
            telegram_api_url="https://api.telegram.org",
        ))
        sent = MagicMock()
        failed = MagicMock()
        monkeypatch.setattr(notifier, "notifications_sent_total", sent)
        monkeypatch.setattr(notifier, "notifications_failed_total", failed)

        with patch.object(notifier, "send_telegram_message", new=AsyncMock()) as send_mock:
            ok = await notifier.send_status_change_notification("A is Online")

        assert ok is True
        send_mock.assert_awaited_once_with("t", "c", "A is Online", api_url="https://api.telegram.org")
        sent.labels.assert_called_once_with(channel="telegram")
        failed.labels.return_value.inc.assert_not_called()

    @pytest.mark.asyncio
    async def test_notify_error_is_logged_and_counted(self, monkeypatch, caplog):
        from devicewatch.notifications import notifier
        from devicewatch.notifications.telegram_notifier import NotifyError

        monkeypatch.setattr(notifier, "settings", SimpleNamespace(
            telegram_configured=True,
            telegram_bot_token="t",
            telegram_chat_id="c",
            telegram_api_url="https://api.telegram.org",
        ))
        sent = MagicMock()
        failed = MagicMock()
        monkeypatch.setattr(notifier, "notifications_sent_total", sent)
        monkeypatch.setattr(notifier, "notifications_failed_total", failed)

        with patch.object(notifier, "send_telegram_message",
                          new=AsyncMock(side_effect=NotifyError("unexpected status code: 500", 500))):
            ok = await notifier.send_status_change_notification("A is Offline")

        assert ok is False
        assert "unexpected status code: 500" in caplog.text
        failed.labels.return_value.inc.assert_called_once()
        sent.labels.return_value.inc.assert_not_called()

    @pytest.mark.asyncio
    async def test_skipped_when_not_configured(self, monkeypatch):
        from devicewatch.notifications import notifier

        monkeypatch.setattr(notifier, "settings", SimpleNamespace(telegram_configured=False))

        with patch.object(notifier, "send_telegram_message", new=AsyncMock()) as send_mock:
            ok = await notifier.send_status_change_notification("A is Online")

        assert ok is False
        send_mock.assert_not_awaited()

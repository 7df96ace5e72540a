"""Telegram Bot API client used as the order notifier.

Only the handful of Bot API methods the kiosk needs are wrapped: ``getMe`` for
the startup liveness probe, ``sendMessage`` for notifications, and the update
methods used by the polling and webhook transports. All calls are blocking
``requests`` calls with a bounded timeout; async callers run them in a worker
thread.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from .base import BaseNotifier, Button, SendResult


DONE_PREFIX = "done"
MAX_CALLBACK_BYTES = 64


class TelegramApiError(RuntimeError):
    """The Bot API answered with ``ok: false`` or an unreadable body."""


class TelegramNotifier(BaseNotifier):
    """Sends HTML-formatted messages to a single chat."""

    def __init__(
        self,
        token: str,
        chat_id: str,
        api_base_url: str = "https://api.telegram.org",
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(configured=bool(token and chat_id), logger=logger or logging.getLogger(__name__))
        self.chat_id = chat_id
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self._base_url = f"{api_base_url.rstrip('/')}/bot{token}"

    def probe(self) -> bool:
        """Check the token with ``getMe`` and record the outcome."""

        if not self.configured:
            return False
        try:
            me = self._call("getMe")
        except Exception as exc:
            self.logger.error("Telegram bot is not functional: %s", exc, extra={"event": "notifier_probe_failed"})
            self._record_result(False, "probe", str(exc))
            return False
        username = me.get("username") if isinstance(me, dict) else None
        self.logger.info("Telegram bot @%s is functional", username, extra={"event": "notifier_probe_ok"})
        self._record_result(True, "probe")
        return True

    def send(self, text: str, buttons: Optional[Sequence[Button]] = None) -> SendResult:
        if not self.configured:
            return SendResult(delivered=False, reason="notifier not configured")

        payload: Dict[str, Any] = {"chat_id": self.chat_id, "text": text, "parse_mode": "HTML"}
        if buttons:
            payload["reply_markup"] = {
                "inline_keyboard": [[{"text": label, "callback_data": data} for label, data in buttons]]
            }
        try:
            message = self._call("sendMessage", payload)
        except Exception as exc:
            self.logger.error("Failed to send Telegram message: %s", exc, extra={"event": "notifier_send_failed"})
            self._record_result(False, "send", str(exc))
            return SendResult(delivered=False, reason=str(exc))

        self._record_result(True, "send")
        message_id = message.get("message_id") if isinstance(message, dict) else None
        return SendResult(delivered=True, message_id=message_id)

    def answer_callback(self, callback_query_id: str, text: Optional[str] = None) -> bool:
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        try:
            self._call("answerCallbackQuery", payload)
        except Exception as exc:
            self.logger.warning("answerCallbackQuery failed: %s", exc)
            return False
        return True

    def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> List[Dict[str, Any]]:
        """Long-poll for updates; errors propagate so the poller can back off."""

        payload: Dict[str, Any] = {"timeout": timeout, "allowed_updates": ["callback_query"]}
        if offset is not None:
            payload["offset"] = offset
        result = self._call("getUpdates", payload, timeout=timeout + self.timeout_seconds)
        return list(result or [])

    def set_webhook(self, url: str) -> bool:
        try:
            self._call("setWebhook", {"url": url, "allowed_updates": ["callback_query"]})
        except Exception as exc:
            self.logger.error("setWebhook failed: %s", exc, extra={"event": "webhook_setup_failed"})
            return False
        self.logger.info("Webhook registered", extra={"event": "webhook_registered"})
        return True

    def delete_webhook(self) -> bool:
        try:
            self._call("deleteWebhook", {"drop_pending_updates": False})
        except Exception as exc:
            self.logger.warning("deleteWebhook failed: %s", exc)
            return False
        return True

    def _call(self, method: str, payload: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        response = self.session.post(
            f"{self._base_url}/{method}",
            json=payload or {},
            timeout=timeout or self.timeout_seconds,
        )
        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise TelegramApiError(f"{method}: unreadable response (HTTP {response.status_code})")
        if not body.get("ok"):
            raise TelegramApiError(f"{method}: {body.get('description') or f'HTTP {response.status_code}'}")
        return body.get("result")


def done_callback_data(guest: str, coffee: str) -> Optional[str]:
    """Callback data for an order's "Done" button, or ``None`` if it would not fit."""

    data = f"{DONE_PREFIX}|{guest}|{coffee}"
    if len(data.encode("utf-8")) > MAX_CALLBACK_BYTES:
        return None
    return data


def parse_done_callback(data: str) -> Optional[tuple[str, str]]:
    prefix, _, rest = (data or "").partition("|")
    if prefix != DONE_PREFIX or "|" not in rest:
        return None
    # guest names may contain "|"; coffee kinds never do
    guest, _, coffee = rest.rpartition("|")
    if not guest or not coffee:
        return None
    return guest, coffee


__all__ = ["TelegramNotifier", "TelegramApiError", "done_callback_data", "parse_done_callback"]

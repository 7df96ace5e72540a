"""Inbound Telegram updates: the "Done" button, via long polling or webhook."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from kiosk.errors import OrderNotFoundError, OrderValidationError

from .telegram import TelegramNotifier, parse_done_callback

if TYPE_CHECKING:
    from kiosk.service import OrderService


@dataclass
class BackoffConfig:
    """Configuration for retry backoff after a failed poll."""

    initial: float = 1.0
    maximum: float = 30.0
    factor: float = 2.0
    jitter: float = 0.25


class UpdateHandler:
    """Turns a ``done|guest|coffee`` callback query into an order completion."""

    def __init__(
        self,
        service: "OrderService",
        notifier: TelegramNotifier,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.service = service
        self.notifier = notifier
        self.logger = logger or logging.getLogger(__name__)

    async def handle(self, update: Dict[str, Any]) -> bool:
        """Process one update; return whether it was a recognised callback."""

        callback = update.get("callback_query")
        if not isinstance(callback, dict):
            return False
        parsed = parse_done_callback(callback.get("data") or "")
        if parsed is None:
            return False

        guest, coffee = parsed
        try:
            await self.service.complete_order(guest, coffee)
            reply = "Marked as done"
        except OrderNotFoundError:
            reply = "Order is already closed"
        except OrderValidationError:
            reply = "Unknown order"
        self.logger.info(
            "Done callback for %s / %s: %s", guest, coffee, reply,
            extra={"event": "done_callback", "guest": guest, "coffee": coffee},
        )
        if callback.get("id"):
            await asyncio.to_thread(self.notifier.answer_callback, callback["id"], reply)
        return True


class UpdatePoller:
    """Long-polls ``getUpdates`` and feeds each update to the handler."""

    def __init__(
        self,
        notifier: TelegramNotifier,
        handler: UpdateHandler,
        poll_timeout: int = 30,
        backoff: Optional[BackoffConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.notifier = notifier
        self.handler = handler
        self.poll_timeout = poll_timeout
        self.backoff = backoff or BackoffConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._offset: Optional[int] = None
        self._running = False

    async def run(self) -> None:
        self._running = True
        # getUpdates is refused while a webhook is registered
        await asyncio.to_thread(self.notifier.delete_webhook)
        delay = self.backoff.initial
        while self._running:
            try:
                await self.poll_once()
                delay = self.backoff.initial
            except asyncio.CancelledError:
                self._running = False
                raise
            except Exception as exc:
                sleep_for = min(delay, self.backoff.maximum) + random.uniform(0, self.backoff.jitter)
                self.logger.warning(
                    "Polling Telegram updates failed: %s", exc,
                    extra={"event": "poll_failed", "sleep_seconds": sleep_for},
                )
                await asyncio.sleep(sleep_for)
                delay = min(delay * self.backoff.factor, self.backoff.maximum)

    async def poll_once(self) -> int:
        """Fetch and handle one batch of updates; return how many were received."""

        updates = await asyncio.to_thread(self.notifier.get_updates, self._offset, self.poll_timeout)
        for update in updates:
            update_id = update.get("update_id")
            if isinstance(update_id, int):
                self._offset = update_id + 1
            try:
                await self.handler.handle(update)
            except Exception:
                self.logger.exception("Failed to handle update %s", update_id, extra={"event": "update_failed"})
        return len(updates)

    def stop(self) -> None:
        self._running = False


async def register_webhook(notifier: TelegramNotifier, url: str) -> bool:
    return await asyncio.to_thread(notifier.set_webhook, url)


__all__ = ["BackoffConfig", "UpdateHandler", "UpdatePoller", "register_webhook"]

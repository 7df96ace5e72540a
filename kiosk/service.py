"""Order service: validates requests, drives the store, and notifies.

Each operation finishes its store mutation before touching the notifier, so
the stored state always matches the response returned to the client. The
notifier runs in a worker thread and its outcome is reported back to the
caller, but a failed or skipped notification never fails the operation.
"""

from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from kiosk.errors import OrderNotFoundError, OrderValidationError
from kiosk.infra.config import DEFAULT_COFFEE_KINDS
from kiosk.infra.metrics import MetricsSink
from kiosk.notify.base import Button, Notifier, NotifierState, SendResult
from kiosk.notify.telegram import done_callback_data
from kiosk.orders.models import Order
from kiosk.orders.store import OrderStore, format_summary, summarize

LEGACY_OPTION_FLAGS = (("decaf", "decaf"), ("oatMilk", "oat milk"))


@dataclass
class OrderOutcome:
    order: Order
    created: bool
    notification: SendResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "message": "Order added" if self.created else "Order updated",
            "order": self.order.to_dict(),
            "telegram": self.notification.to_dict(),
        }


@dataclass
class OrderService:
    """Stateless beyond the store and notifier it is handed."""

    store: OrderStore
    notifier: Notifier
    coffee_kinds: Sequence[str] = field(default_factory=lambda: list(DEFAULT_COFFEE_KINDS))
    metrics: MetricsSink = field(default_factory=MetricsSink)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("kiosk.service"))

    async def create_order(self, payload: Mapping[str, Any]) -> OrderOutcome:
        guest, coffee = self._required(payload)
        options = self._options(payload)

        result = self.store.upsert(guest, coffee, options)
        # later requests may mutate the stored order while we await the notifier
        order = replace(result.order)
        self.metrics.observe(
            "orders_created" if result.created else "orders_updated",
            {"guest": order.guest, "coffee": order.coffee},
        )

        headline = "New order" if result.created else "Order updated"
        text = f"<b>{headline}</b>\n{_e(order.guest)}: {_e(order.coffee)}{_with_options(order.options)}"
        callback = done_callback_data(order.guest, order.coffee)
        buttons: List[Button] = [("Done", callback)] if callback else []

        notification = await self._notify(text, buttons)
        await self._notify_summary()
        return OrderOutcome(order=order, created=result.created, notification=notification)

    async def delete_order(self, guest: str, coffee: str) -> SendResult:
        return await self._remove(guest, coffee, "Order removed")

    async def complete_order(self, guest: str, coffee: str) -> SendResult:
        """Close an order from the messaging side (the "Done" button)."""

        return await self._remove(guest, coffee, "Order completed")

    async def clear_orders(self) -> Dict[str, Any]:
        if not len(self.store):
            return {"success": True, "message": "No orders present", "removed": 0}

        removed = self.store.clear()
        self.metrics.observe("orders_cleared", {"count": removed})
        await self._notify("<b>All orders cleared</b>")
        await self._notify_summary()
        return {"success": True, "message": "All orders cleared", "removed": removed}

    def status(self) -> Dict[str, Any]:
        orders = self.store.orders
        return {
            "orders": [order.to_dict() for order in orders],
            "counts": summarize(orders, self.coffee_kinds),
            "lastUpdate": _now_iso(),
            "botStatus": self.notifier.state.value,
        }

    def health(self) -> Dict[str, Any]:
        return {
            "status": "OK",
            "botFunctional": self.notifier.functional,
            "botStatus": self.notifier.state.value,
            "ordersCount": len(self.store),
            "timestamp": _now_iso(),
        }

    async def _remove(self, guest: str, coffee: str, headline: str) -> SendResult:
        guest, coffee = (guest or "").strip(), (coffee or "").strip()
        if not guest or not coffee:
            raise OrderValidationError("Guest and coffee are required")
        if not self.store.remove(guest, coffee):
            raise OrderNotFoundError(f"Order not found: {guest} / {coffee}")

        self.metrics.observe("orders_removed", {"guest": guest, "coffee": coffee})
        notification = await self._notify(f"<b>{headline}</b>\n{_e(guest)}: {_e(coffee)}")
        await self._notify_summary()
        return notification

    async def _notify_summary(self) -> SendResult:
        return await self._notify(_e(format_summary(summarize(self.store.orders, self.coffee_kinds))))

    async def _notify(self, text: str, buttons: Optional[Sequence[Button]] = None) -> SendResult:
        if self.notifier.state is NotifierState.UNCONFIGURED:
            return SendResult(delivered=False, reason="notifier disabled")
        try:
            result = await asyncio.to_thread(self.notifier.send, text, buttons)
        except Exception as exc:
            self.logger.exception("Notifier raised while sending", extra={"event": "notifier_error"})
            result = SendResult(delivered=False, reason=str(exc))
        self.metrics.incr("notifications_sent" if result.delivered else "notifications_failed")
        return result

    def _required(self, payload: Mapping[str, Any]) -> tuple[str, str]:
        if not isinstance(payload, Mapping):
            raise OrderValidationError("Request body must be a JSON object")
        guest = payload.get("guest")
        coffee = payload.get("coffee")
        guest = guest.strip() if isinstance(guest, str) else ""
        coffee = coffee.strip() if isinstance(coffee, str) else ""
        if not guest or not coffee:
            raise OrderValidationError("Guest and coffee are required")
        return guest, coffee

    def _options(self, payload: Mapping[str, Any]) -> Optional[str]:
        options = payload.get("options")
        if isinstance(options, str) and options.strip():
            return options.strip()
        if options not in (None, "") and not isinstance(options, str):
            raise OrderValidationError("options must be a string")
        flags = [label for key, label in LEGACY_OPTION_FLAGS if payload.get(key) is True]
        return ", ".join(flags) or None


def _e(value: str) -> str:
    return html.escape(value, quote=False)


def _with_options(options: Optional[str]) -> str:
    return f" ({_e(options)})" if options else ""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


__all__ = ["OrderService", "OrderOutcome", "OrderValidationError", "OrderNotFoundError"]

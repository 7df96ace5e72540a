"""The authoritative in-memory order list, mirrored to a storage backend.

Every mutation rewrites the whole list through the backend. Storage failures
are logged and never undo the in-memory change: for the running process the
in-memory list is the source of truth.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from kiosk.infra.config import DEFAULT_COFFEE_KINDS
from kiosk.infra.persistence import StorageBackend
from kiosk.orders.models import Order, UpsertResult, order_key, utc_now


class OrderStore:
    """Owns the list of open orders and enforces the ``(guest, coffee)`` identity rule."""

    def __init__(self, backend: StorageBackend, logger: Optional[logging.Logger] = None) -> None:
        self.backend = backend
        self.logger = logger or logging.getLogger(__name__)
        self._orders: List[Order] = []

    @property
    def orders(self) -> List[Order]:
        """A copy of the current orders in insertion order."""

        return list(self._orders)

    def __len__(self) -> int:
        return len(self._orders)

    def load(self) -> List[Order]:
        """Replace the in-memory list with the persisted one.

        Absent or unreadable storage yields an empty list. Records sharing an
        identity pair are collapsed: the later record's data takes the earlier
        record's position.
        """

        try:
            payload = self.backend.read()
            raw = json.loads(payload.decode("utf-8")) if payload else []
            if not isinstance(raw, list):
                raise ValueError(f"expected a JSON array, got {type(raw).__name__}")
        except Exception as exc:
            self.logger.error(
                "Failed to load orders from %r: %s", self.backend, exc,
                extra={"event": "orders_load_failed"},
            )
            raw = []

        orders: List[Order] = []
        index: Dict[tuple[str, str], int] = {}
        for record in raw:
            try:
                order = Order.from_dict(record)
            except (TypeError, ValueError, AttributeError) as exc:
                self.logger.warning("Skipping unreadable order record: %s", exc)
                continue
            position = index.get(order.key)
            if position is None:
                index[order.key] = len(orders)
                orders.append(order)
            else:
                orders[position] = order

        self._orders = orders
        self.logger.info("Loaded %d open orders", len(orders), extra={"event": "orders_loaded", "count": len(orders)})
        return self.orders

    def save(self, orders: Optional[Sequence[Order]] = None) -> None:
        """Serialize the full list to the backend; failures are logged only."""

        snapshot = self._orders if orders is None else orders
        try:
            payload = json.dumps([order.to_dict() for order in snapshot], ensure_ascii=False).encode("utf-8")
            self.backend.write(payload)
        except Exception as exc:
            self.logger.error(
                "Failed to save %d orders to %r: %s", len(snapshot), self.backend, exc,
                extra={"event": "orders_save_failed"},
            )

    def find(self, guest: str, coffee: str) -> Optional[Order]:
        key = order_key(guest, coffee)
        for order in self._orders:
            if order.key == key:
                return order
        return None

    def upsert(self, guest: str, coffee: str, options: Optional[str] = None) -> UpsertResult:
        """Insert a new order, or refresh ``options``/``created_at`` of the matching one."""

        existing = self.find(guest, coffee)
        if existing is not None:
            existing.options = options
            existing.created_at = utc_now()
            self.save()
            return UpsertResult(order=existing, created=False)

        order = Order(guest=guest, coffee=coffee, options=options)
        self._orders.append(order)
        self.save()
        return UpsertResult(order=order, created=True)

    def remove(self, guest: str, coffee: str) -> bool:
        """Remove the first order matching ``(guest, coffee)``; report whether one was removed."""

        key = order_key(guest, coffee)
        for position, order in enumerate(self._orders):
            if order.key == key:
                del self._orders[position]
                self.save()
                return True
        return False

    def clear(self) -> int:
        removed = len(self._orders)
        self._orders = []
        self.save()
        return removed


def summarize(orders: Iterable[Order], kinds: Sequence[str] = DEFAULT_COFFEE_KINDS) -> Dict[str, int]:
    """Count orders per known coffee kind; unknown kinds are left out of every count.

    Kinds match case-insensitively and are reported under their canonical spelling.
    """

    counts = {kind: 0 for kind in kinds}
    canonical = {kind.lower(): kind for kind in kinds}
    for order in orders:
        kind = canonical.get(order.coffee.lower())
        if kind is not None:
            counts[kind] += 1
    return counts


def format_summary(counts: Dict[str, int]) -> str:
    lines = ["Open orders:"]
    lines.extend(f"{kind}: {count}" for kind, count in counts.items())
    return "\n".join(lines)


__all__ = ["OrderStore", "summarize", "format_summary"]

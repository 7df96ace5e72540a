"""Order records for the coffee kiosk."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Order:
    """An open order, identified by ``(guest, coffee)`` compared case-insensitively."""

    guest: str
    coffee: str
    options: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def key(self) -> tuple[str, str]:
        return order_key(self.guest, self.coffee)

    def matches(self, guest: str, coffee: str) -> bool:
        return self.key == order_key(guest, coffee)

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-serializable wire/storage form."""

        return {
            "guest": self.guest,
            "coffee": self.coffee,
            "options": self.options,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Order":
        """Build an order from its stored form.

        Older files carry ``timestamp`` instead of ``createdAt``; both are read.
        Raises ``ValueError`` when ``guest`` or ``coffee`` is missing.
        """

        guest = payload.get("guest")
        coffee = payload.get("coffee")
        if not isinstance(guest, str) or not guest or not isinstance(coffee, str) or not coffee:
            raise ValueError(f"order record lacks guest/coffee: {payload!r}")
        options = payload.get("options")
        return cls(
            guest=guest,
            coffee=coffee,
            options=str(options) if options else None,
            created_at=_parse_timestamp(payload.get("createdAt") or payload.get("timestamp")),
        )


@dataclass
class UpsertResult:
    """The stored order after an upsert, and whether it was newly inserted."""

    order: Order
    created: bool


def order_key(guest: str, coffee: str) -> tuple[str, str]:
    return guest.lower(), coffee.lower()


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return utc_now()
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return utc_now()


__all__ = ["Order", "UpsertResult", "order_key", "utc_now"]

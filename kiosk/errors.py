"""Request-level errors raised by the order service."""


class OrderValidationError(ValueError):
    """The request is missing a required field or is malformed."""


class OrderNotFoundError(LookupError):
    """No open order matches the requested ``(guest, coffee)`` pair."""


__all__ = ["OrderValidationError", "OrderNotFoundError"]

"""Best-effort notification of order events to a messaging bot."""

from .base import Notifier, NotifierState, NullNotifier, SendResult
from .telegram import TelegramApiError, TelegramNotifier, done_callback_data, parse_done_callback
from .updates import BackoffConfig, UpdateHandler, UpdatePoller

__all__ = [
    "Notifier",
    "NotifierState",
    "NullNotifier",
    "SendResult",
    "TelegramApiError",
    "TelegramNotifier",
    "BackoffConfig",
    "UpdateHandler",
    "UpdatePoller",
    "done_callback_data",
    "parse_done_callback",
]

"""Order model and the store that owns the list of open orders."""

from .models import Order, UpsertResult
from .store import OrderStore, format_summary, summarize

__all__ = ["Order", "UpsertResult", "OrderStore", "format_summary", "summarize"]

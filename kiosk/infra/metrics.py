"""In-process counters for order and notification events."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


@dataclass
class MetricsSink:
    """Collects named counters and logs each recorded event."""

    counters: Dict[str, int] = field(default_factory=dict)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("kiosk.metrics"))
    _lock: threading.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # notifier sends run in worker threads
        self._lock = threading.Lock()

    def incr(self, name: str, value: int = 1) -> None:
        with self._lock:
            self.counters[name] = self.counters.get(name, 0) + value

    def observe(self, name: str, values: Mapping[str, Any] | None = None) -> None:
        """Count an event and emit it as a structured log line."""

        self.incr(name)
        self.logger.debug(name, extra={"event": name, **(values or {})})

    def export(self) -> Dict[str, int]:
        with self._lock:
            return dict(self.counters)


__all__ = ["MetricsSink"]

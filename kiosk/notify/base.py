"""Notifier interface and usability state shared by all transports."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple

Button = Tuple[str, str]  # (label, callback data)


class NotifierState(str, enum.Enum):
    """Whether the notifier is currently considered usable.

    ``UNCONFIGURED`` is terminal. Otherwise ``PROBING`` moves to ``FUNCTIONAL``
    or ``DEGRADED`` on the first probe or send result, and every later result
    moves it between those two.
    """

    UNCONFIGURED = "unconfigured"
    PROBING = "probing"
    FUNCTIONAL = "functional"
    DEGRADED = "degraded"


@dataclass
class SendResult:
    """Outcome of a single send attempt."""

    delivered: bool
    reason: Optional[str] = None
    message_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"sent": self.delivered}
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.message_id is not None:
            payload["messageId"] = self.message_id
        return payload


class Notifier(Protocol):
    """Minimal messaging surface consumed by the order service."""

    @property
    def state(self) -> NotifierState:
        ...

    @property
    def functional(self) -> bool:
        ...

    def probe(self) -> bool:
        ...

    def send(self, text: str, buttons: Optional[Sequence[Button]] = None) -> SendResult:
        ...


class BaseNotifier:
    """Owns the usability state; subclasses report probe and send outcomes through it."""

    def __init__(self, configured: bool, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._state = NotifierState.PROBING if configured else NotifierState.UNCONFIGURED
        self._state_lock = threading.Lock()

    @property
    def state(self) -> NotifierState:
        return self._state

    @property
    def functional(self) -> bool:
        return self._state is NotifierState.FUNCTIONAL

    @property
    def configured(self) -> bool:
        return self._state is not NotifierState.UNCONFIGURED

    def _record_result(self, ok: bool, source: str, reason: Optional[str] = None) -> None:
        target = NotifierState.FUNCTIONAL if ok else NotifierState.DEGRADED
        self._transition(target, source, reason)

    def _transition(self, target: NotifierState, source: str, reason: Optional[str] = None) -> None:
        with self._state_lock:
            if self._state is NotifierState.UNCONFIGURED or self._state is target:
                return
            previous, self._state = self._state, target
        self.logger.info(
            "Notifier %s -> %s after %s", previous.value, target.value, source,
            extra={"event": "notifier_state", "previous": previous.value, "state": target.value, "reason": reason},
        )


class NullNotifier(BaseNotifier):
    """Stands in when notifications are disabled or no credentials are supplied."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(configured=False, logger=logger)

    def probe(self) -> bool:
        return False

    def send(self, text: str, buttons: Optional[Sequence[Button]] = None) -> SendResult:
        self.logger.debug("Notification skipped (notifier disabled): %s", text)
        return SendResult(delivered=False, reason="notifier disabled")


__all__ = ["Button", "Notifier", "NotifierState", "BaseNotifier", "NullNotifier", "SendResult"]

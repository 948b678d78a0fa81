"""
Status notifications published by the keep-alive service.

Delivery is synchronous: ``publish`` runs every current subscriber inline
before returning. A failing subscriber is logged and skipped; the rest
still get the notification.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Literal

log = logging.getLogger(__name__)

NotificationLevel = Literal["INFO", "WARNING", "ERROR"]

_LOG_LEVELS = {
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


@dataclass(frozen=True)
class StatusNotification:
    message: str
    level: NotificationLevel = "INFO"
    at: float = field(default_factory=time.time)

    def __str__(self) -> str:
        return self.message


StatusHandler = Callable[[StatusNotification], None]


class StatusBroadcaster:
    """Fan-out of status notifications to zero or more subscribers."""

    def __init__(self) -> None:
        self._handlers: List[StatusHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: StatusHandler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unsubscribe(self, handler: StatusHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def publish(self, message: str, level: NotificationLevel = "INFO") -> StatusNotification:
        notification = StatusNotification(message=message, level=level)
        log.log(_LOG_LEVELS[level], "%s", message)

        # Snapshot so handlers may (un)subscribe while being called
        with self._lock:
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(notification)
            except Exception:
                log.exception("Status handler %r failed", handler)
        return notification

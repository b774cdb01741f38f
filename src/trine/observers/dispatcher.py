# src/trine/observers/dispatcher.py
from __future__ import annotations
import logging
from typing import List, Protocol
from .events import BaseEvent

log = logging.getLogger("trine")


class Observer(Protocol):
    """Anything that wants to see pipeline lifecycle events."""
    def notify(self, event: BaseEvent) -> None: ...


class EventBus:
    def __init__(self, observers: List[Observer] | None = None):
        self._observers = observers or []

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as exc:
                # observers must not break a bootstrap run
                log.debug("observer %r failed on %s: %s", ob, event.__class__.__name__, exc)

# core/events.py
import logging
import threading
from typing import Callable, List

log = logging.getLogger(__name__)


class Observers:
    """Subscriber list the engine publishes notifications to."""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._subscribers: List[Callable] = []

    def subscribe(self, fn: Callable) -> None:
        with self._lock:
            if fn not in self._subscribers:
                self._subscribers.append(fn)

    def unsubscribe(self, fn: Callable) -> None:
        with self._lock:
            try:
                self._subscribers.remove(fn)
            except ValueError:
                pass

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def emit(self, *args) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for fn in subscribers:
            try:
                fn(*args)
            except Exception:
                log.exception("%s subscriber %r failed", self.name, fn)

# =============================================================================
# contract_core/storage/listeners.py
# In-Process Change Listeners
# =============================================================================

from __future__ import annotations
import itertools
import logging
import threading
from typing import Callable, Dict

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ListenerRegistry:
    """
    Per-collection change callbacks for writes served by local storage.

    Each registration gets its own token, so registering the same callable
    twice yields two independent registrations and unsubscribing one never
    removes the other.

    Usage:
        registry = ListenerRegistry()
        unsubscribe = registry.add("contracts", refresh_table)
        registry.notify("contracts")
        unsubscribe()
    """

    def __init__(self):
        self._listeners: Dict[str, Dict[int, Listener]] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, collection: str, callback: Listener) -> Callable[[], None]:
        """Register a callback; returns an idempotent unsubscribe function."""
        with self._lock:
            token = next(self._tokens)
            self._listeners.setdefault(collection, {})[token] = callback

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(collection)
                if listeners is None:
                    return
                listeners.pop(token, None)
                if not listeners:
                    del self._listeners[collection]

        return unsubscribe

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection, {}))

    def _deliver(self, collection: str) -> None:
        with self._lock:
            callbacks = list(self._listeners.get(collection, {}).values())
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in {collection} listener: {e}")

    def notify(self, collection: str, delay: float = 0.0) -> None:
        """
        Call every listener of ``collection`` once.

        With ``delay > 0`` delivery happens on a timer thread after the delay;
        otherwise it happens before this method returns.
        """
        if delay > 0:
            timer = threading.Timer(delay, self._deliver, args=(collection,))
            timer.daemon = True
            timer.start()
        else:
            self._deliver(collection)

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()

"""Cooperative cancellation token owned by each action state."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """One-shot cancellation signal.

    Handlers poll ``cancelled`` or register a callback; nothing is ever
    force-interrupted by the token itself.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Set the signal. Returns False if it was already set."""
        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
            callbacks = list(self._callbacks)
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed")
        return True

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancel (immediately if already cancelled).

        Returns a function that unregisters the callback.
        """
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return lambda: self._remove(callback)
        callback()
        return lambda: None

    def _remove(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

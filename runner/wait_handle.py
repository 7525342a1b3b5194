"""Wait handles for actions completed by a party outside the runner.

A wait handle is a future plus the resolver that settles it. The
PendingTable keys handles by action id and removes an entry the moment it is
settled, so a second success/failure notification for the same id is a
no-op.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

logger = logging.getLogger(__name__)


class WaitHandle:
    """Resolver side of a wait handle. Safe to call from any thread."""

    def __init__(self, future: asyncio.Future):
        self._future = future
        self._loop = future.get_loop()

    @property
    def future(self) -> asyncio.Future:
        return self._future

    def resolve(self, value: Any = None) -> None:
        self._loop.call_soon_threadsafe(self._settle, value, None)

    def reject(self, error: BaseException) -> None:
        self._loop.call_soon_threadsafe(self._settle, None, error)

    def _settle(self, value: Any, error: BaseException | None) -> None:
        if self._future.done():
            return
        if error is not None:
            self._future.set_exception(error)
        else:
            self._future.set_result(value)


def create_wait_handle() -> tuple[asyncio.Future, WaitHandle]:
    """Create a pending future bound to the running loop and its resolver."""
    future = asyncio.get_running_loop().create_future()
    return future, WaitHandle(future)


class PendingTable:
    """Side table of wait handles keyed by action id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles: dict[str, WaitHandle] = {}

    def create(self, key: str) -> asyncio.Future:
        future, handle = create_wait_handle()
        with self._lock:
            previous = self._handles.get(key)
            self._handles[key] = handle
        if previous is not None:
            logger.warning("Replacing pending wait handle for %s", key)
            previous.reject(RuntimeError(f"Wait handle for {key} was replaced"))
        return future

    def resolve(self, key: str, value: Any = None) -> bool:
        handle = self._pop(key)
        if handle is None:
            return False
        handle.resolve(value)
        return True

    def reject(self, key: str, error: BaseException) -> bool:
        handle = self._pop(key)
        if handle is None:
            return False
        handle.reject(error)
        return True

    def _pop(self, key: str) -> WaitHandle | None:
        with self._lock:
            return self._handles.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._handles

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

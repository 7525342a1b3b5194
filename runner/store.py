"""Action Store - observable mapping of action id to state."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from runner.types import Action, ActionState, ActionStatus, merge_state

logger = logging.getLogger(__name__)

StoreListener = Callable[[str, ActionState], None]


class ActionStore:
    """
    Single source of truth for action status.

    Mutation goes through ``register`` and ``update``; every change is pushed
    to subscribers in call order. Reads return snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # Held from mutation through notification so listeners see updates in call order
        self._dispatch_lock = threading.RLock()
        self._states: dict[str, ActionState] = {}
        self._listeners: list[StoreListener] = []

    def register(self, state: ActionState) -> ActionState:
        """Insert a new record. An existing id is left untouched and returned."""
        with self._dispatch_lock:
            with self._lock:
                existing = self._states.get(state.id)
                if existing is not None:
                    return existing
                self._states[state.id] = state
            self._notify(state.id, state)
        return state

    def get(self) -> dict[str, ActionState]:
        """Snapshot of all records."""
        with self._lock:
            return dict(self._states)

    def get_action(self, action_id: str) -> ActionState | None:
        with self._lock:
            return self._states.get(action_id)

    def update(
        self,
        action_id: str,
        *,
        action: Action | None = None,
        status: ActionStatus | str | None = None,
        error: str | None = None,
        executed: bool | None = None,
    ) -> ActionState:
        """Merge fields into an existing record.

        Raises:
            KeyError: Unknown action id
            ValueError: The merge would produce an invalid status/error pair
        """
        with self._dispatch_lock:
            with self._lock:
                old = self._states.get(action_id)
                if old is None:
                    raise KeyError(action_id)
                new = merge_state(old, action=action, status=status, error=error, executed=executed)
                self._states[action_id] = new

            if old.status is not new.status:
                logger.debug(
                    "[Action State Update]: %s type=%s %s -> %s",
                    action_id,
                    new.type,
                    old.status.value,
                    new.status.value,
                )
            self._notify(action_id, new)
        return new

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener. Returns the unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, action_id: str, state: ActionState) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(action_id, state)
            except Exception:
                logger.exception("Action store listener failed for %s", action_id)

    def __contains__(self, action_id: object) -> bool:
        with self._lock:
            return action_id in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

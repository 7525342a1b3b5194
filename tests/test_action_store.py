"""Tests for ActionStore."""

import threading
import time

import pytest

from runner.store import ActionStore
from runner.types import ActionState, ActionStatus, FailedActionState, ShellAction


@pytest.fixture
def store():
    return ActionStore()


def _state(action_id="1"):
    return ActionState(action=ShellAction(id=action_id, content="ls"))


class TestActionStore:
    def test_register_and_get(self, store):
        state = store.register(_state())
        assert store.get() == {"1": state}
        assert store.get_action("1") is state
        assert store.get_action("2") is None
        assert "1" in store

    def test_register_existing_returns_original(self, store):
        first = store.register(_state())
        second = store.register(_state())
        assert second is first
        assert len(store) == 1

    def test_get_returns_snapshot(self, store):
        store.register(_state())
        snapshot = store.get()
        store.update("1", status=ActionStatus.RUNNING)
        assert snapshot["1"].status is ActionStatus.PENDING
        assert store.get()["1"].status is ActionStatus.RUNNING

    def test_update_unknown_raises(self, store):
        with pytest.raises(KeyError):
            store.update("missing", status=ActionStatus.RUNNING)

    def test_invalid_merge_leaves_record_untouched(self, store):
        store.register(_state())
        with pytest.raises(ValueError):
            store.update("1", status=ActionStatus.FAILED)
        with pytest.raises(ValueError):
            store.update("1", status=ActionStatus.COMPLETE, error="boom")
        assert store.get_action("1").status is ActionStatus.PENDING

    def test_failed_update(self, store):
        store.register(_state())
        state = store.update("1", status="failed", error="Action failed")
        assert isinstance(state, FailedActionState)
        assert store.get_action("1").error == "Action failed"

    def test_subscribers_see_updates_in_order(self, store):
        seen = []
        store.subscribe(lambda action_id, state: seen.append((action_id, state.status)))

        store.register(_state())
        store.update("1", status=ActionStatus.RUNNING)
        store.update("1", status=ActionStatus.COMPLETE)

        assert seen == [
            ("1", ActionStatus.PENDING),
            ("1", ActionStatus.RUNNING),
            ("1", ActionStatus.COMPLETE),
        ]

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(lambda action_id, state: seen.append(action_id))
        store.register(_state("1"))
        unsubscribe()
        store.register(_state("2"))
        assert seen == ["1"]

    def test_failing_listener_does_not_block_others(self, store):
        seen = []

        def broken(action_id, state):
            raise RuntimeError("listener bug")

        store.subscribe(broken)
        store.subscribe(lambda action_id, state: seen.append(action_id))

        store.register(_state())

        assert seen == ["1"]
        assert store.get_action("1") is not None


class TestNotificationOrder:
    def test_listeners_see_updates_in_call_order_across_threads(self, store):
        store.register(_state())
        seen = []
        running_notified = threading.Event()

        def slow_listener(action_id, state):
            if state.status is ActionStatus.RUNNING:
                running_notified.set()
                time.sleep(0.1)

        store.subscribe(slow_listener)
        store.subscribe(lambda action_id, state: seen.append(state.status))

        worker = threading.Thread(target=store.update, args=("1",), kwargs={"status": ActionStatus.RUNNING})
        worker.start()
        running_notified.wait(timeout=1)
        store.update("1", status=ActionStatus.COMPLETE)
        worker.join()

        assert seen == [ActionStatus.RUNNING, ActionStatus.COMPLETE]

    def test_listener_may_update_the_store(self, store):
        store.register(_state())
        seen = []

        def complete_on_running(action_id, state):
            seen.append(state.status)
            if state.status is ActionStatus.RUNNING:
                store.update(action_id, status=ActionStatus.COMPLETE)

        store.subscribe(complete_on_running)
        store.update("1", status=ActionStatus.RUNNING)

        assert seen == [ActionStatus.RUNNING, ActionStatus.COMPLETE]

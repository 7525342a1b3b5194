"""Action Runner - serializes action execution into one ordered timeline.

Actions are registered as they stream in, then handed to ``run`` once they
are actionable. Every run becomes an item on a FIFO queue drained by a
single worker task, so shell commands and file writes never interleave and
execute in the order ``run`` was called.

Two things escape the queue:
- start actions run their dev server in a background task
- database queries park the worker until someone outside the runner calls
  ``notify_database_action_success`` / ``notify_database_action_failure``
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

from config.schema import RunnerSettings
from runner.alerts import ActionAlert, AlertChannel, DeployAlert, DeploySource, DeployStage, deploy_alert
from runner.errors import ActionCommandError, DatabaseActionError
from runner.handlers import (
    BuildOutput,
    run_build_action,
    run_database_action,
    run_shell_action,
    run_start_action,
    write_file_action,
)
from runner.history import FileHistory, history_path
from runner.store import ActionStore
from runner.types import (
    Action,
    ActionState,
    ActionStatus,
    BuildAction,
    DatabaseAction,
    FileAction,
    ShellAction,
    StartAction,
)
from runner.wait_handle import PendingTable
from sandbox.interfaces.host import SandboxHost
from sandbox.interfaces.shell import Shell

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Action failed"


def _failure_message(error: Exception) -> str:
    # Only command errors carry diagnostics worth showing
    if isinstance(error, ActionCommandError):
        return str(error)
    return GENERIC_FAILURE


@dataclass
class _WorkItem:
    action_id: str
    is_streaming: bool
    done: asyncio.Future = field(repr=False)


class ActionRunner:
    """
    Sequencer for producer-requested actions.

    Usage:
        runner = ActionRunner(host, lambda: shell)
        runner.register(action)
        await runner.run(action)
        runner.actions.get()[action.id].status
    """

    def __init__(
        self,
        host: SandboxHost,
        get_shell: Callable[[], Shell],
        alerts: AlertChannel | None = None,
        settings: RunnerSettings | None = None,
    ):
        self.host = host
        self._get_shell = get_shell
        self.alerts = alerts or AlertChannel()
        self.settings = settings or RunnerSettings()
        self.runner_id = f"{int(time.time() * 1000)}"
        self.actions = ActionStore()
        self.build_output: BuildOutput | None = None

        self._queue: asyncio.Queue[_WorkItem] | None = None
        self._worker: asyncio.Task | None = None
        self._pending_queries = PendingTable()
        self._background: set[asyncio.Task] = set()

    # ── Producer-facing API ──

    def register(self, action: Action) -> ActionState:
        """Add an action as pending. Re-registering a known id is a no-op."""
        existing = self.actions.get_action(action.id)
        if existing is not None:
            logger.debug("[ActionRunner] Action %s already exists", action.id)
            return existing

        logger.debug("[ActionRunner] Adding action %s of type %s", action.id, action.type)
        return self.actions.register(ActionState(action=action, abort=partial(self.abort, action.id)))

    async def run(self, action: Action, is_streaming: bool = False) -> None:
        """Make an action eligible for execution and wait for its turn to finish.

        Raises:
            KeyError: The action was never registered
        """
        state = self.actions.get_action(action.id)
        if state is None:
            raise KeyError(f"Action {action.id} not found")

        if state.executed:
            return

        if is_streaming and not isinstance(action, FileAction):
            return

        self.actions.update(action.id, action=action, executed=not is_streaming)

        item = _WorkItem(
            action_id=action.id,
            is_streaming=is_streaming,
            done=asyncio.get_running_loop().create_future(),
        )
        self._ensure_worker().put_nowait(item)
        await asyncio.shield(item.done)

    def abort(self, action_id: str) -> None:
        """Cancel an action and mark it aborted, wherever it is in the queue."""
        state = self.actions.get_action(action_id)
        if state is None:
            raise KeyError(f"Action {action_id} not found")
        if state.is_terminal:
            logger.debug("[ActionRunner] Ignoring abort of %s action %s", state.status.value, action_id)
            return

        logger.debug("[%s]: Aborting Action %s", state.type, action_id)
        state.token.cancel()
        self.actions.update(action_id, status=ActionStatus.ABORTED)

    def update_action_state(
        self,
        action_id: str,
        *,
        status: ActionStatus | str | None = None,
        error: str | None = None,
        executed: bool | None = None,
    ) -> ActionState:
        """External correction of an action's state (e.g. after the UI ran a query)."""
        logger.debug("[ActionRunner] External update of action state: %s status=%s", action_id, status)
        return self.actions.update(action_id, status=status, error=error, executed=executed)

    # ── External completion ──

    def notify_database_action_success(self, action_id: str) -> bool:
        """Release a waiting query. Unknown or settled ids are ignored."""
        logger.debug("[ActionRunner] Database action %s completed successfully", action_id)
        return self._pending_queries.resolve(action_id)

    def notify_database_action_failure(self, action_id: str, error: BaseException | str) -> bool:
        """Fail a waiting query. Unknown or settled ids are ignored."""
        logger.error("[ActionRunner] Database action %s failed: %s", action_id, error)
        if not isinstance(error, BaseException):
            error = DatabaseActionError(str(error))
        return self._pending_queries.reject(action_id, error)

    def handle_deploy_action(
        self,
        stage: DeployStage,
        status: str,
        *,
        url: str | None = None,
        error: str | None = None,
        source: DeploySource | None = None,
    ) -> DeployAlert:
        """Publish a deploy progress alert for ``stage``/``status``."""
        alert = deploy_alert(stage, status, url=url, error=error, source=source or self.settings.deploy.source)
        self.alerts.emit(alert)
        return alert

    # ── File history ──

    def get_file_history(self, file_path: str) -> FileHistory | None:
        path = history_path(file_path, self.settings.sandbox.history_root)
        try:
            return FileHistory.model_validate(json.loads(self.host.read_file(path)))
        except (OSError, ValueError):
            logger.error("Failed to get file history for %s", file_path, exc_info=True)
            return None

    def save_file_history(self, file_path: str, history: FileHistory) -> None:
        path = history_path(file_path, self.settings.sandbox.history_root)
        write_file_action(self.host, path, history.to_json())

    # ── Lifecycle ──

    async def close(self) -> None:
        """Stop the worker and background start tasks."""
        tasks = list(self._background)
        if self._worker is not None:
            tasks.append(self._worker)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._worker = None

        if self._queue is not None:
            while not self._queue.empty():
                item = self._queue.get_nowait()
                if not item.done.done():
                    item.done.cancel()

    # ── Internals ──

    def _ensure_worker(self) -> asyncio.Queue[_WorkItem]:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain(self._queue))
        return self._queue

    async def _drain(self, queue: asyncio.Queue[_WorkItem]) -> None:
        while True:
            item = await queue.get()
            try:
                await self._execute_action(item.action_id, item.is_streaming)
            except asyncio.CancelledError:
                if not item.done.done():
                    item.done.cancel()
                raise
            except Exception:
                logger.error("Action failed: %s", item.action_id, exc_info=True)
            finally:
                if not item.done.done():
                    item.done.set_result(None)
                queue.task_done()

    async def _execute_action(self, action_id: str, is_streaming: bool = False) -> None:
        state = self.actions.get_action(action_id)
        if state is None:
            return
        if state.token.cancelled:
            logger.debug("[ActionRunner] Skipping aborted action %s", action_id)
            return

        state = self.actions.update(action_id, status=ActionStatus.RUNNING)
        action = state.action

        try:
            if isinstance(action, ShellAction):
                logger.debug("[ActionRunner] Handling shell action %s", action_id)
                await run_shell_action(self._get_shell(), self.runner_id, state)
            elif isinstance(action, FileAction):
                logger.debug("[ActionRunner] Handling file action %s", action_id)
                write_file_action(self.host, action.file_path, action.content)
            elif isinstance(action, DatabaseAction):
                logger.debug("[ActionRunner] Handling database action %s", action_id)
                try:
                    await run_database_action(self.host, self.alerts, self._pending_queries, state)
                except Exception as error:
                    if state.token.cancelled:
                        return
                    logger.error("[ActionRunner] Database action %s failed", action_id, exc_info=True)
                    self.actions.update(
                        action_id,
                        status=ActionStatus.FAILED,
                        error=str(error) or "Database action failed",
                    )
                    return
            elif isinstance(action, BuildAction):
                logger.debug("[ActionRunner] Handling build action %s", action_id)
                self.build_output = await run_build_action(
                    self.host, self.alerts, self.settings.build, self.settings.deploy
                )
            elif isinstance(action, StartAction):
                logger.debug("[ActionRunner] Handling start action %s", action_id)
                self._spawn_start(state)
                # @@@start-grace - two back-to-back starts would fight over the shell's process slot
                await asyncio.sleep(self.settings.start.grace_seconds)
                return

            if is_streaming:
                status = ActionStatus.RUNNING
            elif state.token.cancelled:
                status = ActionStatus.ABORTED
            else:
                status = ActionStatus.COMPLETE
            self.actions.update(action_id, status=status)
        except asyncio.CancelledError:
            self._mark_torn_down(action_id)
            raise
        except Exception as error:
            if state.token.cancelled:
                return

            self.actions.update(action_id, status=ActionStatus.FAILED, error=_failure_message(error))
            logger.error("[%s]:Action failed", action.type, exc_info=True)

            if not isinstance(error, ActionCommandError):
                return

            self._alert_command_error(error)
            raise

    def _spawn_start(self, state: ActionState) -> None:
        task = asyncio.create_task(self._run_start(state))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_start(self, state: ActionState) -> None:
        try:
            await run_start_action(self._get_shell(), self.runner_id, state)
        except asyncio.CancelledError:
            self._mark_torn_down(state.id)
            raise
        except Exception as error:
            if state.token.cancelled:
                return
            self.actions.update(state.id, status=ActionStatus.FAILED, error=_failure_message(error))
            logger.error("[%s]:Action failed", state.type, exc_info=True)
            if isinstance(error, ActionCommandError):
                self._alert_command_error(error)
            return

        self.actions.update(
            state.id,
            status=ActionStatus.ABORTED if state.token.cancelled else ActionStatus.COMPLETE,
        )

    def _mark_torn_down(self, action_id: str) -> None:
        state = self.actions.get_action(action_id)
        if state is not None and not state.is_terminal:
            logger.debug("[ActionRunner] Runner closed while %s was running", action_id)
            self.actions.update(action_id, status=ActionStatus.ABORTED)

    def _alert_command_error(self, error: ActionCommandError) -> None:
        self.alerts.emit(
            ActionAlert(
                type="error",
                title="Dev Server Failed",
                description=error.header,
                content=error.output,
            )
        )

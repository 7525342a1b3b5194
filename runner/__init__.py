"""Action runner: ordered execution of producer-requested actions in a sandbox."""

from runner.alerts import ActionAlert, AlertChannel, DatabaseAlert, DeployAlert, deploy_alert
from runner.cancellation import CancellationToken
from runner.errors import ActionAbortedError, ActionCommandError, DatabaseActionError
from runner.handlers import BuildOutput
from runner.history import FileHistory, history_path
from runner.sequencer import ActionRunner
from runner.store import ActionStore
from runner.types import (
    Action,
    ActionState,
    ActionStatus,
    BuildAction,
    DatabaseAction,
    DatabaseOperation,
    FailedActionState,
    FileAction,
    ShellAction,
    StartAction,
    parse_action,
)
from runner.wait_handle import PendingTable, WaitHandle, create_wait_handle

__all__ = [
    # Sequencer
    "ActionRunner",
    "ActionStore",
    "BuildOutput",
    # Actions
    "Action",
    "ShellAction",
    "StartAction",
    "FileAction",
    "BuildAction",
    "DatabaseAction",
    "DatabaseOperation",
    "parse_action",
    # State
    "ActionState",
    "FailedActionState",
    "ActionStatus",
    "CancellationToken",
    # Alerts
    "AlertChannel",
    "ActionAlert",
    "DatabaseAlert",
    "DeployAlert",
    "deploy_alert",
    # Errors
    "ActionCommandError",
    "DatabaseActionError",
    "ActionAbortedError",
    # External completion
    "WaitHandle",
    "PendingTable",
    "create_wait_handle",
    # History
    "FileHistory",
    "history_path",
]

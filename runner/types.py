"""Action records and per-action runtime state.

Actions arrive from the producer already parsed. Each kind is its own model
so fields that belong to another kind are rejected (``extra="forbid"``).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from runner.cancellation import CancellationToken

# ============================================================================
# Actions
# ============================================================================


class _ActionBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str = Field(..., min_length=1, description="Producer-assigned id, unique per conversation")


class ShellAction(_ActionBase):
    type: Literal["shell"] = "shell"
    content: str


class StartAction(_ActionBase):
    type: Literal["start"] = "start"
    content: str


class FileAction(_ActionBase):
    type: Literal["file"] = "file"
    file_path: str = Field(..., alias="filePath")
    content: str = Field("", description="Full file content, never a diff")
    change_source: str = Field("auto-save", alias="changeSource")


class BuildAction(_ActionBase):
    type: Literal["build"] = "build"


class DatabaseOperation(str, Enum):
    MIGRATION = "migration"
    QUERY = "query"


class DatabaseAction(_ActionBase):
    type: Literal["database-operation"] = "database-operation"
    operation: DatabaseOperation
    content: str
    file_path: str | None = Field(None, alias="filePath")
    project_id: str | None = Field(None, alias="projectId")


Action = Annotated[
    Union[ShellAction, StartAction, FileAction, BuildAction, DatabaseAction],
    Field(discriminator="type"),
]

_ACTION_ADAPTER: TypeAdapter[Action] = TypeAdapter(Action)


def parse_action(data: dict[str, Any]) -> Action:
    """Validate a producer mapping into its action variant.

    Raises:
        pydantic.ValidationError: Unknown type or fields that don't fit it
    """
    return _ACTION_ADAPTER.validate_python(data)


# ============================================================================
# Runtime state
# ============================================================================


class ActionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    ABORTED = "aborted"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({ActionStatus.COMPLETE, ActionStatus.ABORTED, ActionStatus.FAILED})


def _noop() -> None:
    pass


@dataclass(frozen=True)
class ActionState:
    """State of an action that has not failed. Never carries an error."""

    action: Action
    status: ActionStatus = ActionStatus.PENDING
    executed: bool = False
    token: CancellationToken = field(default_factory=CancellationToken, compare=False)
    abort: Callable[[], None] = field(default=_noop, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.status is ActionStatus.FAILED:
            raise ValueError("A failed action state needs an error; use FailedActionState")

    @property
    def id(self) -> str:
        return self.action.id

    @property
    def type(self) -> str:
        return self.action.type

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class FailedActionState(ActionState):
    """State of a failed action. Always carries an error message."""

    status: ActionStatus = ActionStatus.FAILED
    error: str = ""

    def __post_init__(self) -> None:
        if self.status is not ActionStatus.FAILED:
            raise ValueError(f"FailedActionState cannot have status {self.status.value}")
        if not self.error:
            raise ValueError("FailedActionState requires an error message")


def merge_state(
    state: ActionState,
    *,
    action: Action | None = None,
    status: ActionStatus | str | None = None,
    error: str | None = None,
    executed: bool | None = None,
) -> ActionState:
    """Return ``state`` with the given fields replaced.

    The result is a FailedActionState exactly when the merged status is
    ``failed``. Leaving ``failed`` drops the error.

    Raises:
        ValueError: Error given for a non-failed status, a failed status with
            no error, or an action whose id differs from the record
    """
    if action is not None and action.id != state.id:
        raise ValueError(f"Cannot replace action {state.id} with {action.id}")

    new_status = ActionStatus(status) if status is not None else state.status
    common = dict(
        action=action if action is not None else state.action,
        status=new_status,
        executed=executed if executed is not None else state.executed,
        token=state.token,
        abort=state.abort,
    )

    if new_status is ActionStatus.FAILED:
        previous_error = state.error if isinstance(state, FailedActionState) else None
        return FailedActionState(**common, error=error if error is not None else (previous_error or ""))

    if error is not None:
        raise ValueError(f"Error message is only allowed with status failed, got {new_status.value}")
    return ActionState(**common)

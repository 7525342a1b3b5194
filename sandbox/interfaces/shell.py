"""Shell interface and result type for command-style actions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class ExecuteResult:
    """Result of a shell command."""

    exit_code: int
    output: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class Shell(ABC):
    """Single interactive shell shared by every shell/start action.

    Only one command runs at a time. Starting a new command while another is
    still running interrupts the old one, and the old command's
    ``on_abort_requested`` callback is invoked.
    """

    @abstractmethod
    async def ready(self) -> None:
        """Wait until the shell can accept commands."""
        ...

    @abstractmethod
    async def execute_command(
        self,
        run_id: str,
        command: str,
        on_abort_requested: Callable[[], None] | None = None,
    ) -> ExecuteResult:
        """
        Execute a command line and wait for it to exit.

        Args:
            run_id: Identifier of the runner issuing the command
            command: Command line text
            on_abort_requested: Called if the shell interrupts this command

        Returns:
            ExecuteResult with exit code and combined output
        """
        ...

    @abstractmethod
    def interrupt(self) -> None:
        """Interrupt the running command, if any."""
        ...

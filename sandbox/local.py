"""Local execution host and shell.

LocalHost maps the sandbox workdir (e.g. /home/project) onto a real
directory; LocalShell runs commands with bash in that directory.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path

from sandbox.interfaces.host import FileWriteResult, SandboxHost, SpawnedProcess
from sandbox.interfaces.shell import ExecuteResult, Shell

logger = logging.getLogger(__name__)

_READ_CHUNK = 4096


class LocalProcess(SpawnedProcess):
    """Spawned asyncio subprocess with stderr folded into stdout."""

    def __init__(self, process: asyncio.subprocess.Process):
        self.process = process

    async def __aiter__(self) -> AsyncIterator[str]:
        stream = self.process.stdout
        if stream is None:
            return
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            yield chunk.decode("utf-8", errors="replace")

    async def wait(self) -> int:
        return await self.process.wait()


class LocalHost(SandboxHost):
    """Host backed by a directory on the local disk."""

    def __init__(self, root: str | Path, workdir: str = "/home/project"):
        self.root = Path(root).resolve()
        self.workdir = workdir
        self.root.mkdir(parents=True, exist_ok=True)

    def _to_local(self, path: str) -> Path:
        rel = self.relative(path)
        # @@@sandbox-escape - paths outside the workdir never touch the real disk
        if rel == ".." or rel.startswith("../"):
            raise PermissionError(f"Path outside sandbox workdir: {path}")
        return self.root / rel

    def write_file(self, path: str, content: str) -> FileWriteResult:
        try:
            target = self._to_local(path)
            with open(target, "w", encoding="utf-8") as f:
                f.write(content)
            return FileWriteResult(success=True)
        except OSError as e:
            return FileWriteResult(success=False, error=str(e))

    def mkdir(self, path: str, recursive: bool = True) -> None:
        self._to_local(path).mkdir(parents=recursive, exist_ok=recursive)

    def read_file(self, path: str) -> str:
        return self._to_local(path).read_text(encoding="utf-8")

    def readdir(self, path: str) -> list[str]:
        return sorted(item.name for item in self._to_local(path).iterdir())

    async def spawn(self, command: str, args: list[str]) -> LocalProcess:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(self.root),
        )
        return LocalProcess(proc)


@dataclass
class _RunningCommand:
    run_id: str
    command: str
    process: asyncio.subprocess.Process
    on_abort_requested: Callable[[], None] | None = None


class LocalShell(Shell):
    """Single-slot bash shell.

    Each command runs as ``bash -c`` in its own process group so interrupting
    it also stops its children (dev servers spawn plenty).
    """

    shell_command: tuple[str, ...] = ("/bin/bash", "-c")

    def __init__(
        self,
        cwd: str | Path,
        init_commands: list[str] | None = None,
        env: dict[str, str] | None = None,
    ):
        self.cwd = str(cwd)
        self.init_commands = init_commands or []
        self.env = env
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._current: _RunningCommand | None = None

    async def ready(self) -> None:
        """Run init commands once. A failed attempt is retried by the next caller."""
        async with self._init_lock:
            if self._initialized:
                return
            for cmd in self.init_commands:
                result = await self._exec(cmd)
                if not result.success:
                    logger.warning("Shell init command failed (exit %s): %s", result.exit_code, cmd)
            self._initialized = True

    async def execute_command(
        self,
        run_id: str,
        command: str,
        on_abort_requested: Callable[[], None] | None = None,
    ) -> ExecuteResult:
        if self._current is not None:
            previous = self._current
            logger.debug(
                "Interrupting running command for new one: %s (run %s)", previous.command, previous.run_id
            )
            if previous.on_abort_requested is not None:
                previous.on_abort_requested()
            self._kill(previous.process)

        return await self._exec(command, run_id=run_id, on_abort_requested=on_abort_requested)

    def interrupt(self) -> None:
        if self._current is not None:
            self._kill(self._current.process)

    async def _exec(
        self,
        command: str,
        run_id: str = "",
        on_abort_requested: Callable[[], None] | None = None,
    ) -> ExecuteResult:
        merged_env = os.environ.copy()
        if self.env:
            merged_env.update(self.env)

        proc = await asyncio.create_subprocess_exec(
            *self.shell_command,
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=self.cwd,
            env=merged_env,
            start_new_session=True,
        )
        running = _RunningCommand(run_id=run_id, command=command, process=proc, on_abort_requested=on_abort_requested)
        self._current = running
        try:
            stdout, _ = await proc.communicate()
        except asyncio.CancelledError:
            self._kill(proc)
            await proc.wait()
            raise
        finally:
            if self._current is running:
                self._current = None

        return ExecuteResult(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            output=stdout.decode("utf-8", errors="replace") if stdout else "",
        )

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            pass

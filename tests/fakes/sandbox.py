"""In-memory fake execution host and shell for unit tests.

FakeHost keeps files and directories in dicts; FakeShell records every
command and can hold a command open until a test releases it.
"""

from __future__ import annotations

import asyncio
import posixpath

from sandbox.interfaces.host import FileWriteResult, SandboxHost, SpawnedProcess
from sandbox.interfaces.shell import ExecuteResult, Shell


class FakeProcess(SpawnedProcess):
    def __init__(self, exit_code: int = 0, chunks: list[str] | None = None):
        self.exit_code = exit_code
        self.chunks = chunks or []

    async def __aiter__(self):
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk

    async def wait(self) -> int:
        return self.exit_code


class FakeHost(SandboxHost):
    def __init__(self, workdir: str = "/home/project", read_only: list[str] | None = None):
        self.workdir = workdir
        self.files: dict[str, str] = {}
        self.dirs: set[str] = {"/"}
        self._add_dir_chain(workdir)
        self.read_only = read_only or []
        self.mkdir_calls: list[str] = []
        self.spawned: list[tuple[str, list[str]]] = []
        self.processes: list[FakeProcess] = []

    def _add_dir_chain(self, path: str) -> None:
        while path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def _is_read_only(self, path: str) -> bool:
        return any(path == p or path.startswith(p.rstrip("/") + "/") for p in self.read_only)

    def write_file(self, path: str, content: str) -> FileWriteResult:
        target = self.resolve(path)
        if self._is_read_only(target):
            return FileWriteResult(success=False, error=f"EACCES: {target}")
        if posixpath.dirname(target) not in self.dirs:
            return FileWriteResult(success=False, error=f"ENOENT: {target}")
        self.files[target] = content
        return FileWriteResult(success=True)

    def mkdir(self, path: str, recursive: bool = True) -> None:
        target = self.resolve(path)
        self.mkdir_calls.append(target)
        if self._is_read_only(target):
            raise PermissionError(f"EACCES: {target}")
        if recursive:
            self._add_dir_chain(target)
            return
        if target in self.dirs:
            raise FileExistsError(target)
        if posixpath.dirname(target) not in self.dirs:
            raise FileNotFoundError(target)
        self.dirs.add(target)

    def read_file(self, path: str) -> str:
        target = self.resolve(path)
        if target not in self.files:
            raise FileNotFoundError(target)
        return self.files[target]

    def readdir(self, path: str) -> list[str]:
        target = self.resolve(path)
        if target not in self.dirs:
            raise FileNotFoundError(target)
        children = {p for p in self.dirs | set(self.files) if p != target and posixpath.dirname(p) == target}
        return sorted(posixpath.basename(p) for p in children)

    async def spawn(self, command: str, args: list[str]) -> FakeProcess:
        self.spawned.append((command, list(args)))
        if self.processes:
            return self.processes.pop(0)
        return FakeProcess()


class _Running:
    def __init__(self, command: str, gate: asyncio.Event | None):
        self.command = command
        self.gate = gate
        self.interrupted = False


class FakeShell(Shell):
    def __init__(self):
        self.results: dict[str, ExecuteResult] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.events: list[str] = []
        self.run_ids: list[str] = []
        self.ready_calls = 0
        self.interrupts = 0
        self._running: list[_Running] = []

    def hold(self, command: str) -> asyncio.Event:
        """Keep ``command`` running until the returned event is set."""
        gate = asyncio.Event()
        self.gates[command] = gate
        return gate

    async def ready(self) -> None:
        self.ready_calls += 1

    async def execute_command(self, run_id, command, on_abort_requested=None) -> ExecuteResult:
        self.run_ids.append(run_id)
        self.events.append(f"start:{command}")
        running = _Running(command, self.gates.get(command))
        self._running.append(running)
        try:
            if running.gate is not None:
                await running.gate.wait()
            await asyncio.sleep(0)
        finally:
            self._running.remove(running)
        self.events.append(f"end:{command}")

        if running.interrupted:
            return ExecuteResult(exit_code=130, output="^C")
        return self.results.get(command, ExecuteResult(exit_code=0, output=f"ran {command}"))

    def interrupt(self) -> None:
        self.interrupts += 1
        if self._running:
            current = self._running[-1]
            current.interrupted = True
            if current.gate is not None:
                current.gate.set()

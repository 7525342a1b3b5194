"""Execution host abstraction.

Separates the sandbox I/O mechanism (local disk, remote container, fakes)
from the action runner that drives it.
"""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass


@dataclass
class FileWriteResult:
    """Result of a write operation."""

    success: bool
    error: str | None = None


class SpawnedProcess(ABC):
    """A process started on the host.

    Iterating yields output chunks (stdout and stderr interleaved) until the
    process closes its streams.
    """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[str]: ...

    @abstractmethod
    async def wait(self) -> int:
        """Wait for exit and return the exit code."""
        ...


class SandboxHost(ABC):
    """Filesystem and process capability of the sandbox.

    Paths are POSIX paths inside the sandbox. Relative paths resolve against
    ``workdir``.
    """

    workdir: str = "/home/project"

    @abstractmethod
    def write_file(self, path: str, content: str) -> FileWriteResult:
        """Write full file content. Parent directories must already exist."""
        ...

    @abstractmethod
    def mkdir(self, path: str, recursive: bool = True) -> None:
        """Create a directory.

        Raises:
            OSError: If the directory cannot be created
        """
        ...

    @abstractmethod
    def read_file(self, path: str) -> str:
        """Read file content.

        Raises:
            OSError: If the file cannot be read
        """
        ...

    @abstractmethod
    def readdir(self, path: str) -> list[str]:
        """List entry names of a directory.

        Raises:
            OSError: If the path is not a readable directory
        """
        ...

    @abstractmethod
    async def spawn(self, command: str, args: list[str]) -> SpawnedProcess:
        """Start ``command`` with ``args`` in the workdir."""
        ...

    # ── path helpers ──

    def resolve(self, path: str) -> str:
        if posixpath.isabs(path):
            return posixpath.normpath(path)
        return posixpath.normpath(posixpath.join(self.workdir, path))

    def relative(self, path: str) -> str:
        return posixpath.relpath(self.resolve(path), self.workdir)

    @staticmethod
    def join(*parts: str) -> str:
        return posixpath.join(*parts)

    @staticmethod
    def dirname(path: str) -> str:
        return posixpath.dirname(path) or "."

"""Sandbox interfaces — ABC + data classes for the host and shell.

Re-exports everything from host and shell submodules.
"""

from sandbox.interfaces.host import (
    FileWriteResult,
    SandboxHost,
    SpawnedProcess,
)
from sandbox.interfaces.shell import (
    ExecuteResult,
    Shell,
)

__all__ = [
    # Host
    "SandboxHost",
    "SpawnedProcess",
    "FileWriteResult",
    # Shell
    "Shell",
    "ExecuteResult",
]

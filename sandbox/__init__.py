"""Sandbox — execution host and shell used by the action runner.

Usage:
    from sandbox import create_sandbox

    host, shell = create_sandbox(settings.sandbox, workspace_root="./project")
    runner = ActionRunner(host, lambda: shell, settings=settings)
"""

from __future__ import annotations

from pathlib import Path

from config.schema import SandboxSettings
from sandbox.interfaces.host import FileWriteResult, SandboxHost, SpawnedProcess
from sandbox.interfaces.shell import ExecuteResult, Shell
from sandbox.local import LocalHost, LocalShell


def create_sandbox(
    settings: SandboxSettings,
    workspace_root: str | Path | None = None,
) -> tuple[LocalHost, LocalShell]:
    """Factory: create a local host and its shell from settings.

    Args:
        settings: Sandbox settings (workdir, init commands, env)
        workspace_root: Local directory backing the workdir; falls back to
            ``settings.root`` and then the current directory
    """
    root = Path(workspace_root or settings.root or Path.cwd())
    host = LocalHost(root=root, workdir=settings.workdir)
    shell = LocalShell(cwd=host.root, init_commands=settings.init_commands, env=settings.env or None)
    return host, shell


__all__ = [
    "SandboxHost",
    "SpawnedProcess",
    "FileWriteResult",
    "Shell",
    "ExecuteResult",
    "LocalHost",
    "LocalShell",
    "create_sandbox",
]

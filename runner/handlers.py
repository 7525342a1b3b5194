"""Per-kind action handlers.

Each handler only talks to the execution host, the shell or the alert
channel; status bookkeeping stays in the sequencer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from config.schema import BuildSettings, DeploySettings
from runner.alerts import AlertChannel, DatabaseAlert, DeployAlert, deploy_alert
from runner.errors import ActionAbortedError, ActionCommandError
from runner.types import ActionState, DatabaseAction, DatabaseOperation
from runner.wait_handle import PendingTable
from sandbox.interfaces.host import SandboxHost
from sandbox.interfaces.shell import ExecuteResult, Shell

logger = logging.getLogger(__name__)

NO_OUTPUT = "No Output Available"


@dataclass
class BuildOutput:
    """Result of a successful build, kept for a later deploy step."""

    path: str
    exit_code: int
    output: str


async def _execute_in_shell(shell: Shell, run_id: str, state: ActionState, failure_header: str) -> ExecuteResult | None:
    await shell.ready()

    if state.token.cancelled:
        logger.debug("[%s] Skipping cancelled action %s", state.type, state.id)
        return None

    remove_callback = state.token.add_callback(shell.interrupt)
    try:
        resp = await shell.execute_command(run_id, state.action.content, state.abort)
    finally:
        remove_callback()
    logger.debug("%s Shell Response: [exit code:%s]", state.type, resp.exit_code)

    if resp.exit_code != 0:
        raise ActionCommandError(failure_header, resp.output or NO_OUTPUT)
    return resp


async def run_shell_action(shell: Shell, run_id: str, state: ActionState) -> ExecuteResult | None:
    """Run a shell action to completion."""
    return await _execute_in_shell(shell, run_id, state, "Failed To Execute Shell Command")


async def run_start_action(shell: Shell, run_id: str, state: ActionState) -> ExecuteResult | None:
    """Run a start action. Usually only returns when the dev server dies."""
    return await _execute_in_shell(shell, run_id, state, "Failed To Start Application")


def write_file_action(host: SandboxHost, file_path: str, content: str) -> None:
    """Write a file into the sandbox, best effort.

    Directory and write failures are logged and never raised.
    """
    relative_path = host.relative(file_path)
    folder = host.dirname(relative_path).rstrip("/")

    if folder not in (".", ""):
        try:
            host.mkdir(folder, recursive=True)
            logger.debug("Created folder %s", folder)
        except OSError:
            logger.error("Failed to create folder %s", folder, exc_info=True)

    try:
        result = host.write_file(relative_path, content)
    except OSError:
        logger.error("Failed to write file %s", relative_path, exc_info=True)
        return
    if result.success:
        logger.debug("File written %s", relative_path)
    else:
        logger.error("Failed to write file %s: %s", relative_path, result.error)


async def run_build_action(
    host: SandboxHost,
    alerts: AlertChannel,
    build: BuildSettings,
    deploy: DeploySettings,
) -> BuildOutput:
    """Run the build command and locate its output directory.

    Raises:
        ActionCommandError: Build exited non-zero
    """
    alerts.emit(deploy_alert("building", "running", source=deploy.source))

    process = await host.spawn(build.command, list(build.args))
    chunks: list[str] = []
    async for chunk in process:
        chunks.append(chunk)
    exit_code = await process.wait()
    output = "".join(chunks)

    if exit_code != 0:
        alerts.emit(
            DeployAlert(
                type="error",
                title="Build Failed",
                description="Your application build failed",
                content=output or "No build output available",
                stage="building",
                build_status="failed",
                deploy_status="pending",
                source=deploy.source,
            )
        )
        raise ActionCommandError("Build Failed", output or NO_OUTPUT)

    alerts.emit(
        DeployAlert(
            type="success",
            title="Build Completed",
            description="Your application was built successfully",
            stage="deploying",
            build_status="complete",
            deploy_status="running",
            source=deploy.source,
        )
    )

    build_dir = ""
    for name in build.output_dirs:
        candidate = host.join(host.workdir, name)
        try:
            host.readdir(candidate)
        except OSError:
            continue
        build_dir = candidate
        break

    if not build_dir:
        build_dir = host.join(host.workdir, build.default_output_dir)

    return BuildOutput(path=build_dir, exit_code=exit_code, output=output)


async def run_database_action(
    host: SandboxHost,
    alerts: AlertChannel,
    pending: PendingTable,
    state: ActionState,
) -> None:
    """Handle a database action.

    Migrations only write their SQL file. Queries wait until someone else
    runs them and reports back through the pending table.

    Raises:
        TypeError: The state does not hold a database action
        ValueError: Migration without a file path
        DatabaseActionError: The query was reported as failed
        ActionAbortedError: The action was aborted while waiting
    """
    action = state.action
    if not isinstance(action, DatabaseAction):
        raise TypeError(f"Expected a database action, got {action.type}")
    logger.debug(
        "[Database Action]: Processing %s file_path=%s content=%.100s",
        action.operation.value,
        action.file_path,
        action.content,
    )

    if action.operation is DatabaseOperation.MIGRATION:
        if not action.file_path:
            raise ValueError("Migration requires a filePath")

        alerts.emit(
            DatabaseAlert(
                type="info",
                title="Supabase Migration",
                description=f"Create migration file: {action.file_path}",
                content=action.content,
                action_id=action.id,
            )
        )
        write_file_action(host, action.file_path, action.content)
        logger.debug("[Database Action]: Migration file created %s", action.file_path)
        return

    alerts.emit(
        DatabaseAlert(
            type="info",
            title="Supabase Query",
            description="Execute database query",
            content=action.content,
            action_id=action.id,
        )
    )

    future = pending.create(action.id)
    # @@@abort-releases-query - otherwise an aborted query would block every later action
    remove_callback = state.token.add_callback(
        lambda: pending.reject(action.id, ActionAbortedError(f"Action {action.id} aborted"))
    )
    logger.debug("[Database Query Action]: %s waiting for external execution", action.id)
    try:
        await future
    finally:
        remove_callback()

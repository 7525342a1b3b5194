"""Configuration schema for the action runner using Pydantic.

Groups:
- Sandbox (workdir mapping, shell init commands, history root)
- Build (command, output directory candidates)
- Start (grace delay between dev-server starts)
- Deploy (default alert source)
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Candidate build output directories, first existing one wins
DEFAULT_BUILD_OUTPUT_DIRS = ["dist", "build", "out", "output", ".next", "public"]


class SandboxSettings(BaseModel):
    """Execution host configuration."""

    workdir: str = Field("/home/project", description="Working directory inside the sandbox")
    root: str | None = Field(None, description="Local directory backing the workdir (LocalHost only)")
    history_root: str = Field(".history", description="Shadow directory for file history, relative to workdir")
    init_commands: list[str] = Field(default_factory=list, description="Commands run before the shell is ready")
    env: dict[str, str] = Field(default_factory=dict, description="Extra environment for shell commands")

    @field_validator("workdir")
    @classmethod
    def normalize_workdir(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"workdir must be absolute: {v}")
        return v.rstrip("/") or "/"


class BuildSettings(BaseModel):
    """Build action configuration."""

    command: str = Field("npm", description="Build executable")
    args: list[str] = Field(default_factory=lambda: ["run", "build"], description="Build arguments")
    output_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_BUILD_OUTPUT_DIRS))
    default_output_dir: str = Field("dist", description="Reported when no candidate exists")

    @field_validator("output_dirs")
    @classmethod
    def non_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("output_dirs must not be empty")
        return v


class StartSettings(BaseModel):
    """Start action configuration."""

    grace_seconds: float = Field(2.0, ge=0.0, description="Delay after firing a start action")


class DeploySettings(BaseModel):
    source: Literal["netlify", "vercel", "github"] = "netlify"


class RunnerSettings(BaseModel):
    """Complete runner configuration."""

    sandbox: SandboxSettings = Field(default_factory=SandboxSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    start: StartSettings = Field(default_factory=StartSettings)
    deploy: DeploySettings = Field(default_factory=DeploySettings)

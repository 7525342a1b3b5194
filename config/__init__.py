"""Configuration management for the action runner."""

from .loader import RunnerConfigLoader, load_settings
from .schema import BuildSettings, DeploySettings, RunnerSettings, SandboxSettings, StartSettings

__all__ = [
    "RunnerSettings",
    "SandboxSettings",
    "BuildSettings",
    "StartSettings",
    "DeploySettings",
    "RunnerConfigLoader",
    "load_settings",
]

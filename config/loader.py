"""Runner configuration loader.

Configuration priority (highest to lowest):
1. Explicit overrides
2. File named by BOLT_RUNNER_CONFIG
3. Project config (.bolt/runner.json in workspace)
4. User config (~/.bolt/runner.json)
5. Schema defaults
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from config.schema import RunnerSettings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BOLT_RUNNER_CONFIG"
CONFIG_DIR_NAME = ".bolt"
CONFIG_FILE_NAME = "runner.json"


class RunnerConfigLoader:
    """Layered JSON config loader."""

    def __init__(self, workspace_root: str | Path | None = None, home: str | Path | None = None):
        self.workspace_root = Path(workspace_root).resolve() if workspace_root else None
        self.home = Path(home) if home else Path.home()

    def load(self, overrides: dict[str, Any] | None = None) -> RunnerSettings:
        """Load settings with layered merge."""
        layers = [self._load_user_config(), self._load_project_config(), self._load_env_config()]
        if overrides:
            layers.append(overrides)

        merged = self._deep_merge(*layers)
        merged = self._expand_env_vars(merged)
        return RunnerSettings(**merged)

    def _load_user_config(self) -> dict[str, Any]:
        return self._load_json(self.home / CONFIG_DIR_NAME / CONFIG_FILE_NAME)

    def _load_project_config(self) -> dict[str, Any]:
        if not self.workspace_root:
            return {}
        return self._load_json(self.workspace_root / CONFIG_DIR_NAME / CONFIG_FILE_NAME)

    def _load_env_config(self) -> dict[str, Any]:
        path = os.environ.get(CONFIG_ENV_VAR)
        if not path:
            return {}
        return self._load_json(Path(path).expanduser())

    @staticmethod
    def _load_json(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            logger.error("Ignoring unreadable runner config: %s", path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.error("Ignoring runner config that is not an object: %s", path)
            return {}
        return data

    def _deep_merge(self, *dicts: dict[str, Any]) -> dict[str, Any]:
        """Deep merge, later dicts win."""
        result: dict[str, Any] = {}
        for d in dicts:
            for key, value in d.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value
        return result

    def _expand_env_vars(self, value: Any) -> Any:
        """Expand ${VAR} and ~ in string values."""
        if isinstance(value, str):
            return os.path.expanduser(os.path.expandvars(value))
        if isinstance(value, dict):
            return {k: self._expand_env_vars(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._expand_env_vars(v) for v in value]
        return value


def load_settings(workspace_root: str | Path | None = None, **overrides: Any) -> RunnerSettings:
    return RunnerConfigLoader(workspace_root).load(overrides or None)

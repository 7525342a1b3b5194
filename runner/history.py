"""Per-file history snapshots stored under a shadow path in the sandbox."""

from __future__ import annotations

import posixpath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HISTORY_ROOT = ".history"


class FileVersion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: int
    content: str


class FileHistory(BaseModel):
    """Snapshot record for one file.

    Serialized with the producer's camelCase keys; unknown keys survive a
    load/save round trip.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    original_content: str = Field("", alias="originalContent")
    last_modified: int = Field(0, alias="lastModified", description="Epoch milliseconds")
    changes: list[dict[str, Any]] = Field(default_factory=list)
    versions: list[FileVersion] = Field(default_factory=list)
    change_source: str | None = Field(None, alias="changeSource")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def history_path(file_path: str, history_root: str = DEFAULT_HISTORY_ROOT) -> str:
    """Shadow path mirroring ``file_path`` under ``history_root``."""
    return posixpath.normpath(posixpath.join(history_root, file_path.lstrip("/")))

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

from ruby_environments.internal_config import (
    DEFAULT_CONTEXT_KEY,
    DEFAULT_CONTEXT_NAME,
    STORAGE_KEY_PREFIX,
)


@dataclass(frozen=True)
class WorkspaceFolder:
    """A folder opened by the host, as reported in its workspace folder list."""

    path: Path
    name: str = ""
    index: int = 0

    @classmethod
    def from_path(
        cls, path: str | os.PathLike[str], index: int = 0
    ) -> "WorkspaceFolder":
        folder_path = Path(path).expanduser().absolute()
        return cls(path=folder_path, name=folder_path.name, index=index)


@dataclass(frozen=True)
class WorkspaceContext:
    """Either a real workspace folder or the default (no folder open) context."""

    key: str
    path: Path = field(compare=False)
    name: str = field(compare=False)
    is_default: bool = field(default=False, compare=False)
    workspace_folder: WorkspaceFolder | None = field(default=None, compare=False)

    _default: ClassVar[WorkspaceContext | None] = None

    @classmethod
    def from_workspace_folder(cls, folder: WorkspaceFolder) -> "WorkspaceContext":
        canonical = Path(folder.path).expanduser().resolve()
        return cls(
            path=canonical,
            name=folder.name or canonical.name,
            key=canonical.as_uri(),
            is_default=False,
            workspace_folder=folder,
        )

    @classmethod
    def create_default(cls) -> "WorkspaceContext":
        """Return the process-wide default context, creating it on first use."""
        if cls._default is None:
            cls._default = cls(
                path=Path.cwd(),
                name=DEFAULT_CONTEXT_NAME,
                key=DEFAULT_CONTEXT_KEY,
                is_default=True,
            )
        return cls._default

    @classmethod
    def from_(cls, folder: WorkspaceFolder | None) -> "WorkspaceContext":
        if folder is None:
            return cls.create_default()
        return cls.from_workspace_folder(folder)

    def storage_key(self) -> str:
        if self.is_default:
            return STORAGE_KEY_PREFIX
        return f"{STORAGE_KEY_PREFIX}:{self.key}"

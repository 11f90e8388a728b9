from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from ruby_environments.exceptions import WorkspaceStateError

logger: logging.Logger = logging.getLogger(__name__)


class WorkspaceState(Protocol):
    """Key-value store for per-workspace manual Ruby selections."""

    def get(self, key: str) -> str | None: ...

    def update(self, key: str, value: str | None) -> None: ...


class MemoryWorkspaceState(object):
    def __init__(self, values: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(values or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def update(self, key: str, value: str | None) -> None:
        if value is None:
            self.values.pop(key, None)
        else:
            self.values[key] = value


class JsonWorkspaceState(object):
    """Workspace state persisted as a flat JSON object of string values."""

    path: Path

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise WorkspaceStateError(
                f"Could not read workspace state {self.path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise WorkspaceStateError(f"Workspace state {self.path} is not an object")
        return {str(k): str(v) for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def update(self, key: str, value: str | None) -> None:
        values = self._load()
        if value is None:
            values.pop(key, None)
        else:
            values[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(values, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise WorkspaceStateError(
                f"Could not write workspace state {self.path}: {exc}"
            ) from exc
        logger.debug(f"Stored {key} in {self.path}")

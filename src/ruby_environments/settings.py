from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

# VS Code settings.json may contain comments and trailing commas
import json5

from ruby_environments.exceptions import SettingsLoadError
from ruby_environments.internal_config import (
    PROBE_TIMEOUT_SECONDS,
    SETTING_ACTIVATION_TIMEOUT,
    SETTING_EXECUTABLE_PATH,
    SETTING_VERSION_MANAGER,
    SETTINGS_NAMESPACE,
)
from ruby_environments.models import ManagerIdentifier

logger: logging.Logger = logging.getLogger(__name__)


class SettingsSource(Protocol):
    """Read-only view of the ``rubyEnvironments`` settings group."""

    def get(self, key: str, default: Any = None) -> Any: ...


class MemorySettings(object):
    """Settings held in a plain dict, keyed without the namespace prefix."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def update(self, key: str, value: Any) -> None:
        if value is None:
            self.values.pop(key, None)
        else:
            self.values[key] = value


class JsonSettingsFile(object):
    """Settings read from a VS Code style settings.json file."""

    path: Path
    values: dict[str, Any]

    def __init__(self, path: Path, namespace: str = SETTINGS_NAMESPACE) -> None:
        self.path = Path(path)
        self.namespace = namespace
        self.values = {}
        self.reload()

    def reload(self) -> None:
        if not self.path.is_file():
            logger.debug(f"Settings file {self.path} not found, using defaults")
            self.values = {}
            return

        try:
            data = json5.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SettingsLoadError(
                f"Could not read settings from {self.path}: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise SettingsLoadError(
                f"Settings file {self.path} must contain an object"
            )

        prefix = f"{self.namespace}."
        values: dict[str, Any] = {}
        # flat "ns.key" entries and a nested {"ns": {...}} object are both accepted
        nested = data.get(self.namespace)
        if isinstance(nested, dict):
            values.update(nested)
        for key, value in data.items():
            if key.startswith(prefix):
                values[key[len(prefix) :]] = value
        self.values = values

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)


@dataclass(frozen=True)
class ConfigurationChange:
    """Describes which settings sections changed, like the host's change event."""

    sections: tuple[str, ...] = ()

    @classmethod
    def of(cls, sections: Iterable[str]) -> "ConfigurationChange":
        return cls(sections=tuple(sections))

    def affects_configuration(self, section: str) -> bool:
        for changed in self.sections:
            if (
                changed == section
                or changed.startswith(f"{section}.")
                or section.startswith(f"{changed}.")
            ):
                return True
        return False


def get_executable_setting(settings: SettingsSource) -> str | None:
    value = settings.get(SETTING_EXECUTABLE_PATH)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def get_version_manager_setting(settings: SettingsSource) -> ManagerIdentifier:
    value = settings.get(SETTING_VERSION_MANAGER, ManagerIdentifier.CONFIGURED.value)
    try:
        return ManagerIdentifier(value)
    except ValueError:
        logger.warning(
            f"Unknown version manager '{value}', "
            f"falling back to {ManagerIdentifier.CONFIGURED.value}"
        )
        return ManagerIdentifier.CONFIGURED


def get_activation_timeout_setting(settings: SettingsSource) -> float:
    value = settings.get(SETTING_ACTIVATION_TIMEOUT, PROBE_TIMEOUT_SECONDS)
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        logger.warning(
            f"Invalid activation timeout {value!r}, using {PROBE_TIMEOUT_SECONDS}"
        )
        return PROBE_TIMEOUT_SECONDS
    if timeout <= 0:
        return PROBE_TIMEOUT_SECONDS
    return timeout


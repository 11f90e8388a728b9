from __future__ import annotations

import logging
from typing import Protocol

from ruby_environments.models import ManagerIdentifier
from ruby_environments.settings import SettingsSource, get_executable_setting
from ruby_environments.workspace_context import WorkspaceContext
from ruby_environments.workspace_state import WorkspaceState

logger: logging.Logger = logging.getLogger(__name__)


class VersionManager(Protocol):
    """Decides which Ruby executable to probe for a workspace."""

    identifier: ManagerIdentifier
    name: str

    def get_executable_path(self, context: WorkspaceContext) -> str | None: ...


class ConfiguredRuby(object):
    """Respects the Ruby configured for the workspace or in the settings.

    Precedence: the manual selection stored for the workspace, then the
    ``rubyExecutablePath`` setting, then ``default_executable``.
    """

    identifier = ManagerIdentifier.CONFIGURED
    name = "Configured Ruby"

    def __init__(
        self,
        settings: SettingsSource,
        workspace_state: WorkspaceState,
        default_executable: str | None = None,
    ) -> None:
        self.settings = settings
        self.workspace_state = workspace_state
        self.default_executable = default_executable

    def get_executable_path(self, context: WorkspaceContext) -> str | None:
        manual_path = self.workspace_state.get(context.storage_key())
        if manual_path and manual_path.strip():
            logger.debug(f"[{context.name}] using manually selected Ruby {manual_path}")
            return manual_path.strip()

        configured_path = get_executable_setting(self.settings)
        if configured_path:
            return configured_path

        return self.default_executable


# managers whose own resolution is not implemented yet probe the configured Ruby
VERSION_MANAGERS: dict[ManagerIdentifier, type[ConfiguredRuby]] = {
    ManagerIdentifier.CONFIGURED: ConfiguredRuby,
}


def create_version_manager(
    identifier: ManagerIdentifier,
    settings: SettingsSource,
    workspace_state: WorkspaceState,
    default_executable: str | None = None,
) -> VersionManager:
    manager_class = VERSION_MANAGERS.get(identifier)
    if manager_class is None:
        logger.warning(
            f"Version manager '{identifier.value}' is not supported yet, "
            f"using {ConfiguredRuby.name}"
        )
        manager_class = ConfiguredRuby
    return manager_class(settings, workspace_state, default_executable)

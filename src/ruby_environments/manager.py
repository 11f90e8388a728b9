from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence

from ruby_environments.environment import ProbeRunner, RubyEnvironment
from ruby_environments.events import (
    EventEmitter,
    Listener,
    RubyChangeEvent,
    Subscription,
)
from ruby_environments.exceptions import UnknownWorkspaceError
from ruby_environments.internal_config import SETTINGS_NAMESPACE
from ruby_environments.models import UNRESOLVED, OptionalRubyDefinition
from ruby_environments.probe import ProbeInvoker
from ruby_environments.settings import ConfigurationChange, SettingsSource
from ruby_environments.workspace_context import WorkspaceContext, WorkspaceFolder
from ruby_environments.workspace_state import WorkspaceState

logger: logging.Logger = logging.getLogger(__name__)


class RubyEnvironmentManager(object):
    """Keeps one RubyEnvironment per workspace context.

    This is the API handed to dependent tooling. Hosts forward their
    configuration and workspace folder notifications to
    ``on_did_change_configuration`` and ``on_did_change_workspace_folders``.
    """

    settings: SettingsSource
    workspace_state: WorkspaceState
    environments: dict[str, RubyEnvironment]

    def __init__(
        self,
        settings: SettingsSource,
        workspace_state: WorkspaceState,
        probe: ProbeRunner | None = None,
        default_executable: str | None = None,
    ) -> None:
        self.settings = settings
        self.workspace_state = workspace_state
        self.probe = probe if probe is not None else ProbeInvoker()
        self.default_executable = default_executable
        self.environments = {}
        self._change_emitter: EventEmitter[RubyChangeEvent] = EventEmitter()

    def on_did_ruby_change(self, listener: Listener[RubyChangeEvent]) -> Subscription:
        """Subscribe to resolution results of every workspace."""
        return self._change_emitter.subscribe(listener)

    async def activate(self, workspace_folders: Sequence[WorkspaceFolder] = ()) -> None:
        """Activate all workspaces on startup, or the default one if none are open."""
        if not workspace_folders:
            await self.ensure_context(WorkspaceContext.create_default())
            return

        await asyncio.gather(
            *(
                self.ensure_context(WorkspaceContext.from_workspace_folder(folder))
                for folder in workspace_folders
            )
        )

    async def activate_workspace(self, workspace: WorkspaceFolder | None) -> None:
        """Ensure an environment exists for *workspace* (None for the default)."""
        await self.ensure_context(WorkspaceContext.from_(workspace))

    async def ensure_context(self, context: WorkspaceContext) -> RubyEnvironment:
        environment = self.environments.get(context.key)
        if environment is not None:
            return environment

        environment = RubyEnvironment(
            context,
            self.settings,
            self.workspace_state,
            self._change_emitter,
            probe=self.probe,
            default_executable=self.default_executable,
        )
        self.environments[context.key] = environment
        logger.debug(f"Registered workspace {context.name} ({context.key})")
        await environment.resolve()
        return environment

    def remove_context(self, context: WorkspaceContext) -> None:
        environment = self.environments.pop(context.key, None)
        if environment is not None:
            environment.dispose()
            logger.debug(f"Removed workspace {context.name} ({context.key})")

    def lookup(self, context: WorkspaceContext) -> OptionalRubyDefinition:
        environment = self.environments.get(context.key)
        if environment is None:
            return UNRESOLVED
        return environment.current()

    def get_ruby(
        self, workspace: WorkspaceFolder | None = None
    ) -> OptionalRubyDefinition:
        return self.lookup(WorkspaceContext.from_(workspace))

    async def resolve(
        self, workspace: WorkspaceFolder | None = None
    ) -> OptionalRubyDefinition:
        """Re-resolve *workspace*, registering it first when unknown."""
        context = WorkspaceContext.from_(workspace)
        environment = self.environments.get(context.key)
        if environment is None:
            environment = await self.ensure_context(context)
            return environment.current()
        return await environment.resolve()

    async def select_ruby(
        self, new_path: str, workspace: WorkspaceFolder | None = None
    ) -> OptionalRubyDefinition:
        """Store a manual Ruby selection for a registered workspace."""
        context = WorkspaceContext.from_(workspace)
        environment = self.environments.get(context.key)
        if environment is None:
            raise UnknownWorkspaceError(context.key)
        return await environment.select_manual_path(new_path)

    async def resolve_all(self) -> None:
        await asyncio.gather(
            *(environment.resolve() for environment in list(self.environments.values()))
        )

    async def on_did_change_configuration(self, change: ConfigurationChange) -> None:
        if not change.affects_configuration(SETTINGS_NAMESPACE):
            return
        logger.debug("Configuration changed, re-resolving all workspaces")
        await self.resolve_all()

    async def on_did_change_workspace_folders(
        self,
        added: Iterable[WorkspaceFolder] = (),
        removed: Iterable[WorkspaceFolder] = (),
    ) -> None:
        for folder in removed:
            self.remove_context(WorkspaceContext.from_workspace_folder(folder))

        await asyncio.gather(
            *(
                self.ensure_context(WorkspaceContext.from_workspace_folder(folder))
                for folder in added
            )
        )

    def dispose(self) -> None:
        for environment in self.environments.values():
            environment.dispose()
        self._change_emitter.dispose()
        self.environments.clear()

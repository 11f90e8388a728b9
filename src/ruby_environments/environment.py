from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from ruby_environments.activation_codec import decode_activation_output
from ruby_environments.events import EventEmitter, RubyChangeEvent
from ruby_environments.exceptions import ActivationDecodeError, ProbeInvocationError
from ruby_environments.models import (
    UNRESOLVED,
    OptionalRubyDefinition,
    ResolvedRuby,
    RubyError,
)
from ruby_environments.probe import ProbeInvoker, ProbeOutput
from ruby_environments.settings import (
    SettingsSource,
    get_activation_timeout_setting,
    get_version_manager_setting,
)
from ruby_environments.version_manager import create_version_manager
from ruby_environments.workspace_context import WorkspaceContext
from ruby_environments.workspace_state import WorkspaceState

logger: logging.Logger = logging.getLogger(__name__)


class ProbeRunner(Protocol):
    async def run(
        self, executable: str, cwd: Path, timeout: float | None = None
    ) -> ProbeOutput: ...


class RubyEnvironment(object):
    """Owns the resolved Ruby definition of exactly one workspace context.

    Overlapping ``resolve()`` calls are ordered by start time: a call that
    finishes after a newer call has already been applied is discarded, so
    the state always reflects the most recently started probe.
    """

    context: WorkspaceContext
    settings: SettingsSource
    workspace_state: WorkspaceState
    emitter: EventEmitter[RubyChangeEvent]
    probe: ProbeRunner
    default_executable: str | None = None

    def __init__(
        self,
        context: WorkspaceContext,
        settings: SettingsSource,
        workspace_state: WorkspaceState,
        emitter: EventEmitter[RubyChangeEvent],
        probe: ProbeRunner | None = None,
        default_executable: str | None = None,
    ) -> None:
        self.context = context
        self.settings = settings
        self.workspace_state = workspace_state
        self.emitter = emitter
        self.probe = probe if probe is not None else ProbeInvoker()
        self.default_executable = default_executable
        self._ruby: OptionalRubyDefinition = UNRESOLVED
        self._started = 0
        self._applied = 0
        self._in_flight = 0
        self._disposed = False

    def current(self) -> OptionalRubyDefinition:
        """Return the last resolved definition without probing."""
        return self._ruby

    @property
    def is_resolving(self) -> bool:
        return self._in_flight > 0

    @property
    def manual_path(self) -> str | None:
        return self.workspace_state.get(self.context.storage_key())

    def working_directory(self) -> Path:
        if self.context.is_default:
            return Path.cwd()
        return self.context.path

    async def resolve(self) -> OptionalRubyDefinition:
        """Probe the configured Ruby and publish the outcome.

        Never raises for probe, decode or configuration failures; those are
        reported as RubyError.
        """
        self._started += 1
        ticket = self._started
        self._in_flight += 1
        try:
            ruby = await self._activate()
        finally:
            self._in_flight -= 1

        if self._disposed:
            logger.debug(f"[{self.context.name}] dropping resolve #{ticket}, disposed")
            return UNRESOLVED

        if ticket < self._applied:
            logger.debug(
                f"[{self.context.name}] discarding superseded resolve #{ticket}"
            )
            return self._ruby

        self._applied = ticket
        self._ruby = ruby
        self.emitter.fire(RubyChangeEvent(context=self.context, ruby=ruby))
        return ruby

    def dispose(self) -> None:
        """Drop the current definition; results still in flight are discarded."""
        self._disposed = True
        self._ruby = UNRESOLVED

    async def select_manual_path(self, new_path: str) -> OptionalRubyDefinition:
        """Persist *new_path* as this workspace's Ruby and resolve again."""
        new_path = new_path.strip()
        if not new_path:
            raise ValueError("Path cannot be empty")
        self.workspace_state.update(self.context.storage_key(), new_path)
        logger.info(f"[{self.context.name}] Ruby executable path updated to {new_path}")
        return await self.resolve()

    async def _activate(self) -> OptionalRubyDefinition:
        try:
            manager = create_version_manager(
                get_version_manager_setting(self.settings),
                self.settings,
                self.workspace_state,
                self.default_executable,
            )
            executable = manager.get_executable_path(self.context)
        except Exception as e:
            logger.error(
                f"[{self.context.name}] Could not determine Ruby executable: {e}"
            )
            return RubyError(reason=str(e))

        if not executable:
            logger.info(f"[{self.context.name}] No Ruby executable configured")
            return UNRESOLVED

        logger.info(
            f"[{self.context.name}] {manager.name}: using executable '{executable}'"
        )
        timeout = get_activation_timeout_setting(self.settings)

        try:
            output = await self.probe.run(
                executable, self.working_directory(), timeout=timeout
            )
        except ProbeInvocationError as e:
            logger.error(f"[{self.context.name}] Failed to activate Ruby: {e}")
            if e.stderr:
                logger.debug(f"Activation output (stderr): {e.stderr}")
            return RubyError(reason=str(e))
        except Exception as e:
            logger.exception(f"[{self.context.name}] Failed to activate Ruby: {e}")
            return RubyError(reason=str(e))

        logger.debug(f"Activation output (stderr): {output.stderr}")

        try:
            payload = decode_activation_output(output.stderr)
        except ActivationDecodeError as e:
            logger.error(
                f"[{self.context.name}] Failed to parse activation result: {e}"
            )
            return RubyError(reason=str(e))

        ruby = ResolvedRuby.from_parts(
            ruby_version=payload.ruby_version,
            available_jits=payload.available_jits,
            env=payload.env,
            gem_path=payload.gem_path,
            version_manager=manager.identifier,
        )
        logger.info(f"[{self.context.name}] Activated Ruby {ruby.ruby_version}")
        return ruby

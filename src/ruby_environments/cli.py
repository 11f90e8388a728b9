#! /bin/env python3
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from ruby_environments.exceptions import RubyEnvironmentsError
from ruby_environments.internal_config import (
    DEFAULT_RUBY_EXECUTABLE,
    PACKAGE_VERSION,
    default_state_path,
)
from ruby_environments.manager import RubyEnvironmentManager
from ruby_environments.models import OptionalRubyDefinition, ResolvedRuby
from ruby_environments.settings import (
    JsonSettingsFile,
    MemorySettings,
    SettingsSource,
)
from ruby_environments.status import describe_status
from ruby_environments.workspace_context import WorkspaceContext, WorkspaceFolder
from ruby_environments.workspace_state import JsonWorkspaceState

app: typer.Typer = typer.Typer(
    help="Resolve the Ruby environment a login shell would give each workspace."
)
logger: logging.Logger = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise typer.BadParameter(
            f"Invalid log level: {log_level!r}", param_hint="--log-level"
        )
    logging.basicConfig(
        level=level,
        format="%(relativeCreated)d [%(levelname)s] %(message)s",
    )


def _build_manager(
    settings_path: str, state_path: str, default_ruby: str
) -> RubyEnvironmentManager:
    settings: SettingsSource = (
        JsonSettingsFile(Path(settings_path).expanduser())
        if settings_path
        else MemorySettings()
    )
    workspace_state = JsonWorkspaceState(
        Path(state_path).expanduser() if state_path else default_state_path()
    )
    return RubyEnvironmentManager(
        settings,
        workspace_state,
        default_executable=default_ruby or None,
    )


def _to_folders(folders: Optional[List[Path]]) -> list[WorkspaceFolder]:
    return [
        WorkspaceFolder.from_path(path, index=i)
        for i, path in enumerate(folders or [])
    ]


def _as_json(context: WorkspaceContext, ruby: OptionalRubyDefinition) -> dict:
    result: dict = {
        "workspace": context.name,
        "path": str(context.path),
        "state": ruby.state.value,
    }
    if isinstance(ruby, ResolvedRuby):
        result.update(
            {
                "rubyVersion": ruby.ruby_version,
                "availableJITs": sorted(jit.value for jit in ruby.available_jits),
                "gemPath": list(ruby.gem_path),
                "versionManager": ruby.version_manager.value,
                "env": dict(ruby.env),
            }
        )
    return result


def _report(manager: RubyEnvironmentManager, json_output: bool) -> None:
    """Print every workspace and exit with 1 if any of them failed."""
    failed = False
    documents = []
    for environment in manager.environments.values():
        ruby = environment.current()
        failed = failed or ruby.error
        if json_output:
            documents.append(_as_json(environment.context, ruby))
        else:
            status = describe_status(ruby)
            typer.echo(f"{environment.context.name}: {status.text}")

    if json_output:
        typer.echo(json.dumps(documents, indent=2))
    if failed:
        raise typer.Exit(code=1)


@app.command()
def activate(
    folders: Optional[List[Path]] = typer.Argument(
        None, help="Workspace folders, the current directory is used when omitted."
    ),
    settings: str = typer.Option("", help="VS Code style settings.json to read."),
    state: str = typer.Option("", help="File holding manual Ruby selections."),
    ruby: str = typer.Option(
        DEFAULT_RUBY_EXECUTABLE, "--ruby", help="Executable used when none is set."
    ),
    log_level: str = "warning",
    json_output: bool = typer.Option(False, "--json", help="Print JSON."),
) -> None:
    """Resolve and print the Ruby environment of each workspace."""
    _configure_logging(log_level)
    try:
        manager = _build_manager(settings, state, ruby)
        asyncio.run(manager.activate(_to_folders(folders)))
    except RubyEnvironmentsError as e:
        logger.error(f"{e}")
        raise typer.Exit(code=1) from e
    _report(manager, json_output)


async def _select(
    manager: RubyEnvironmentManager, ruby_path: str, workspace: WorkspaceFolder | None
) -> None:
    await manager.activate_workspace(workspace)
    await manager.select_ruby(ruby_path, workspace)


@app.command("select")
def select_ruby(
    ruby_path: str = typer.Argument(..., help="Ruby executable to use."),
    folder: Optional[Path] = typer.Argument(
        None, help="Workspace folder, the default workspace when omitted."
    ),
    settings: str = "",
    state: str = "",
    log_level: str = "warning",
) -> None:
    """Store a manual Ruby selection for a workspace and resolve it."""
    _configure_logging(log_level)
    if not ruby_path.strip():
        raise typer.BadParameter("Path cannot be empty", param_hint="RUBY_PATH")

    workspace = WorkspaceFolder.from_path(folder) if folder else None
    try:
        manager = _build_manager(settings, state, DEFAULT_RUBY_EXECUTABLE)
        asyncio.run(_select(manager, ruby_path, workspace))
    except RubyEnvironmentsError as e:
        logger.error(f"{e}")
        raise typer.Exit(code=1) from e
    context = WorkspaceContext.from_(workspace)
    selected = manager.environments[context.key].manual_path
    typer.echo(f"Ruby executable path updated to {selected}")
    _report(manager, json_output=False)


@app.command()
def version() -> None:
    """Print the installed ruby-environments version."""
    typer.echo(f"ruby-environments {PACKAGE_VERSION}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

"""Resolve per-workspace Ruby environments the way a login shell sets them up."""

from ruby_environments.events import EventEmitter, RubyChangeEvent, Subscription
from ruby_environments.manager import RubyEnvironmentManager
from ruby_environments.models import (
    UNRESOLVED,
    EnvironmentMap,
    JitType,
    ManagerIdentifier,
    OptionalRubyDefinition,
    ResolvedRuby,
    ResolutionState,
    RubyDefinition,
    RubyError,
    UnresolvedRuby,
)
from ruby_environments.workspace_context import WorkspaceContext, WorkspaceFolder

__all__ = [
    "UNRESOLVED",
    "EnvironmentMap",
    "EventEmitter",
    "JitType",
    "ManagerIdentifier",
    "OptionalRubyDefinition",
    "ResolutionState",
    "ResolvedRuby",
    "RubyChangeEvent",
    "RubyDefinition",
    "RubyEnvironmentManager",
    "RubyError",
    "Subscription",
    "UnresolvedRuby",
    "WorkspaceContext",
    "WorkspaceFolder",
]

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import ClassVar, Union


class JitType(str, enum.Enum):
    """JIT compilers a Ruby build can report."""

    YJIT = "YJIT"
    ZJIT = "ZJIT"


class ManagerIdentifier(str, enum.Enum):
    """Identifiers for supported Ruby version managers."""

    ASDF = "asdf"
    AUTO = "auto"
    CHRUBY = "chruby"
    RBENV = "rbenv"
    RVM = "rvm"
    SHADOWENV = "shadowenv"
    MISE = "mise"
    RUBY_INSTALLER = "rubyInstaller"
    NONE = "none"
    CUSTOM = "custom"
    CONFIGURED = "configured"


class EnvironmentMap(Mapping[str, str]):
    """Read-only copy of an activated environment that still pickles and copies."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"


class ResolutionState(str, enum.Enum):
    UNRESOLVED = "unresolved"
    ERROR = "error"
    SUCCESS = "success"


@dataclass(frozen=True)
class UnresolvedRuby:
    """No probe has run, or no executable is configured."""

    state: ClassVar[ResolutionState] = ResolutionState.UNRESOLVED
    error: ClassVar[bool] = False


@dataclass(frozen=True)
class RubyError:
    """A probe was attempted and failed."""

    state: ClassVar[ResolutionState] = ResolutionState.ERROR
    error: ClassVar[bool] = True

    reason: str = field(default="", compare=False)


@dataclass(frozen=True)
class ResolvedRuby:
    """A successfully activated Ruby environment."""

    state: ClassVar[ResolutionState] = ResolutionState.SUCCESS
    error: ClassVar[bool] = False

    ruby_version: str
    available_jits: frozenset[JitType] = frozenset()
    env: Mapping[str, str] = field(default_factory=dict)
    gem_path: tuple[str, ...] = ()
    version_manager: ManagerIdentifier = ManagerIdentifier.CONFIGURED

    def __post_init__(self) -> None:
        # copies keep callers from mutating a published definition
        object.__setattr__(self, "available_jits", frozenset(self.available_jits))
        object.__setattr__(self, "env", EnvironmentMap(self.env))
        object.__setattr__(self, "gem_path", tuple(self.gem_path))

    def __hash__(self) -> int:
        return hash(
            (
                self.ruby_version,
                self.available_jits,
                self.env,
                self.gem_path,
                self.version_manager,
            )
        )

    @classmethod
    def from_parts(
        cls,
        *,
        ruby_version: str,
        available_jits: Iterable[JitType],
        env: Mapping[str, str],
        gem_path: Iterable[str],
        version_manager: ManagerIdentifier = ManagerIdentifier.CONFIGURED,
    ) -> "ResolvedRuby":
        return cls(
            ruby_version=ruby_version,
            available_jits=frozenset(available_jits),
            env={str(k): str(v) for k, v in env.items()},
            gem_path=tuple(gem_path),
            version_manager=version_manager,
        )


RubyDefinition = Union[RubyError, ResolvedRuby]
OptionalRubyDefinition = Union[UnresolvedRuby, RubyError, ResolvedRuby]

UNRESOLVED = UnresolvedRuby()

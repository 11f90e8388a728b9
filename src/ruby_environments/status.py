from __future__ import annotations

import enum
from typing import NamedTuple

from ruby_environments.models import OptionalRubyDefinition, ResolvedRuby, RubyError


class Severity(str, enum.Enum):
    INFORMATION = "information"
    WARNING = "warning"
    ERROR = "error"


class StatusText(NamedTuple):
    text: str
    detail: str
    severity: Severity


def describe_status(ruby: OptionalRubyDefinition) -> StatusText:
    """Render a definition the way the language status item shows it."""
    if isinstance(ruby, RubyError):
        return StatusText(
            "Ruby: Error", "Error detecting Ruby environment", Severity.ERROR
        )
    if isinstance(ruby, ResolvedRuby):
        version = ruby.ruby_version or "unknown"
        jits = sorted(jit.value for jit in ruby.available_jits)
        jit_status = f" ({', '.join(jits)})" if jits else ""
        return StatusText(
            f"Ruby {version}{jit_status}",
            f"Gem paths: {', '.join(ruby.gem_path)}",
            Severity.INFORMATION,
        )
    return StatusText(
        "Ruby: Not detected", "No Ruby environment detected", Severity.WARNING
    )

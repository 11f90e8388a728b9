from __future__ import annotations

from ruby_environments.models import UNRESOLVED, JitType, ResolvedRuby, RubyError
from ruby_environments.status import Severity, describe_status


def test_status_for_unresolved() -> None:
    status = describe_status(UNRESOLVED)

    assert status.text == "Ruby: Not detected"
    assert status.severity is Severity.WARNING


def test_status_for_error() -> None:
    status = describe_status(RubyError(reason="exit 127"))

    assert status.text == "Ruby: Error"
    assert status.severity is Severity.ERROR


def test_status_lists_jits_in_stable_order() -> None:
    ruby = ResolvedRuby(
        ruby_version="3.5.0",
        available_jits=frozenset({JitType.ZJIT, JitType.YJIT}),
        gem_path=("/gems",),
    )

    status = describe_status(ruby)

    assert status.text == "Ruby 3.5.0 (YJIT, ZJIT)"
    assert status.detail == "Gem paths: /gems"
    assert status.severity is Severity.INFORMATION


def test_status_without_version_or_jits() -> None:
    assert describe_status(ResolvedRuby(ruby_version="")).text == "Ruby unknown"

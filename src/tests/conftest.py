from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from ruby_environments.activation_codec import encode_activation_payload
from ruby_environments.models import JitType
from ruby_environments.probe import ProbeOutput
from ruby_environments.workspace_context import WorkspaceContext


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="run slow tests that need a real ruby executable",
    )
    parser.addoption(
        "--only-slow",
        action="store_true",
        default=False,
        help="run only tests marked as slow",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: marks tests as slow")


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    only_slow = bool(config.getoption("--only-slow"))
    run_slow = bool(config.getoption("--slow")) or only_slow

    if only_slow:
        selected: list[pytest.Item] = []
        deselected: list[pytest.Item] = []
        for item in items:
            if "slow" in item.keywords:
                selected.append(item)
            else:
                deselected.append(item)

        if deselected:
            config.hook.pytest_deselected(items=deselected)
        items[:] = selected

    if run_slow:
        return

    skip_slow = pytest.mark.skip(reason="need --slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class FakeProbe:
    """Probe runner returning canned stderr (or raising) per executable."""

    def __init__(self) -> None:
        self.results: dict[str, object] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, Path, float | None]] = []

    async def run(
        self, executable: str, cwd: Path, timeout: float | None = None
    ) -> ProbeOutput:
        self.calls.append((executable, cwd, timeout))
        gate = self.gates.get(executable)
        if gate is not None:
            await gate.wait()
        result = self.results.get(executable, "")
        if isinstance(result, BaseException):
            raise result
        return ProbeOutput(stdout="", stderr=str(result))


def activation_output(
    version: str = "3.3.0",
    gem_path: tuple[str, ...] = ("/a", "/b"),
    jits: tuple[JitType, ...] = (JitType.YJIT,),
    env: dict[str, str] | None = None,
) -> str:
    frame = encode_activation_payload(
        version, gem_path, jits, env if env is not None else {"PATH": "/usr/bin"}
    )
    return f"warning: noise before\n{frame}\ntrailing noise"


@pytest.fixture
def fake_probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture(autouse=True)
def _reset_default_context(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(WorkspaceContext, "_default", None)


@pytest.fixture
def make_output():
    return activation_output

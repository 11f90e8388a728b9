from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from ruby_environments import cli
from ruby_environments.exceptions import ProbeInvocationError
from ruby_environments.probe import ProbeInvoker, ProbeOutput
from ruby_environments.workspace_context import WorkspaceContext, WorkspaceFolder


def _run_main(monkeypatch: pytest.MonkeyPatch, args: list[str]) -> int:
    monkeypatch.setattr(sys, "argv", ["ruby-environments", *args])
    try:
        cli.main()
    except SystemExit as exc:
        code = exc.code
        if isinstance(code, int):
            return code
        return 1
    return 0


@pytest.fixture
def probed(monkeypatch: pytest.MonkeyPatch, make_output) -> list[str]:
    """Replace the real probe; executables named 'broken' fail."""
    executables: list[str] = []

    async def _run(
        self: ProbeInvoker, executable: str, cwd: Path, timeout: float | None = None
    ) -> ProbeOutput:
        executables.append(executable)
        if executable == "broken":
            raise ProbeInvocationError("exit 1", returncode=1)
        return ProbeOutput(stdout="", stderr=make_output())

    monkeypatch.setattr(ProbeInvoker, "run", _run)
    return executables


def test_cli_help_shows_commands(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    code = _run_main(monkeypatch, ["--help"])
    output = capsys.readouterr()

    assert code == 0
    assert "activate" in output.out
    assert "select" in output.out


def test_activate_help_shows_core_options(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    code = _run_main(monkeypatch, ["activate", "--help"])
    help_text = capsys.readouterr().out

    assert code == 0
    for option in ("--settings", "--state", "--ruby", "--log-level", "--json"):
        assert option in help_text


def test_activate_prints_status_per_workspace(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    probed: list[str],
) -> None:
    app_dir = tmp_path / "app"
    app_dir.mkdir()

    code = _run_main(
        monkeypatch,
        ["activate", str(app_dir), "--state", str(tmp_path / "state.json")],
    )

    assert code == 0
    assert "app: Ruby 3.3.0 (YJIT)" in capsys.readouterr().out
    assert probed == ["ruby"]


def test_activate_json_output(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    probed: list[str],
) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text(
        '{"rubyEnvironments.rubyExecutablePath": "ruby3.3", }', encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)

    code = _run_main(
        monkeypatch,
        [
            "activate",
            "--settings",
            str(settings_path),
            "--state",
            str(tmp_path / "state.json"),
            "--json",
        ],
    )

    documents = json.loads(capsys.readouterr().out)
    assert code == 0
    assert probed == ["ruby3.3"]
    assert documents == [
        {
            "workspace": "default",
            "path": str(Path.cwd()),
            "state": "success",
            "rubyVersion": "3.3.0",
            "availableJITs": ["YJIT"],
            "gemPath": ["/a", "/b"],
            "versionManager": "configured",
            "env": {"PATH": "/usr/bin"},
        }
    ]


def test_activate_exits_with_error_when_probe_fails(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    probed: list[str],
) -> None:
    code = _run_main(
        monkeypatch,
        [
            "activate",
            "--ruby",
            "broken",
            "--state",
            str(tmp_path / "state.json"),
        ],
    )

    assert code == 1
    assert "default: Ruby: Error" in capsys.readouterr().out


def test_activate_rejects_invalid_log_level(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    code = _run_main(monkeypatch, ["activate", "--log-level", "loud"])
    output = capsys.readouterr()

    assert code == 2
    assert "Invalid log level" in f"{output.out}\n{output.err}"


def test_activate_reports_broken_settings_file(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    import logging

    settings_path = tmp_path / "settings.json"
    settings_path.write_text("{broken", encoding="utf-8")

    with caplog.at_level(logging.ERROR):
        code = _run_main(monkeypatch, ["activate", "--settings", str(settings_path)])

    assert code == 1
    assert any("settings" in record.message.lower() for record in caplog.records)


def test_select_persists_manual_path(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    probed: list[str],
) -> None:
    app_dir = tmp_path / "app"
    app_dir.mkdir()
    state_path = tmp_path / "state.json"

    code = _run_main(
        monkeypatch,
        ["select", "/opt/ruby/bin/ruby", str(app_dir), "--state", str(state_path)],
    )

    key = WorkspaceContext.from_workspace_folder(
        WorkspaceFolder.from_path(app_dir)
    ).storage_key()
    assert code == 0
    assert json.loads(state_path.read_text()) == {key: "/opt/ruby/bin/ruby"}
    assert probed == ["ruby", "/opt/ruby/bin/ruby"]
    output = capsys.readouterr().out
    assert "Ruby executable path updated to /opt/ruby/bin/ruby" in output


def test_select_stores_trimmed_path_through_manager(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    probed: list[str],
) -> None:
    state_path = tmp_path / "state.json"
    monkeypatch.chdir(tmp_path)

    code = _run_main(
        monkeypatch, ["select", "  /opt/ruby/bin/ruby ", "--state", str(state_path)]
    )

    assert code == 0
    assert json.loads(state_path.read_text()) == {"rubyPath": "/opt/ruby/bin/ruby"}
    assert probed == ["ruby", "/opt/ruby/bin/ruby"]


def test_select_rejects_blank_path(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    code = _run_main(
        monkeypatch, ["select", "  ", "--state", str(tmp_path / "state.json")]
    )

    assert code == 2
    assert not (tmp_path / "state.json").exists()


def test_version_command(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    code = _run_main(monkeypatch, ["version"])

    assert code == 0
    assert capsys.readouterr().out.startswith("ruby-environments ")


def test_main_module_entrypoint(monkeypatch: pytest.MonkeyPatch) -> None:
    import runpy

    called: list[bool] = []
    monkeypatch.setattr(cli, "main", lambda: called.append(True))
    runpy.run_module("ruby_environments", run_name="__main__", alter_sys=False)
    assert called == [True]

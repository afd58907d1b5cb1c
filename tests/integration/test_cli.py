from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from escript_builder import cli as cli_mod
from escript_builder.cli import app



def test_help_prints_usage_without_touching_files(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(app, ["--help"])

    assert result.exit_code == 0, result.output
    assert "force=1" in result.output
    assert "debug" in result.output
    assert list(tmp_path.iterdir()) == []


@pytest.mark.timeout(20)
def test_cli_bootstrap(project: Path, monkeypatch, fake_compiler) -> None:
    compiler = fake_compiler()
    monkeypatch.setattr(cli_mod, "make_compiler", lambda: compiler)

    result = CliRunner().invoke(
        app, ["--root", str(project), "--app", "enc", "debug", "force=1", "jobs=4"]
    )

    assert result.exit_code == 0, result.output
    assert "Congratulations" in result.output
    assert (project / "enc").exists()
    [(_, options)] = compiler.calls
    assert options.debug_info


@pytest.mark.timeout(20)
def test_cli_defaults_app_to_root_name(project: Path, monkeypatch, fake_compiler) -> None:
    monkeypatch.setattr(cli_mod, "make_compiler", fake_compiler)

    result = CliRunner().invoke(app, ["--root", str(project)])

    assert result.exit_code == 0, result.output
    assert (project / "enc").exists()


def test_cli_reports_fatal_errors(project: Path, monkeypatch, fake_compiler) -> None:
    monkeypatch.setattr(cli_mod, "make_compiler", lambda: fake_compiler(ok=False))

    result = CliRunner().invoke(app, ["--root", str(project), "--app", "enc"])

    assert result.exit_code == 1
    assert "syntax error" in result.output
    assert not (project / "enc").exists()

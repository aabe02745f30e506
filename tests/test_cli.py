from __future__ import annotations

from unittest.mock import patch

from typer.testing import CliRunner

from editor_agent.cli import app

from fakes import FakeModel

runner = CliRunner()

SOURCE = "def hello(name: str) -> str:\n    \n"


def _fake_service(chunks):
    return patch("editor_agent.services.llm_service.LLMService", lambda *args, **kwargs: FakeModel(chunks=chunks))


def test_definitions(tmp_path):
    path = tmp_path / "m.py"
    path.write_text("def hello(name: str) -> str:\n    return name\n")
    with _fake_service([]):
        result = runner.invoke(app, ["definitions", "-f", str(path)])
    assert result.exit_code == 0
    assert "def hello(name: str) -> str" in result.output


def test_complete_writes_file(tmp_path):
    path = tmp_path / "m.py"
    path.write_text(SOURCE)
    with _fake_service(["return ", "name"]):
        result = runner.invoke(app, ["complete", "-f", str(path), "--line", "1", "--character", "4"])
    assert result.exit_code == 0
    assert path.read_text() == "def hello(name: str) -> str:\n    return name\n"
    assert "Written:" in result.output


def test_complete_dry_run_leaves_file(tmp_path):
    path = tmp_path / "m.py"
    path.write_text(SOURCE)
    with _fake_service(["return name"]):
        result = runner.invoke(app, ["complete", "-f", str(path), "-l", "1", "-c", "4", "--dry-run"])
    assert result.exit_code == 0
    assert path.read_text() == SOURCE
    assert "Dry run mode" in result.output


def test_fix_without_problems_is_cancelled(tmp_path):
    path = tmp_path / "m.py"
    path.write_text("x = 1\n")
    with _fake_service(["unused"]):
        result = runner.invoke(app, ["fix", "-f", str(path)])
    assert result.exit_code == 0
    assert "Operation was cancelled" in result.output
    assert path.read_text() == "x = 1\n"


def test_missing_file_fails(tmp_path):
    with _fake_service([]):
        result = runner.invoke(app, ["complete", "-f", str(tmp_path / "absent.py")])
    assert result.exit_code == 1

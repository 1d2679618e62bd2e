from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from conftest import PatchWorkspace, requires_patch
from patchtx.cli import app

runner = CliRunner()


def _write_config(path: Path, program: Path | str) -> Path:
    path.write_text(f"patch:\n  program: '{program}'\n", encoding="utf-8")
    return path


def _envelope(output: str) -> dict:
    return json.loads(output[output.index("{") :])


def test_check_prints_envelope_with_undo_action(workspace: PatchWorkspace, fake_program, tmp_path: Path) -> None:
    config = _write_config(tmp_path / "patchtx.yaml", fake_program("exit 1\n"))

    result = runner.invoke(app, ["check", str(workspace.target), str(workspace.patch), "-c", str(config)])

    assert result.exit_code == 0, result.output
    payload = _envelope(result.output)
    assert payload["status"] == 200
    assert payload["metadata"]["undo_actions"] == [
        ["patch", {"file": str(workspace.target), "patch": str(workspace.patch), "reverse": True}]
    ]


def test_check_reverse_alias(workspace: PatchWorkspace, fake_program, tmp_path: Path) -> None:
    config = _write_config(tmp_path / "patchtx.yaml", fake_program("exit 1\n"))

    result = runner.invoke(app, ["check", "-R", str(workspace.target), str(workspace.patch), "-c", str(config)])

    assert result.exit_code == 0, result.output
    assert _envelope(result.output)["metadata"]["undo_actions"][0][1]["reverse"] is False


def test_unfixable_exits_non_zero(workspace: PatchWorkspace, tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["fix", str(workspace.root / "missing.txt"), str(workspace.patch), "-c", str(tmp_path / "none.yaml")],
    )

    assert result.exit_code == 1
    assert _envelope(result.output)["status"] == 412


def test_invalid_config_exits_non_zero(workspace: PatchWorkspace, tmp_path: Path) -> None:
    config = tmp_path / "patchtx.yaml"
    config.write_text("patch: [broken\n", encoding="utf-8")

    result = runner.invoke(app, ["check", str(workspace.target), str(workspace.patch), "-c", str(config)])

    assert result.exit_code == 1
    assert "Failed to parse config" in result.output


def test_deps_reports_missing_program(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "patchtx.yaml", tmp_path / "no-patch-here")

    result = runner.invoke(app, ["deps", "-c", str(config)])

    assert result.exit_code == 1
    assert "was not found on PATH" in result.output


@requires_patch
def test_apply_then_undo(workspace: PatchWorkspace, tmp_path: Path) -> None:
    args = [str(workspace.target), str(workspace.patch), "-c", str(tmp_path / "none.yaml")]

    applied = runner.invoke(app, ["apply", *args])
    assert applied.exit_code == 0, applied.output
    assert workspace.target.read_text(encoding="utf-8") == "bar\n"

    repeated = runner.invoke(app, ["apply", *args])
    assert repeated.exit_code == 0, repeated.output
    assert _envelope(repeated.output)["status"] == 304

    undone = runner.invoke(app, ["undo", *args])
    assert undone.exit_code == 0, undone.output
    assert workspace.target.read_text(encoding="utf-8") == "foo\n"
    assert workspace.leftovers() == []

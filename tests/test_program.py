from __future__ import annotations

from pathlib import Path

import pytest

from patchtx.tools.program import PatchError, PatchProgram, ProcessOutcome


def test_check_command_is_a_silent_forced_dry_run() -> None:
    program = PatchProgram(executable="gpatch")

    command = program.check_command(Path("a.txt"), Path("p.diff"), reverse=True)

    assert command == ("gpatch", "--dry-run", "-s", "-f", "-r", "-", "-R", "a.txt", "-i", "p.diff")
    assert "-R" not in program.check_command(Path("a.txt"), Path("p.diff"), reverse=False)


def test_apply_command_writes_to_separate_output() -> None:
    command = PatchProgram().apply_command(Path("a.txt"), Path("p.diff"), Path(".tmp1"), reverse=False)

    assert command[0] == "patch"
    assert "--dry-run" not in command
    assert "--no-backup-if-mismatch" in command
    assert command[-5:] == ("a.txt", "-i", "p.diff", "-o", ".tmp1")


def test_run_captures_output_and_status(tmp_path: Path, fake_program) -> None:
    program = PatchProgram(executable=str(fake_program("echo out\necho err >&2\nexit 1\n")))

    outcome = program.run([program.executable])

    assert outcome.returncode == 1
    assert not outcome.ok
    assert outcome.stdout == "out\n"
    assert outcome.stderr == "err\n"
    assert outcome.explain() == "exited with value 1: err"


def test_run_reports_spawn_failure_without_raising(tmp_path: Path) -> None:
    outcome = PatchProgram().run([str(tmp_path / "absent")])

    assert outcome.returncode is None
    assert outcome.explain().startswith("failed to execute: ")


def test_explain_signals_and_quiet_exits() -> None:
    killed = ProcessOutcome(command=("patch",), returncode=-9)
    quiet = ProcessOutcome(command=("patch",), returncode=2, stdout="patch: **** garbage\n")

    assert killed.signalled
    assert killed.explain() == "died with signal 9 (SIGKILL)"
    assert quiet.explain() == "exited with value 2: patch: **** garbage"
    assert ProcessOutcome(command=(), returncode=3).explain() == "exited with value 3"


def test_locate_missing_program(tmp_path: Path) -> None:
    with pytest.raises(PatchError) as excinfo:
        PatchProgram(executable=str(tmp_path / "nope")).locate()

    assert excinfo.value.details == {"program": str(tmp_path / "nope")}


def test_locate_existing_program(fake_program) -> None:
    script = fake_program("exit 0\n")

    assert PatchProgram(executable=str(script)).locate() == script

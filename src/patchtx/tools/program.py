"""Thin wrapper around the external ``patch`` program."""

from __future__ import annotations

import shutil
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence, Tuple

from ..config import DEFAULT_PROGRAM


class PatchError(RuntimeError):
    """Raised when a patch cannot be checked or applied."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class PreconditionError(PatchError):
    """Raised when the target or patch file can never be patched as requested."""


@dataclass(slots=True)
class ProcessOutcome:
    """Exit status and captured output of one ``patch`` invocation."""

    command: Tuple[str, ...]
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def signalled(self) -> bool:
        return self.returncode is not None and self.returncode < 0

    def explain(self) -> str:
        """Describe how the child process ended, including its diagnostics."""
        if self.returncode is None:
            return f"failed to execute: {self.error or 'unknown error'}"
        if self.returncode < 0:
            number = -self.returncode
            try:
                name = signal.Signals(number).name
            except ValueError:
                name = "unknown signal"
            summary = f"died with signal {number} ({name})"
        else:
            summary = f"exited with value {self.returncode}"
        output = self.stderr.strip() or self.stdout.strip()
        if output:
            return f"{summary}: {output}"
        return summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": list(self.command),
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "error": self.error,
        }


@dataclass(slots=True)
class PatchProgram:
    """Build and run ``patch`` command lines against a single target file."""

    executable: str = DEFAULT_PROGRAM

    def check_command(self, target: Path, patch: Path, *, reverse: bool) -> Tuple[str, ...]:
        """Dry-run command checking whether the diff applies in ``reverse`` direction."""
        command = [self.executable, "--dry-run", "-s", "-f", "-r", "-"]
        if reverse:
            command.append("-R")
        command.extend([str(target), "-i", str(patch)])
        return tuple(command)

    def apply_command(self, target: Path, patch: Path, output: Path, *, reverse: bool) -> Tuple[str, ...]:
        """Command writing the patched contents of ``target`` to ``output``."""
        command = [self.executable, "-s", "-f", "-r", "-", "--no-backup-if-mismatch"]
        if reverse:
            command.append("-R")
        command.extend([str(target), "-i", str(patch), "-o", str(output)])
        return tuple(command)

    def check(self, target: Path, patch: Path, *, reverse: bool) -> ProcessOutcome:
        return self.run(self.check_command(target, patch, reverse=reverse))

    def apply(self, target: Path, patch: Path, output: Path, *, reverse: bool) -> ProcessOutcome:
        return self.run(self.apply_command(target, patch, output, reverse=reverse))

    def run(self, command: Sequence[str]) -> ProcessOutcome:
        """Run ``command`` to completion, never raising for a failed child."""
        args = tuple(command)
        try:
            process = subprocess.run(
                args,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=False,
                check=False,
            )
        except OSError as error:
            return ProcessOutcome(command=args, returncode=None, error=str(error))
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        return ProcessOutcome(command=args, returncode=process.returncode, stdout=stdout, stderr=stderr)

    def locate(self) -> Path:
        """Return the resolved executable path or raise ``PatchError``."""
        resolved = shutil.which(self.executable)
        if resolved is None:
            raise PatchError(
                f"Required program {self.executable!r} was not found on PATH",
                details={"program": self.executable},
            )
        return Path(resolved)


__all__ = [
    "DEFAULT_PROGRAM",
    "PatchError",
    "PatchProgram",
    "PreconditionError",
    "ProcessOutcome",
]

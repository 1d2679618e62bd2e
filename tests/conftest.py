from __future__ import annotations

import shutil
import stat
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

requires_patch = pytest.mark.skipif(shutil.which("patch") is None, reason="patch program not installed")

FOO_TO_BAR = textwrap.dedent(
    """\
    --- a.txt
    +++ a.txt
    @@ -1 +1 @@
    -foo
    +bar
    """
)


@dataclass(slots=True)
class PatchWorkspace:
    """Directory holding a target file and a diff that rewrites it."""

    root: Path
    target: Path
    patch: Path

    def leftovers(self) -> list[str]:
        """Names in ``root`` other than the target and patch files."""

        known = {self.target.name, self.patch.name}
        return sorted(entry.name for entry in self.root.iterdir() if entry.name not in known)


@pytest.fixture()
def workspace(tmp_path: Path) -> PatchWorkspace:
    """A directory with ``a.txt`` containing ``foo`` and a diff turning it into ``bar``."""

    root = tmp_path / "work"
    root.mkdir()
    target = root / "a.txt"
    target.write_text("foo\n", encoding="utf-8")
    patch = root / "foo-to-bar.diff"
    patch.write_text(FOO_TO_BAR, encoding="utf-8")
    return PatchWorkspace(root=root, target=target, patch=patch)


@pytest.fixture()
def fake_program(tmp_path: Path) -> Callable[[str], Path]:
    """Factory writing an executable shell script that stands in for ``patch``."""

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    counter = {"value": 0}

    def _make(body: str) -> Path:
        counter["value"] += 1
        script = bin_dir / f"fake-patch-{counter['value']}"
        script.write_text("#!/bin/sh\n" + textwrap.dedent(body), encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


# Writes "bar" to the path following ``-o`` and reports success.
WRITE_BAR_SCRIPT = """\
out=""
while [ "$#" -gt 0 ]; do
    if [ "$1" = "-o" ]; then
        out="$2"
    fi
    shift
done
if [ -n "$out" ]; then
    printf 'bar\\n' > "$out"
fi
exit 0
"""

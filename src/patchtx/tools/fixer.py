"""Apply a patch to a file atomically.

``patch`` can leave a half-patched file behind when it fails part way through
a multi-hunk diff, so it never writes to the target directly.  Output goes to
a fresh file in the target's directory and replaces the target with a single
rename once the program has succeeded.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..config import PatchSettings
from ..schema import PatchArguments
from ..telemetry import emit_patch_event
from .program import PatchError, PatchProgram
from .state import ensure_preconditions

LOGGER = logging.getLogger(__name__)


@contextmanager
def _staged_output(target: Path, *, prefix: str) -> Iterator[Path]:
    """Yield an empty file next to ``target``; remove it unless it was consumed."""
    try:
        handle, name = tempfile.mkstemp(prefix=prefix, suffix=".tmp", dir=target.parent)
    except OSError as error:
        raise PatchError(
            f"Can't create temporary file in {target.parent}: {error}",
            details={"directory": str(target.parent), "error": str(error)},
        ) from error
    os.close(handle)
    staged = Path(name)
    try:
        yield staged
    finally:
        staged.unlink(missing_ok=True)


def fix_state(
    arguments: PatchArguments,
    *,
    program: PatchProgram,
    settings: PatchSettings | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """Patch ``arguments.file`` in place, or raise leaving it untouched."""
    log = logger or LOGGER
    options = settings or PatchSettings()

    ensure_preconditions(arguments)
    target = arguments.target_path
    log.info("Patching file %s with %s ...", arguments.file, arguments.patch)

    with _staged_output(target, prefix=options.temp_prefix) as staged:
        outcome = program.apply(target, arguments.patch_path, staged, reverse=arguments.reverse)
        if not outcome.ok:
            emit_patch_event("patch_apply_failed", file=arguments.file, patch=arguments.patch, process=outcome.to_dict())
            raise PatchError(f"Can't patch: {outcome.explain()}", details=outcome.to_dict())

        try:
            if options.preserve_mode:
                os.chmod(staged, stat.S_IMODE(target.stat().st_mode))
            os.replace(staged, target)
        except OSError as error:
            emit_patch_event("patch_apply_failed", file=arguments.file, patch=arguments.patch, error=str(error))
            raise PatchError(
                f"Can't rename {staged} -> {target}: {error}",
                details={"source": str(staged), "destination": str(target), "error": str(error)},
            ) from error

    emit_patch_event(
        "patch_apply_succeeded",
        file=arguments.file,
        patch=arguments.patch,
        reverse=arguments.reverse,
    )


__all__ = ["fix_state"]

"""Classify a target file as already patched, patchable, or unfixable.

Whether a patch has been applied is decided by asking the ``patch`` program
itself: a dry run of the *opposite* direction succeeds only when the requested
direction is already in effect.  Exit status 1 means the opposite direction
does not apply, so the requested one still has to be applied.  Every other
outcome (exit status above 1, a signal, a failure to spawn) leaves the state
undetermined and is raised as ``PatchError`` rather than guessed at.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Tuple

from ..schema import PatchArguments, PatchState, UndoAction
from ..telemetry import emit_patch_event
from .program import PatchError, PatchProgram, PreconditionError

LOGGER = logging.getLogger(__name__)

_NOT_APPLICABLE_EXIT = 1


@dataclass(slots=True)
class StateCheck:
    """Result of one state check; never cached between calls."""

    state: PatchState
    message: str
    undo_actions: Tuple[UndoAction, ...] = ()

    @property
    def status(self) -> HTTPStatus:
        if self.state is PatchState.FIXED:
            return HTTPStatus.NOT_MODIFIED
        if self.state is PatchState.FIXABLE:
            return HTTPStatus.OK
        return HTTPStatus.PRECONDITION_FAILED


def ensure_preconditions(arguments: PatchArguments) -> None:
    """Raise ``PreconditionError`` when the target or patch file is unusable.

    The target must be a regular file and not a symlink; a dangling symlink
    counts as missing.  The patch file may be a symlink as long as it resolves
    to a regular file.  A path that cannot be inspected at all (for example an
    unreadable parent directory) raises ``PatchError``.
    """
    try:
        _check_paths(arguments)
    except OSError as error:
        raise PatchError(
            f"Can't inspect {error.filename or arguments.file}: {error}",
            details={"file": arguments.file, "patch": arguments.patch, "error": str(error)},
        ) from error


def _check_paths(arguments: PatchArguments) -> None:
    target = arguments.target_path
    if not target.exists():
        raise PreconditionError(f"File {arguments.file} does not exist", details={"path": arguments.file})
    if target.is_symlink() or not target.is_file():
        raise PreconditionError(f"File {arguments.file} is not a regular file", details={"path": arguments.file})

    patch = arguments.patch_path
    if not patch.exists():
        raise PreconditionError(f"Patch {arguments.patch} does not exist", details={"path": arguments.patch})
    if not patch.is_file():
        raise PreconditionError(f"Patch {arguments.patch} is not a regular file", details={"path": arguments.patch})


def check_state(
    arguments: PatchArguments,
    *,
    program: PatchProgram,
    logger: logging.Logger | None = None,
    dry_run: bool = False,
) -> StateCheck:
    """Classify ``arguments.file`` without modifying any file."""
    log = logger or LOGGER

    try:
        ensure_preconditions(arguments)
    except PreconditionError as error:
        log.debug("Patch state unfixable: %s", error)
        emit_patch_event("patch_state_checked", state=PatchState.UNFIXABLE.value, reason=str(error))
        return StateCheck(state=PatchState.UNFIXABLE, message=str(error))

    outcome = program.check(arguments.target_path, arguments.patch_path, reverse=not arguments.reverse)

    if outcome.ok:
        emit_patch_event(
            "patch_state_checked",
            state=PatchState.FIXED.value,
            file=arguments.file,
            patch=arguments.patch,
            reverse=arguments.reverse,
        )
        return StateCheck(
            state=PatchState.FIXED,
            message=f"Patch {arguments.patch} already applied to {arguments.file}",
        )

    if outcome.returncode == _NOT_APPLICABLE_EXIT:
        if dry_run:
            log.info("(DRY) Patching file %s with %s ...", arguments.file, arguments.patch)
        emit_patch_event(
            "patch_state_checked",
            state=PatchState.FIXABLE.value,
            file=arguments.file,
            patch=arguments.patch,
            reverse=arguments.reverse,
        )
        return StateCheck(
            state=PatchState.FIXABLE,
            message=f"File {arguments.file} needs to be patched with {arguments.patch}",
            undo_actions=(arguments.undo_action(),),
        )

    emit_patch_event("patch_state_unknown", file=arguments.file, patch=arguments.patch, process=outcome.to_dict())
    raise PatchError(f"Can't patch: {outcome.explain()}", details=outcome.to_dict())


__all__ = ["StateCheck", "check_state", "ensure_preconditions"]

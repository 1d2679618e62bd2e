"""The ``patch`` action: patch a file, with undo support.

On do, the file is patched with the supplied diff.  On undo, the reverse of
the diff is applied.  The action follows the transaction protocol: the engine
calls it with ``tx_action=check_state`` to learn whether work is needed (and
how to undo it), then with ``tx_action=fix_state`` to perform the change.
"""

from __future__ import annotations

import logging
import os
from http import HTTPStatus
from typing import Any, Mapping

from pydantic import ValidationError

from .config import PatchSettings
from .envelope import Envelope
from .schema import ACTION_NAME, PatchArguments, TxAction, UndoAction
from .tools.fixer import fix_state
from .tools.program import PatchError, PatchProgram, PreconditionError
from .tools.state import check_state

LOGGER = logging.getLogger(__name__)

ACTION_METADATA: dict[str, Any] = {
    "v": 1.1,
    "name": ACTION_NAME,
    "summary": "Patch a file, with undo support",
    "description": (
        "On do, will patch file with the supplied patch. On undo, will apply the reverse "
        "of the patch.\n\n"
        "Symlinks are not permitted for the target file (the patch file may be one). "
        "Patching is done with the `patch` program.\n\n"
        "Unfixable state: file does not exist or is not a regular file (directory and "
        "symlink included), patch file does not exist or is not a regular file.\n\n"
        "Fixed state: file exists, patch file exists, and patch has been applied.\n\n"
        "Fixable state: file exists, patch file exists, and patch has not been applied."
    ),
    "args": {
        "file": {"summary": "Path to file to be patched", "schema": "str*", "req": True, "pos": 0},
        "patch": {
            "summary": "Path to patch file",
            "description": "Patch can be in unified or context format, it will be autodetected.",
            "schema": "str*",
            "req": True,
            "pos": 1,
        },
        "reverse": {
            "summary": "Whether to apply reverse of patch",
            "schema": ["bool", {"default": False}],
            "cmdline_aliases": {"R": {}},
        },
    },
    "features": {"tx": {"v": 2}, "idempotent": True},
    "deps": {"prog": "patch"},
}


def _as_text(value: Any) -> Any:
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    return value


def _build_arguments(file: Any, patch: Any, reverse: Any) -> PatchArguments | Envelope:
    if file is None:
        return Envelope(HTTPStatus.BAD_REQUEST, "Please specify file")
    if patch is None:
        return Envelope(HTTPStatus.BAD_REQUEST, "Please specify patch")
    try:
        return PatchArguments(
            file=_as_text(file),
            patch=_as_text(patch),
            reverse=False if reverse is None else reverse,
        )
    except ValidationError as error:
        first = error.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "arguments"
        return Envelope(HTTPStatus.BAD_REQUEST, f"Invalid argument {location}: {first.get('msg', 'invalid value')}")


def _error_envelope(error: PatchError) -> Envelope:
    status = HTTPStatus.PRECONDITION_FAILED if isinstance(error, PreconditionError) else HTTPStatus.INTERNAL_SERVER_ERROR
    metadata = {"details": dict(error.details)} if error.details else None
    return Envelope(status, str(error), metadata=metadata)


def run_action(
    arguments: PatchArguments,
    tx_action: TxAction,
    *,
    dry_run: bool = False,
    settings: PatchSettings | None = None,
    logger: logging.Logger | None = None,
) -> Envelope:
    """Run one transaction phase for already-validated ``arguments``."""
    options = settings or PatchSettings()
    program = PatchProgram(executable=options.program)

    try:
        if tx_action is TxAction.CHECK_STATE:
            checked = check_state(arguments, program=program, logger=logger, dry_run=dry_run)
            metadata = {"undo_actions": list(checked.undo_actions)} if checked.undo_actions else None
            return Envelope(checked.status, checked.message, metadata=metadata)
        fix_state(arguments, program=program, settings=options, logger=logger)
    except PatchError as error:
        (logger or LOGGER).debug("Patch action failed: %s", error)
        return _error_envelope(error)
    return Envelope(HTTPStatus.OK, "OK")


def patch(
    file: Any = None,
    patch: Any = None,
    reverse: Any = False,
    *,
    tx_action: TxAction | str | None = None,
    dry_run: bool = False,
    settings: PatchSettings | None = None,
    logger: logging.Logger | None = None,
) -> Envelope:
    """Patch ``file`` with the diff at ``patch``; idempotent and undoable.

    ``tx_action`` selects the transaction phase.  A ``check_state`` call that
    finds work to do answers 200 with ``metadata["undo_actions"]`` holding a
    single ``("patch", {file, patch, reverse})`` tuple whose ``reverse`` is
    inverted; a call that finds the patch already applied answers 304.
    """
    arguments = _build_arguments(file, patch, reverse)
    if isinstance(arguments, Envelope):
        return arguments
    try:
        action = TxAction(tx_action)
    except ValueError:
        return Envelope(HTTPStatus.BAD_REQUEST, "Invalid -tx_action")
    return run_action(arguments, action, dry_run=dry_run, settings=settings, logger=logger)


def call_action(
    action: UndoAction,
    *,
    tx_action: TxAction | str,
    dry_run: bool = False,
    settings: PatchSettings | None = None,
    logger: logging.Logger | None = None,
) -> Envelope:
    """Invoke an action tuple such as one returned in ``undo_actions``."""
    name, args = action
    if name != ACTION_NAME:
        return Envelope(HTTPStatus.BAD_REQUEST, f"Unknown action {name!r}")
    if not isinstance(args, Mapping):
        return Envelope(HTTPStatus.BAD_REQUEST, f"Arguments of action {name!r} must be a mapping")
    return patch(
        args.get("file"),
        args.get("patch"),
        args.get("reverse", False),
        tx_action=tx_action,
        dry_run=dry_run,
        settings=settings,
        logger=logger,
    )


def apply_action(
    file: Any = None,
    patch: Any = None,
    reverse: Any = False,
    *,
    dry_run: bool = False,
    settings: PatchSettings | None = None,
    logger: logging.Logger | None = None,
) -> Envelope:
    """Check the state and fix it when needed, outside of a transaction.

    Returns 304 when nothing had to change, otherwise the fix outcome.  A
    successful fix carries the undo actions found by the check.  With
    ``dry_run`` only the check runs.
    """
    arguments = _build_arguments(file, patch, reverse)
    if isinstance(arguments, Envelope):
        return arguments

    checked = run_action(arguments, TxAction.CHECK_STATE, dry_run=dry_run, settings=settings, logger=logger)
    if checked.status != HTTPStatus.OK or dry_run:
        return checked

    fixed = run_action(arguments, TxAction.FIX_STATE, settings=settings, logger=logger)
    if fixed.status != HTTPStatus.OK:
        return fixed
    return Envelope(HTTPStatus.OK, checked.message, metadata=checked.metadata)


def check_dependencies(settings: PatchSettings | None = None) -> str:
    """Return the resolved path of the patch program, raising ``PatchError`` if absent."""
    options = settings or PatchSettings()
    return str(PatchProgram(executable=options.program).locate())


__all__ = [
    "ACTION_METADATA",
    "apply_action",
    "call_action",
    "check_dependencies",
    "patch",
    "run_action",
]

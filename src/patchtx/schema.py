"""Typed arguments and undo descriptors for the patch action."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict

ACTION_NAME = "patch"

UndoAction = Tuple[str, Dict[str, Any]]


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class TxAction(str, Enum):
    """Transaction phases the action can be asked to run."""

    CHECK_STATE = "check_state"
    FIX_STATE = "fix_state"


class PatchState(str, Enum):
    """Classification of a target file relative to a patch."""

    UNFIXABLE = "unfixable"
    FIXED = "fixed"
    FIXABLE = "fixable"


class PatchArguments(RecordModel):
    """Inputs of one patch action: which file, which diff, which direction."""

    file: str
    patch: str
    reverse: bool = False

    @property
    def target_path(self) -> Path:
        return Path(self.file)

    @property
    def patch_path(self) -> Path:
        return Path(self.patch)

    def reversed(self) -> "PatchArguments":
        """Arguments that undo the effect of applying these ones."""
        return self.model_copy(update={"reverse": not self.reverse})

    def undo_action(self) -> UndoAction:
        """Action tuple handed to the transaction engine as the undo step."""
        return (ACTION_NAME, self.reversed().model_dump())


__all__ = [
    "ACTION_NAME",
    "PatchArguments",
    "PatchState",
    "RecordModel",
    "TxAction",
    "UndoAction",
]

"""Tooling helpers used by the patch action."""

from .fixer import fix_state
from .program import PatchError, PatchProgram, PreconditionError, ProcessOutcome
from .state import StateCheck, check_state, ensure_preconditions

__all__ = [
    "PatchError",
    "PatchProgram",
    "PreconditionError",
    "ProcessOutcome",
    "StateCheck",
    "check_state",
    "ensure_preconditions",
    "fix_state",
]

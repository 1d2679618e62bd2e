"""Enveloped results: HTTP-like status, message, optional result and metadata."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Dict, List


@dataclass(slots=True)
class Envelope:
    """Outcome of one action call as reported to the transaction engine."""

    status: int
    message: str
    result: Any = None
    metadata: Dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        """True for success, including "already in the desired state"."""
        return self.status in (HTTPStatus.OK, HTTPStatus.NOT_MODIFIED)

    @property
    def changed(self) -> bool:
        return self.status == HTTPStatus.OK

    @property
    def undo_actions(self) -> list[Any]:
        if not self.metadata:
            return []
        return list(self.metadata.get("undo_actions") or [])

    def to_list(self) -> List[Any]:
        """Four-element ``[status, message, result, metadata]`` wire form."""
        return [int(self.status), self.message, self.result, self.metadata]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": int(self.status),
            "message": self.message,
            "result": self.result,
            "metadata": self.metadata,
        }


__all__ = ["Envelope"]

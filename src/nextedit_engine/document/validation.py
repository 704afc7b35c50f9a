"""Validation helpers for positions and offsets supplied by editor hosts."""

from __future__ import annotations

from typing import Optional, Tuple


class DocumentValidationError(ValueError):
    """Raised when a host reports a cursor or offset outside the document."""

    def __init__(
        self, message: str, *, position: Optional[Tuple[int, int] | int] = None
    ) -> None:
        super().__init__(message)
        self.position = position


def ensure_position(text: str, position: Tuple[int, int]) -> Tuple[int, int]:
    line, column = position
    lines = text.split("\n")
    if line < 0 or line >= len(lines):
        raise DocumentValidationError("Line out of range", position=position)
    if column < 0 or column > len(lines[line]):
        raise DocumentValidationError("Column out of range", position=position)
    return position


def ensure_offset(text: str, offset: int) -> int:
    if offset < 0 or offset > len(text):
        raise DocumentValidationError("Offset out of range", position=offset)
    return offset


__all__ = ["DocumentValidationError", "ensure_offset", "ensure_position"]

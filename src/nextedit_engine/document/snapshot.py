"""Immutable document snapshots and content-change events consumed by the engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .text import utf8_byte_offset
from .validation import ensure_offset, ensure_position

Cursor = Tuple[int, int]  # (line, column)


@dataclass(frozen=True, slots=True)
class ContentChange:
    """One discrete edit: ``range_length`` characters at ``range_offset`` replaced by ``text``."""

    range_offset: int
    range_length: int
    text: str

    @property
    def range_end(self) -> int:
        return self.range_offset + self.range_length

    @property
    def delta(self) -> int:
        return len(self.text) - self.range_length

    @property
    def is_noop(self) -> bool:
        return self.range_length == 0 and not self.text

    def apply_to(self, text: str) -> str:
        """Return ``text`` with this change applied; out-of-range spans are clamped."""

        start = min(max(0, self.range_offset), len(text))
        end = min(max(start, self.range_end), len(text))
        return text[:start] + self.text + text[end:]


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    """Read-only view of a document at one ``version``.

    Offsets are indices into ``text``. ``cursor`` is a ``(line, column)`` pair
    and must lie inside the text; use :meth:`with_text` or
    :meth:`with_cursor` to derive follow-up snapshots.
    """

    uri: str
    version: int
    text: str
    cursor: Cursor = (0, 0)
    file_path: str = ""
    language_id: str = "plaintext"

    def __post_init__(self) -> None:
        if not self.file_path:
            object.__setattr__(self, "file_path", self.uri)
        ensure_position(self.text, self.cursor)

    @classmethod
    def at_offset(
        cls, uri: str, version: int, text: str, offset: int, **fields: str
    ) -> "DocumentSnapshot":
        return cls(
            uri=uri,
            version=version,
            text=text,
            cursor=position_at(text, ensure_offset(text, offset)),
            **fields,
        )

    @property
    def cursor_offset(self) -> int:
        return offset_at(self.text, self.cursor)

    @property
    def cursor_byte_offset(self) -> int:
        return utf8_byte_offset(self.text, self.cursor_offset)

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + 1

    def offset_at(self, position: Cursor) -> int:
        ensure_position(self.text, position)
        return offset_at(self.text, position)

    def position_at(self, offset: int) -> Cursor:
        return position_at(self.text, offset)

    def line_text(self, line: int) -> str:
        lines = self.text.split("\n")
        if line < 0 or line >= len(lines):
            return ""
        return lines[line]

    def with_cursor(self, cursor: Cursor) -> "DocumentSnapshot":
        return DocumentSnapshot(
            uri=self.uri,
            version=self.version,
            text=self.text,
            cursor=cursor,
            file_path=self.file_path,
            language_id=self.language_id,
        )

    def with_text(self, text: str, *, cursor_offset: int) -> "DocumentSnapshot":
        """Next version of this document with ``text`` and the cursor at ``cursor_offset``."""

        return DocumentSnapshot(
            uri=self.uri,
            version=self.version + 1,
            text=text,
            cursor=position_at(text, cursor_offset),
            file_path=self.file_path,
            language_id=self.language_id,
        )


def offset_at(text: str, position: Cursor) -> int:
    line, column = position
    offset = 0
    for _ in range(line):
        newline = text.find("\n", offset)
        if newline < 0:
            return len(text)
        offset = newline + 1
    return min(offset + column, len(text))


def position_at(text: str, offset: int) -> Cursor:
    """Clamp ``offset`` into ``text`` and return its ``(line, column)``."""

    offset = min(max(0, offset), len(text))
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return (line, offset - line_start)


__all__ = [
    "ContentChange",
    "Cursor",
    "DocumentSnapshot",
    "offset_at",
    "position_at",
]

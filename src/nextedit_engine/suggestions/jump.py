"""Pending "jump to edit" suggestions and their line-by-line preview."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from nextedit_engine.diff.minimal import ChangedSpan, isolate_change
from nextedit_engine.document.offsets import TrackedOffsets
from nextedit_engine.document.snapshot import ContentChange, DocumentSnapshot, position_at
from nextedit_engine.service.protocol import Candidate

from .models import TextEdit


@dataclass(frozen=True, slots=True)
class JumpPreview:
    """Before/after lines of the target region.

    ``line_diffs[i]`` isolates the changed part of ``original_lines[i]`` against
    ``new_lines[i]`` and is ``None`` when the pair is identical. New lines past
    the end of the original block are pure additions.
    """

    target_line: int
    original_lines: Tuple[str, ...]
    new_lines: Tuple[str, ...]
    line_diffs: Tuple[Optional[ChangedSpan], ...]

    @property
    def added_lines(self) -> Tuple[str, ...]:
        return self.new_lines[len(self.original_lines) :]


def line_diff(old_line: str, new_line: str) -> Optional[ChangedSpan]:
    if old_line == new_line:
        return None
    return isolate_change(old_line, new_line)


def build_preview(text: str, candidate: Candidate) -> JumpPreview:
    start_line, start_column = position_at(text, candidate.start_index)
    end_line, end_column = position_at(text, candidate.end_index)
    lines = text.split("\n")
    original = lines[start_line : end_line + 1]
    merged = lines[start_line][:start_column] + candidate.completion + lines[end_line][end_column:]
    new = merged.split("\n")
    diffs = tuple(
        line_diff(old, new[index] if index < len(new) else "")
        for index, old in enumerate(original)
    )
    return JumpPreview(
        target_line=start_line,
        original_lines=tuple(original),
        new_lines=tuple(new),
        line_diffs=diffs,
    )


def edit_stats(text: str, candidate: Candidate) -> Tuple[int, int]:
    """``(additions, deletions)`` in lines, each at least one."""

    start_line = position_at(text, candidate.start_index)[0]
    end_offset = (
        candidate.end_index - 1
        if candidate.end_index > candidate.start_index
        else candidate.start_index
    )
    end_line = position_at(text, end_offset)[0]
    deletions = max(end_line - start_line + 1, 1)
    additions = max(len(candidate.completion.split("\n")), 1)
    return additions, deletions


@dataclass(slots=True)
class PendingJump:
    """The single off-cursor edit waiting to be accepted in ``uri``.

    ``offsets`` follow the target range through document changes and
    ``origin`` is a collapsed anchor on the cursor position the jump was
    offered from.
    """

    uri: str
    candidate: Candidate
    offsets: TrackedOffsets
    origin: TrackedOffsets
    origin_line: int
    preview: JumpPreview
    epoch: int = 0
    additions: int = 0
    deletions: int = 0

    @property
    def target_line(self) -> int:
        return self.preview.target_line

    def overlaps(self, change: ContentChange) -> bool:
        return self.offsets.overlaps(change)

    def follow(self, changes: Sequence[ContentChange], text_after: str) -> bool:
        """Move the target and origin through ``changes`` in order.

        Returns ``False`` as soon as a change touches the target; the jump is
        then invalid and its anchors are left partly moved. ``origin_line`` is
        resolved once against ``text_after``, the text after the whole batch.
        """

        for change in changes:
            if self.offsets.overlaps(change):
                return False
            self.offsets.apply(change)
            self.origin.apply(change)
        self.origin_line = position_at(text_after, self.origin.start_offset)[0]
        return True

    def to_edit(self) -> TextEdit:
        return TextEdit(
            uri=self.uri,
            start=self.offsets.start_offset,
            end=self.offsets.end_offset,
            new_text=self.candidate.completion,
        )


def build_jump(snapshot: DocumentSnapshot, candidate: Candidate, *, epoch: int = 0) -> PendingJump:
    cursor = snapshot.cursor_offset
    additions, deletions = edit_stats(snapshot.text, candidate)
    return PendingJump(
        uri=snapshot.uri,
        candidate=candidate,
        offsets=TrackedOffsets(candidate.start_index, candidate.end_index),
        origin=TrackedOffsets(cursor, cursor),
        origin_line=snapshot.cursor[0],
        preview=build_preview(snapshot.text, candidate),
        epoch=epoch,
        additions=additions,
        deletions=deletions,
    )


def cursor_after_accept(text_after: str, edit: TextEdit) -> Tuple[int, int]:
    """Cursor position after applying ``edit``: end of its last content line."""

    start_line = position_at(text_after, edit.start)[0]
    inserted = edit.new_text.split("\n")
    content_lines = len(inserted) - 1 if edit.new_text.endswith("\n") else len(inserted)
    lines = text_after.split("\n")
    line = min(start_line + max(0, content_lines - 1), len(lines) - 1)
    return (line, len(lines[line]))


__all__ = [
    "JumpPreview",
    "PendingJump",
    "build_jump",
    "build_preview",
    "cursor_after_accept",
    "edit_stats",
    "line_diff",
]

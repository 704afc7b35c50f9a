"""Keep a previously computed edit range valid while the document mutates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .snapshot import ContentChange


@dataclass(slots=True)
class TrackedOffsets:
    """Anchor of a pending edit; mutated in place as changes arrive."""

    start_offset: int
    end_offset: int

    def __post_init__(self) -> None:
        self.start_offset = max(0, self.start_offset)
        self.end_offset = max(self.start_offset, self.end_offset)

    def apply(self, change: ContentChange) -> "TrackedOffsets":
        apply_content_change(self, change)
        return self

    def apply_all(self, changes: Iterable[ContentChange]) -> "TrackedOffsets":
        apply_content_changes(self, changes)
        return self

    def overlaps(self, change: ContentChange) -> bool:
        """True when ``change`` touches the tracked range (boundaries included)."""

        change_start = max(0, change.range_offset)
        change_end = max(change_start, change.range_end)
        return change_start <= self.end_offset and change_end >= self.start_offset


def apply_content_change(
    offsets: TrackedOffsets, change: ContentChange
) -> TrackedOffsets:
    """Move ``offsets`` through one change.

    Positions before the change stay put, positions after it move by the
    length delta, and positions inside the replaced span collapse onto the
    span. An insertion exactly at the start offset pushes the range forward.
    """

    start = max(0, offsets.start_offset)
    end = max(start, offsets.end_offset)

    change_start = max(0, change.range_offset)
    change_end = max(change_start, change.range_offset + change.range_length)
    inserted = len(change.text)
    delta = inserted - (change_end - change_start)

    if start < change_start:
        new_start = start
    elif start > change_end or (
        start == change_end and change_start == change_end
    ):
        new_start = start + delta
    else:
        new_start = change_start

    if end < change_start:
        new_end = end
    elif end >= change_end:
        new_end = end + delta
    else:
        new_end = change_start + inserted

    new_start = max(0, new_start)
    offsets.start_offset = new_start
    offsets.end_offset = max(new_start, new_end)
    return offsets


def apply_content_changes(
    offsets: TrackedOffsets, changes: Iterable[ContentChange]
) -> TrackedOffsets:
    for change in changes:
        apply_content_change(offsets, change)
    return offsets


__all__ = ["TrackedOffsets", "apply_content_change", "apply_content_changes"]

"""Adapt a superseded response to text the user typed while it was in flight."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence

from nextedit_engine.document.snapshot import DocumentSnapshot
from nextedit_engine.service.protocol import Candidate

from .normalize import reanchor_to_cursor


def typed_since(requested: DocumentSnapshot, current: DocumentSnapshot) -> Optional[str]:
    """Text inserted at the requested cursor, or ``None`` if anything else changed."""

    if requested.uri != current.uri:
        return None
    cursor = requested.cursor_offset
    before, after = requested.text, current.text
    inserted = len(after) - len(before)
    if inserted < 0:
        return None
    if after[:cursor] != before[:cursor] or after[cursor + inserted :] != before[cursor:]:
        return None
    if current.cursor_offset != cursor + inserted:
        return None
    return after[cursor : cursor + inserted]


def extend_candidates(
    requested: DocumentSnapshot,
    current: DocumentSnapshot,
    candidates: Sequence[Candidate],
) -> Optional[List[Candidate]]:
    """Rebase ``candidates`` computed for ``requested`` onto ``current``.

    The first candidate must be an edit at the requested cursor whose text
    begins with what was typed; it keeps only the untyped remainder. The rest
    move past the typed text, and any that straddle the cursor are dropped.
    ``None`` means the response cannot be reconciled.
    """

    typed = typed_since(requested, current)
    if typed is None or not candidates:
        return None

    cursor = requested.cursor_offset
    head = reanchor_to_cursor(requested.text, cursor, candidates[0])
    if head is None or head.start_index != cursor:
        return None
    if not head.completion.startswith(typed):
        return None

    extended: List[Candidate] = []
    remainder = head.completion[len(typed) :]
    if remainder:
        extended.append(
            replace(
                head,
                start_index=cursor + len(typed),
                end_index=head.end_index + len(typed),
                completion=remainder,
            )
        )

    for candidate in candidates[1:]:
        if candidate.start_index >= cursor:
            extended.append(candidate.shifted(len(typed)))
        elif candidate.end_index <= cursor:
            extended.append(candidate)
    return extended


__all__ = ["extend_candidates", "typed_since"]

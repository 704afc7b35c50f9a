"""Candidate clean-up against the document it will be shown in."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from nextedit_engine.service.protocol import Candidate


@dataclass(frozen=True, slots=True)
class NormalizedCandidate:
    """Either a usable ``candidate`` or the ``dropped`` reason it was rejected."""

    candidate: Optional[Candidate]
    dropped: str = ""

    @property
    def ok(self) -> bool:
        return self.candidate is not None


def _drop(reason: str) -> NormalizedCandidate:
    return NormalizedCandidate(candidate=None, dropped=reason)


def is_well_formed(text: str, candidate: Candidate) -> bool:
    return (
        isinstance(candidate.completion, str)
        and isinstance(candidate.start_index, int)
        and isinstance(candidate.end_index, int)
        and 0 <= candidate.start_index <= candidate.end_index <= len(text)
    )


def trim_suffix_overlap(text: str, candidate: Candidate) -> Optional[Candidate]:
    """Remove the tail of the completion that repeats the text after the edit.

    Returns ``None`` when nothing is left.
    """

    if not candidate.completion:
        return None
    following = text[candidate.end_index :]
    lookahead = min(len(following), len(candidate.completion))
    for size in range(lookahead, 0, -1):
        if candidate.completion.endswith(following[:size]):
            trimmed = candidate.completion[:-size]
            if not trimmed:
                return None
            return replace(candidate, completion=trimmed)
    return candidate


def reanchor_to_cursor(text: str, cursor: int, candidate: Candidate) -> Optional[Candidate]:
    """Move a candidate starting before ``cursor`` onto the cursor.

    Only applies when the completion repeats the text between its start and the
    cursor; otherwise the candidate is returned as is. ``None`` when the
    completion is nothing but that repeated prefix.
    """

    if candidate.start_index >= cursor:
        return candidate
    prefix = text[candidate.start_index : cursor]
    if not candidate.completion.startswith(prefix):
        return candidate
    remainder = candidate.completion[len(prefix) :]
    if not remainder:
        return None
    return replace(
        candidate,
        start_index=cursor,
        end_index=max(candidate.end_index, cursor),
        completion=remainder,
    )


def _strip_newlines(text: str) -> str:
    return text.strip("\n")


def is_noop(text: str, candidate: Candidate) -> bool:
    replaced = text[candidate.start_index : candidate.end_index]
    return _strip_newlines(replaced) == _strip_newlines(candidate.completion)


def normalize_candidate(text: str, cursor: int, candidate: Candidate) -> NormalizedCandidate:
    """Shape-check, re-anchor, suffix-trim and no-op filter ``candidate``."""

    if not is_well_formed(text, candidate):
        return _drop("malformed")
    if not candidate.completion:
        return _drop("empty-completion")

    anchored = reanchor_to_cursor(text, cursor, candidate)
    if anchored is None:
        return _drop("prefix-only")
    trimmed = trim_suffix_overlap(text, anchored)
    if trimmed is None:
        return _drop("suffix-overlap")
    if is_noop(text, trimmed):
        return _drop("no-op")
    return NormalizedCandidate(candidate=trimmed)


__all__ = [
    "NormalizedCandidate",
    "is_noop",
    "is_well_formed",
    "normalize_candidate",
    "reanchor_to_cursor",
    "trim_suffix_overlap",
]

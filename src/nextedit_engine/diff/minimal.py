"""Common prefix/suffix isolation between two versions of a text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class ChangedSpan:
    """Result of :func:`isolate_change`.

    ``old_changed`` and ``new_changed`` are what remains of each input once the
    shared ``prefix_len`` leading and ``suffix_len`` trailing characters are
    removed.
    """

    prefix_len: int
    suffix_len: int
    old_changed: str
    new_changed: str

    @property
    def is_empty(self) -> bool:
        return not self.old_changed and not self.new_changed


@dataclass(frozen=True, slots=True)
class ReplacementSpan:
    start: int
    end: int
    replacement: str


def common_prefix_length(first: str, second: str) -> int:
    limit = min(len(first), len(second))
    index = 0
    while index < limit and first[index] == second[index]:
        index += 1
    return index


def isolate_change(original: str, new: str) -> ChangedSpan:
    prefix = common_prefix_length(original, new)
    limit = min(len(original), len(new)) - prefix
    suffix = 0
    while (
        suffix < limit
        and original[len(original) - 1 - suffix] == new[len(new) - 1 - suffix]
    ):
        suffix += 1
    return ChangedSpan(
        prefix_len=prefix,
        suffix_len=suffix,
        old_changed=original[prefix : len(original) - suffix],
        new_changed=new[prefix : len(new) - suffix],
    )


def compute_replacement_span(current: str, updated: str) -> Optional[ReplacementSpan]:
    """Smallest ``current[start:end] -> replacement`` edit producing ``updated``."""

    if current == updated:
        return None
    span = isolate_change(current, updated)
    return ReplacementSpan(
        start=span.prefix_len,
        end=len(current) - span.suffix_len,
        replacement=span.new_changed,
    )


__all__ = [
    "ChangedSpan",
    "ReplacementSpan",
    "common_prefix_length",
    "compute_replacement_span",
    "isolate_change",
]

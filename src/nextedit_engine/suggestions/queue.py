"""Per-document queue of candidates that were returned but not yet shown."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional

from nextedit_engine.service.protocol import Candidate


def _is_usable(candidate: Candidate) -> bool:
    return (
        bool(candidate.completion)
        and candidate.start_index >= 0
        and candidate.end_index >= candidate.start_index
    )


@dataclass(slots=True)
class SuggestionQueue:
    uri: str
    _items: List[Candidate] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(tuple(self._items))

    def replace(self, candidates: Iterable[Candidate]) -> None:
        """Drop the current contents in favour of a fresh response."""

        self._items = [candidate for candidate in candidates if _is_usable(candidate)]

    def pop_next(self) -> Optional[Candidate]:
        if not self._items:
            return None
        return self._items.pop(0)

    def clear(self) -> None:
        self._items.clear()

    def shift_after_accept(self, accepted: Candidate) -> None:
        """Keep queued offsets valid once ``accepted`` has been applied.

        Candidates at or after the accepted start move by the accepted length
        delta; any that end up empty or inverted are dropped.
        """

        delta = len(accepted.completion) - (accepted.end_index - accepted.start_index)
        shifted: List[Candidate] = []
        for item in self._items:
            if item.id == accepted.id:
                continue
            if item.start_index >= accepted.start_index:
                item = item.shifted(delta)
            if _is_usable(item):
                shifted.append(item)
        self._items = shifted


__all__ = ["SuggestionQueue"]

"""Boundary between the engine and whatever produces candidate edits."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from .request import CompletionRequest


@dataclass(frozen=True, slots=True)
class Candidate:
    """One proposed edit: replace ``text[start_index:end_index]`` with ``completion``."""

    id: str
    start_index: int
    end_index: int
    completion: str
    confidence: float = 1.0

    @property
    def is_insertion(self) -> bool:
        return self.start_index == self.end_index

    def shifted(self, delta: int) -> "Candidate":
        return replace(
            self,
            start_index=self.start_index + delta,
            end_index=self.end_index + delta,
        )


class CancellationSignal(Protocol):
    """Subset of :class:`asyncio.Event` a service may poll or await."""

    def is_set(self) -> bool:
        ...

    async def wait(self) -> object:
        ...


class CompletionService(Protocol):
    """Produces zero or more candidates for a request.

    Implementations wrap transport and parse failures in
    :class:`CompletionServiceError` and raise :class:`RequestAborted` when they
    notice ``cancel`` has been set.
    """

    async def complete(
        self, request: "CompletionRequest", *, cancel: CancellationSignal
    ) -> Sequence[Candidate]:
        ...


class CompletionServiceError(RuntimeError):
    """Raised by services for transport, protocol or parse failures."""


class RequestAborted(CompletionServiceError):
    """Raised when a request is abandoned because a newer one replaced it."""


__all__ = [
    "CancellationSignal",
    "Candidate",
    "CompletionService",
    "CompletionServiceError",
    "RequestAborted",
]

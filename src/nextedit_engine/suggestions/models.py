"""Shared value types for the suggestion lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal, Optional, Protocol

from nextedit_engine.document.snapshot import DocumentSnapshot
from nextedit_engine.service.protocol import Candidate

if TYPE_CHECKING:
    from .jump import PendingJump

ClassificationReason = Literal[
    "far-from-cursor",
    "before-cursor-multiline",
    "before-cursor-single-line",
    "single-newline-boundary",
    "inline-safe",
]
ResultAction = Literal["inline", "jump", "apply", "clear", "none"]


class DisplayDecision(str, Enum):
    INLINE = "inline"
    JUMP = "jump"
    SUPPRESS = "suppress"


@dataclass(frozen=True, slots=True)
class Classification:
    decision: DisplayDecision
    reason: ClassificationReason


@dataclass(frozen=True, slots=True)
class TextEdit:
    """Replacement the host applies: ``text[start:end] = new_text`` in ``uri``."""

    uri: str
    start: int
    end: int
    new_text: str


@dataclass(frozen=True, slots=True)
class EditorState:
    focused: bool = True
    read_only: bool = False
    snippet_active: bool = False
    multiline_selection: bool = False


class EditorProbe(Protocol):
    """Read access to the host editor at the moment of a check."""

    def active_snapshot(self) -> Optional[DocumentSnapshot]:
        ...

    def editor_state(self) -> EditorState:
        ...


@dataclass(slots=True)
class SuggestionResult:
    """What the host should do after an orchestrator call."""

    action: ResultAction
    reason: str = ""
    candidate: Optional[Candidate] = None
    jump: Optional["PendingJump"] = None
    edit: Optional[TextEdit] = None
    epoch: int = 0


def none_result(reason: str, epoch: int = 0) -> SuggestionResult:
    return SuggestionResult(action="none", reason=reason, epoch=epoch)


__all__ = [
    "Candidate",
    "Classification",
    "ClassificationReason",
    "DisplayDecision",
    "EditorProbe",
    "EditorState",
    "ResultAction",
    "SuggestionResult",
    "TextEdit",
    "none_result",
]

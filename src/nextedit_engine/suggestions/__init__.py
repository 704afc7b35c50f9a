"""Suggestion lifecycle: normalization, classification, queueing and orchestration."""

from .models import (
    Candidate,
    Classification,
    DisplayDecision,
    EditorProbe,
    EditorState,
    SuggestionResult,
    TextEdit,
)
from .classifier import (
    EDIT_RANGE_PADDING_ROWS,
    ClassifierInput,
    classify_candidate,
    classify_edit_display,
)
from .normalize import NormalizedCandidate, normalize_candidate, trim_suffix_overlap
from .queue import SuggestionQueue
from .extension import extend_candidates, typed_since
from .jump import JumpPreview, PendingJump, build_jump, build_preview
from .gate import GATE_REASONS, suppression_reason
from .orchestrator import DocumentSession, RequestHandle, SuggestionOrchestrator

__all__ = [
    "Candidate",
    "Classification",
    "ClassifierInput",
    "DisplayDecision",
    "DocumentSession",
    "EDIT_RANGE_PADDING_ROWS",
    "EditorProbe",
    "EditorState",
    "GATE_REASONS",
    "JumpPreview",
    "NormalizedCandidate",
    "PendingJump",
    "RequestHandle",
    "SuggestionOrchestrator",
    "SuggestionQueue",
    "SuggestionResult",
    "TextEdit",
    "build_jump",
    "build_preview",
    "classify_candidate",
    "classify_edit_display",
    "extend_candidates",
    "normalize_candidate",
    "suppression_reason",
    "trim_suffix_overlap",
    "typed_since",
]

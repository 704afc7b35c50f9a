"""Preconditions under which no suggestion is requested or shown."""

from __future__ import annotations

from typing import Optional

from nextedit_engine.config import SuggestionConfig
from nextedit_engine.document.snapshot import DocumentSnapshot
from nextedit_engine.document.tracker import DocumentTracker

from .models import EditorProbe

GATE_REASONS = (
    "disabled",
    "snoozed",
    "inactive-document",
    "unfocused",
    "multiline-selection",
    "read-only",
    "snippet-active",
    "bulk-edit",
    "excluded",
    "file-too-large",
    "unchanged-document",
)


def suppression_reason(
    snapshot: DocumentSnapshot,
    *,
    config: SuggestionConfig,
    tracker: DocumentTracker,
    probe: EditorProbe,
    now: float,
) -> Optional[str]:
    """Return the first gate ``snapshot`` fails, or ``None`` when suggestions may run."""

    if not config.enabled:
        return "disabled"
    if config.is_snoozed(now):
        return "snoozed"

    active = probe.active_snapshot()
    if active is None or active.uri != snapshot.uri:
        return "inactive-document"

    state = probe.editor_state()
    if not state.focused:
        return "unfocused"
    if state.multiline_selection or tracker.was_recent_multiline_selection(snapshot.uri):
        return "multiline-selection"
    if state.read_only:
        return "read-only"
    if state.snippet_active:
        return "snippet-active"
    if tracker.was_recent_bulk_change(snapshot.uri):
        return "bulk-edit"

    if config.should_exclude(snapshot.file_path):
        return "excluded"
    if config.exceeds_size_limits(snapshot.text):
        return "file-too-large"
    if config.require_changes:
        original = tracker.original_content(snapshot.uri)
        if original is None or original == snapshot.text:
            return "unchanged-document"
    return None


__all__ = ["GATE_REASONS", "suppression_reason"]

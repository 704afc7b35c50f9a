"""Decide whether a candidate renders inline, as a jump, or not at all."""

from __future__ import annotations

from dataclasses import dataclass

from nextedit_engine.document.snapshot import DocumentSnapshot
from nextedit_engine.runtime import telemetry
from nextedit_engine.service.protocol import Candidate

from .models import Classification, DisplayDecision

EDIT_RANGE_PADDING_ROWS = 2


@dataclass(frozen=True, slots=True)
class ClassifierInput:
    cursor_line: int
    edit_start_line: int
    edit_end_line: int
    cursor_offset: int
    start_index: int
    completion: str
    is_on_single_newline_boundary: bool = False


def classify_edit_display(data: ClassifierInput) -> Classification:
    """First matching rule wins.

    1. cursor outside the edit's line range padded by two rows: jump
    2. edit starts before the cursor with a multi-line completion: jump
    3. edit starts before the cursor: jump
    4. multi-line insertion at the cursor right after a lone newline: suppress
    5. otherwise inline
    """

    padded_start = max(0, data.edit_start_line - EDIT_RANGE_PADDING_ROWS)
    padded_end = data.edit_end_line + EDIT_RANGE_PADDING_ROWS
    if data.cursor_line < padded_start or data.cursor_line > padded_end:
        return Classification(DisplayDecision.JUMP, "far-from-cursor")

    before_cursor = data.start_index < data.cursor_offset
    multiline = "\n" in data.completion
    if before_cursor and multiline:
        return Classification(DisplayDecision.JUMP, "before-cursor-multiline")
    if before_cursor:
        return Classification(DisplayDecision.JUMP, "before-cursor-single-line")

    if (
        multiline
        and data.start_index == data.cursor_offset
        and data.is_on_single_newline_boundary
        and abs(data.cursor_line - data.edit_start_line) <= 1
    ):
        return Classification(DisplayDecision.SUPPRESS, "single-newline-boundary")

    return Classification(DisplayDecision.INLINE, "inline-safe")


def is_on_single_newline_boundary(text: str, offset: int) -> bool:
    if offset <= 0 or offset >= len(text):
        return False
    return text[offset - 1] == "\n" and text[offset] != "\n"


def classify_candidate(snapshot: DocumentSnapshot, candidate: Candidate) -> Classification:
    cursor_offset = snapshot.cursor_offset
    data = ClassifierInput(
        cursor_line=snapshot.cursor[0],
        edit_start_line=snapshot.position_at(candidate.start_index)[0],
        edit_end_line=snapshot.position_at(candidate.end_index)[0],
        cursor_offset=cursor_offset,
        start_index=candidate.start_index,
        completion=candidate.completion,
        is_on_single_newline_boundary=is_on_single_newline_boundary(
            snapshot.text, cursor_offset
        ),
    )
    result = classify_edit_display(data)
    telemetry.log(
        telemetry.get_logger("nextedit_engine.classifier"),
        "debug",
        "classifier::decision",
        {
            "id": candidate.id,
            "decision": result.decision.value,
            "reason": result.reason,
            "cursor_line": data.cursor_line,
            "edit_lines": f"{data.edit_start_line}-{data.edit_end_line}",
        },
    )
    return result


__all__ = [
    "EDIT_RANGE_PADDING_ROWS",
    "ClassifierInput",
    "classify_candidate",
    "classify_edit_display",
    "is_on_single_newline_boundary",
]

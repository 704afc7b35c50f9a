"""Per-document history the engine uses to build requests and gate suggestions."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from nextedit_engine.config import SuggestionConfig
from nextedit_engine.diff.unified import SEPARATOR, format_recent_change_diff
from nextedit_engine.runtime import telemetry

from .snapshot import ContentChange, Cursor, DocumentSnapshot, position_at
from .text import utf8_byte_offset

ActionType = Literal[
    "INSERT_CHAR",
    "INSERT_SELECTION",
    "DELETE_CHAR",
    "DELETE_SELECTION",
    "UNDO",
    "REDO",
    "CURSOR_MOVEMENT",
]
ChangeReason = Literal["undo", "redo"]
Selection = Tuple[Cursor, Cursor]


@dataclass(frozen=True, slots=True)
class UserAction:
    action_type: ActionType
    line_number: int
    offset: int
    file_path: str
    timestamp: float


@dataclass(frozen=True, slots=True)
class EditRecord:
    file_path: str
    diff: str
    timestamp: float


@dataclass(frozen=True, slots=True)
class ContextFile:
    file_path: str
    content: str
    timestamp: float
    cursor_line: Optional[int] = None


@dataclass(slots=True)
class _FileVisit:
    uri: str
    file_path: str
    content: str
    timestamp: float


@dataclass(slots=True)
class _ChangeSummary:
    timestamp: float
    total_chars: int
    total_lines: int


def _action_type(change: ContentChange) -> ActionType:
    multi = len(change.text) > 1 or change.range_length > 1
    if change.range_length > 0 and not change.text:
        return "DELETE_SELECTION" if multi else "DELETE_CHAR"
    return "INSERT_SELECTION" if multi else "INSERT_CHAR"


def _keep_last(items: List, limit: int) -> None:
    excess = len(items) - max(limit, 0)
    if excess > 0:
        del items[:excess]


def _fallback_diff(file_path: str, line: int, change: ContentChange) -> str:
    """Coarse record used when the pre-change text was never observed."""

    deleted_lines = 1 if change.range_length > 0 else 0
    added = change.text.split("\n") if change.text else []
    lines = [
        f"Index: {file_path}",
        SEPARATOR,
        f"@@ -{line + 1},{deleted_lines} +{line + 1},{len(added)} @@",
    ]
    if change.range_length > 0:
        lines.append(f"-[deleted {change.range_length} characters]")
    lines.extend(f"+{text}" for text in added)
    return "\n".join(lines)


class DocumentTracker:
    """Bounded change, action and visit history across open documents.

    Timestamps come from ``clock`` (seconds); lookback windows in
    :class:`SuggestionConfig` are milliseconds.
    """

    def __init__(
        self,
        *,
        config: SuggestionConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or SuggestionConfig()
        self._clock = clock
        self._recent_files: Dict[str, _FileVisit] = {}
        self._edit_history: List[EditRecord] = []
        self._user_actions: List[UserAction] = []
        self._original_contents: Dict[str, str] = {}
        self._document_contents: Dict[str, str] = {}
        self._cursor_lines: Dict[str, int] = {}
        self._change_summaries: Dict[str, _ChangeSummary] = {}
        self._multiline_selections: Dict[str, float] = {}
        self.logger = telemetry.get_logger("nextedit_engine.tracker")

    def track_file_visit(self, snapshot: DocumentSnapshot) -> None:
        uri = snapshot.uri
        self._original_contents.setdefault(uri, snapshot.text)
        self._document_contents[uri] = snapshot.text
        self._recent_files[uri] = _FileVisit(
            uri=uri,
            file_path=snapshot.file_path,
            content=snapshot.text,
            timestamp=self._clock(),
        )
        if len(self._recent_files) > self.config.max_recent_files:
            newest = sorted(
                self._recent_files.values(), key=lambda visit: visit.timestamp
            )
            _keep_last(newest, self.config.max_recent_files)
            self._recent_files = {visit.uri: visit for visit in newest}

    def track_change(
        self,
        snapshot: DocumentSnapshot,
        changes: Sequence[ContentChange],
        *,
        reason: Optional[ChangeReason] = None,
    ) -> None:
        """Record ``changes`` that produced ``snapshot`` (the post-change state).

        Each change becomes one diff record, rendered against the text as it
        stood after the preceding changes of the same event.
        """

        uri = snapshot.uri
        now = self._clock()
        running = self._document_contents.get(uri)
        total_chars = 0
        total_lines = 0
        undo_redo_line: Optional[int] = None
        undo_redo_offset = 0

        for change in changes:
            if change.is_noop:
                continue
            end_offset = min(
                max(0, change.range_offset + len(change.text)), len(snapshot.text)
            )
            line, _ = position_at(snapshot.text, end_offset)
            byte_offset = utf8_byte_offset(snapshot.text, end_offset)
            self._cursor_lines[uri] = line

            if running is not None:
                diff = format_recent_change_diff(
                    snapshot.file_path,
                    running,
                    change,
                    context_lines=self.config.diff_context_lines,
                    max_diff_chars=self.config.max_diff_chars,
                )
                removed_lines = running.count(
                    "\n", max(0, change.range_offset), change.range_end
                )
                running = change.apply_to(running)
            else:
                start_line, _ = position_at(snapshot.text, change.range_offset)
                diff = _fallback_diff(snapshot.file_path, start_line, change)
                removed_lines = 0
            if diff:
                self._edit_history.append(
                    EditRecord(file_path=snapshot.file_path, diff=diff, timestamp=now)
                )
                _keep_last(self._edit_history, self.config.max_edit_history)

            if reason is not None:
                undo_redo_line, undo_redo_offset = line, byte_offset
            else:
                self._push_action(
                    UserAction(
                        action_type=_action_type(change),
                        line_number=line,
                        offset=byte_offset,
                        file_path=snapshot.file_path,
                        timestamp=now,
                    )
                )

            total_chars += len(change.text) + change.range_length
            total_lines += change.text.count("\n") + removed_lines

        if total_chars or total_lines:
            self._change_summaries[uri] = _ChangeSummary(
                timestamp=now, total_chars=total_chars, total_lines=total_lines
            )
            telemetry.log(
                self.logger,
                "debug",
                "tracker::change",
                {"uri": uri, "chars": total_chars, "lines": total_lines},
            )
        if reason is not None and undo_redo_line is not None:
            self._push_action(
                UserAction(
                    action_type="UNDO" if reason == "undo" else "REDO",
                    line_number=undo_redo_line,
                    offset=undo_redo_offset,
                    file_path=snapshot.file_path,
                    timestamp=now,
                )
            )
        self._document_contents[uri] = snapshot.text

    def track_cursor_movement(self, snapshot: DocumentSnapshot) -> None:
        line, _ = snapshot.cursor
        self._cursor_lines[snapshot.uri] = line
        self._push_action(
            UserAction(
                action_type="CURSOR_MOVEMENT",
                line_number=line,
                offset=snapshot.cursor_byte_offset,
                file_path=snapshot.file_path,
                timestamp=self._clock(),
            )
        )

    def track_selection_change(self, uri: str, selections: Iterable[Selection]) -> None:
        for start, end in selections:
            if start != end and start[0] != end[0]:
                self._multiline_selections[uri] = self._clock()
                return

    def recent_context_files(self, exclude_uri: str, max_files: int) -> List[ContextFile]:
        visits = sorted(
            (visit for uri, visit in self._recent_files.items() if uri != exclude_uri),
            key=lambda visit: visit.timestamp,
            reverse=True,
        )
        return [
            ContextFile(
                file_path=visit.file_path,
                content=visit.content,
                timestamp=visit.timestamp,
                cursor_line=self._cursor_lines.get(visit.uri),
            )
            for visit in visits[:max_files]
        ]

    def edit_diff_history(self) -> List[EditRecord]:
        return sorted(self._edit_history, key=lambda record: record.timestamp, reverse=True)

    def user_actions(
        self, file_path: str, current_cursor: Optional[Tuple[int, int]] = None
    ) -> List[UserAction]:
        """Actions recorded for ``file_path``, oldest first.

        ``current_cursor`` is ``(line, byte_offset)``; when it differs from the
        last recorded cursor movement a synthetic movement is appended.
        """

        normalized = file_path.replace("\\", "/")
        actions = [
            action
            for action in self._user_actions
            if action.file_path.replace("\\", "/") == normalized
        ]
        if current_cursor is None:
            return actions
        last = actions[-1] if actions else None
        line, offset = current_cursor
        if (
            last is not None
            and last.action_type == "CURSOR_MOVEMENT"
            and last.line_number == line
            and last.offset == offset
        ):
            return actions
        actions.append(
            UserAction(
                action_type="CURSOR_MOVEMENT",
                line_number=line,
                offset=offset,
                file_path=normalized,
                timestamp=self._clock(),
            )
        )
        return actions

    def original_content(self, uri: str) -> Optional[str]:
        return self._original_contents.get(uri)

    def reset_original_content(self, uri: str, content: str) -> None:
        self._original_contents[uri] = content

    def was_recent_bulk_change(self, uri: str) -> bool:
        summary = self._change_summaries.get(uri)
        if summary is None:
            return False
        if self._elapsed_ms(summary.timestamp) > self.config.bulk_change_window_ms:
            return False
        return (
            summary.total_chars >= self.config.bulk_change_char_threshold
            or summary.total_lines >= self.config.bulk_change_line_threshold
        )

    def was_recent_multiline_selection(self, uri: str) -> bool:
        timestamp = self._multiline_selections.get(uri)
        if timestamp is None:
            return False
        return self._elapsed_ms(timestamp) <= self.config.multiline_selection_window_ms

    def forget(self, uri: str) -> None:
        """Drop per-document state for a closed document."""

        for store in (
            self._recent_files,
            self._original_contents,
            self._document_contents,
            self._cursor_lines,
            self._change_summaries,
            self._multiline_selections,
        ):
            store.pop(uri, None)

    def _elapsed_ms(self, timestamp: float) -> float:
        return (self._clock() - timestamp) * 1000.0

    def _push_action(self, action: UserAction) -> None:
        self._user_actions.append(action)
        _keep_last(self._user_actions, self.config.max_user_actions)


__all__ = [
    "ActionType",
    "ChangeReason",
    "ContextFile",
    "DocumentTracker",
    "EditRecord",
    "Selection",
    "UserAction",
]

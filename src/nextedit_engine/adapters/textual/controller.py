"""Textual-facing adapter that feeds editor events to the suggestion orchestrator."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from nextedit_engine.config import SuggestionConfig
from nextedit_engine.diff.minimal import compute_replacement_span
from nextedit_engine.document.snapshot import ContentChange, Cursor, DocumentSnapshot
from nextedit_engine.runtime import telemetry
from nextedit_engine.service.policy import RequestPolicy
from nextedit_engine.service.protocol import Candidate, CompletionService
from nextedit_engine.suggestions.jump import PendingJump, cursor_after_accept
from nextedit_engine.suggestions.models import EditorState, SuggestionResult
from nextedit_engine.suggestions.orchestrator import SuggestionOrchestrator


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class SuggestionUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    show_inline: Callable[[Candidate], None] = _noop
    show_jump: Callable[[PendingJump], None] = _noop
    clear: Callable[[], None] = _noop
    # Receives the full new text and cursor after an accepted edit.
    apply_edit: Callable[[str, Cursor], None] = _noop
    update_status: Callable[[str], None] = _noop
    log: Callable[[str], None] = _noop


class TextualSuggestionAdapter:
    """Holds the host document state and serves as the orchestrator's probe.

    Hosts report whole-text updates; the adapter reduces each one to a single
    :class:`ContentChange` before handing it on.
    """

    def __init__(
        self,
        service: CompletionService,
        hooks: SuggestionUIHooks,
        *,
        uri: str = "untitled",
        file_path: str = "",
        language_id: str = "plaintext",
        config: SuggestionConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        policy: RequestPolicy | None = None,
    ) -> None:
        self.hooks = hooks
        self.uri = uri
        self.file_path = file_path or uri
        self.language_id = language_id
        self._text = ""
        self._cursor: Cursor = (0, 0)
        self._version = 0
        self._open = False
        self._state = EditorState()
        self.logger = telemetry.get_logger("nextedit_engine.adapters")
        self.orchestrator = SuggestionOrchestrator(
            service, self, config=config, clock=clock, policy=policy
        )

    # EditorProbe -------------------------------------------------------

    def active_snapshot(self) -> Optional[DocumentSnapshot]:
        if not self._open:
            return None
        return self.snapshot()

    def editor_state(self) -> EditorState:
        return self._state

    # Host events -------------------------------------------------------

    def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            uri=self.uri,
            version=self._version,
            text=self._text,
            cursor=self._cursor,
            file_path=self.file_path,
            language_id=self.language_id,
        )

    def open_document(self, text: str, *, cursor: Cursor = (0, 0)) -> SuggestionResult:
        self._text = text
        self._cursor = cursor
        self._version = 0
        self._open = True
        result = self.orchestrator.active_document_changed(self.snapshot())
        self._apply_result(result)
        return result

    def close_document(self) -> SuggestionResult:
        self._open = False
        result = self.orchestrator.active_document_changed(None)
        self._apply_result(result)
        return result

    def text_changed(self, text: str, cursor: Cursor) -> SuggestionResult:
        """Report the host's full text after an edit."""

        span = compute_replacement_span(self._text, text)
        if span is None:
            return self.cursor_changed(cursor)
        change = ContentChange(
            range_offset=span.start,
            range_length=span.end - span.start,
            text=span.replacement,
        )
        self._text = text
        self._cursor = cursor
        self._version += 1
        self._log_state("change ->", offset=change.range_offset, delta=change.delta)
        result = self.orchestrator.content_changed(
            self.uri, [change], snapshot=self.snapshot()
        )
        self._apply_result(result)
        return result

    def cursor_changed(self, cursor: Cursor) -> SuggestionResult:
        if cursor == self._cursor:
            return SuggestionResult(action="none")
        self._cursor = cursor
        result = self.orchestrator.cursor_moved(self.snapshot())
        self._apply_result(result)
        return result

    def selection_changed(self, start: Cursor, end: Cursor) -> SuggestionResult:
        self._state = EditorState(
            focused=self._state.focused,
            read_only=self._state.read_only,
            snippet_active=self._state.snippet_active,
            multiline_selection=start[0] != end[0],
        )
        result = self.orchestrator.selection_changed(self.uri, [(start, end)])
        self._apply_result(result)
        return result

    def focus_changed(self, focused: bool) -> None:
        self._state = EditorState(
            focused=focused,
            read_only=self._state.read_only,
            snippet_active=self._state.snippet_active,
            multiline_selection=self._state.multiline_selection,
        )

    def set_read_only(self, read_only: bool) -> None:
        self._state = EditorState(
            focused=self._state.focused,
            read_only=read_only,
            snippet_active=self._state.snippet_active,
            multiline_selection=self._state.multiline_selection,
        )

    async def trigger(self) -> SuggestionResult:
        """Request a suggestion for the current state and render the outcome."""

        self._log_state("trigger ->")
        result = await self.orchestrator.request_suggestion(self.snapshot())
        self._apply_result(result)
        self._log_state("result <-", action=result.action, reason=result.reason)
        return result

    def accept(self) -> SuggestionResult:
        result = self.orchestrator.accept()
        edit = result.edit
        if result.action != "apply" or edit is None:
            self._apply_result(result)
            return result

        text = self._text[: edit.start] + edit.new_text + self._text[edit.end :]
        if result.reason == "jump-accepted":
            cursor = cursor_after_accept(text, edit)
        else:
            cursor = DocumentSnapshot(
                uri=self.uri, version=0, text=text
            ).position_at(edit.start + len(edit.new_text))
        self.hooks.clear()
        self.hooks.apply_edit(text, cursor)
        self.text_changed(text, cursor)
        self.hooks.update_status(result.reason)
        return result

    def dismiss(self) -> SuggestionResult:
        result = self.orchestrator.dismiss()
        self._apply_result(result)
        return result

    # Rendering ---------------------------------------------------------

    def _apply_result(self, result: SuggestionResult) -> None:
        if result.action == "inline" and result.candidate is not None:
            self.hooks.show_inline(result.candidate)
            self.hooks.update_status(f"suggestion: {result.reason}")
        elif result.action == "jump" and result.jump is not None:
            self.hooks.show_jump(result.jump)
            self.hooks.update_status(f"jump to line {result.jump.target_line + 1}")
        elif result.action == "clear":
            self.hooks.clear()
            self.hooks.update_status(result.reason)
        elif result.reason:
            self.hooks.update_status(result.reason)

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot = self._state_metadata()
        snapshot.update({key: value for key, value in fields.items() if value is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        line = " ".join(parts)
        telemetry.log(self.logger, "debug", line)
        self.hooks.log(line)

    def _state_metadata(self) -> Dict[str, object]:
        return {
            "uri": self.uri,
            "version": self._version,
            "cursor": self._cursor,
            "epoch": self.orchestrator.epoch,
        }


__all__ = ["SuggestionUIHooks", "TextualSuggestionAdapter"]

"""Request lifecycle: debounce, cancel, race, classify and render suggestions."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Literal, Optional, Sequence

from nextedit_engine.config import SuggestionConfig
from nextedit_engine.document.snapshot import ContentChange, Cursor, DocumentSnapshot
from nextedit_engine.document.tracker import ChangeReason, DocumentTracker, Selection
from nextedit_engine.retrieval.chunks import Diagnostic, FileChunk
from nextedit_engine.runtime import telemetry
from nextedit_engine.service.policy import RequestPolicy, request_policy
from nextedit_engine.service.protocol import (
    Candidate,
    CompletionService,
    CompletionServiceError,
)
from nextedit_engine.service.request import CompletionRequest, build_completion_request

from .classifier import classify_candidate
from .extension import extend_candidates
from .gate import suppression_reason
from .jump import PendingJump, build_jump, edit_stats
from .models import (
    Classification,
    DisplayDecision,
    EditorProbe,
    SuggestionResult,
    TextEdit,
    none_result,
)
from .normalize import normalize_candidate
from .queue import SuggestionQueue

RequestState = Literal["idle", "debouncing", "in-flight", "settled", "superseded", "aborted"]


@dataclass(slots=True)
class RequestHandle:
    """One triggered request and the abort signal tied to its epoch."""

    epoch: int
    snapshot: DocumentSnapshot
    abort_event: asyncio.Event = field(default_factory=asyncio.Event)
    state: RequestState = "idle"

    @property
    def aborted(self) -> bool:
        return self.abort_event.is_set()

    def abort(self) -> None:
        self.abort_event.set()
        if self.state not in ("settled", "superseded"):
            self.state = "aborted"


@dataclass(slots=True)
class RenderedInline:
    candidate: Candidate
    version: int
    cursor: Cursor
    epoch: int
    additions: int = 0
    deletions: int = 0


@dataclass(slots=True)
class DocumentSession:
    """Suggestion state owned by the orchestrator for one document."""

    uri: str
    queue: SuggestionQueue
    jump: Optional[PendingJump] = None
    inline: Optional[RenderedInline] = None
    serve_from_queue: bool = False
    diagnostics: Sequence[Diagnostic] = ()
    retrieval: Sequence[FileChunk] = ()

    @property
    def has_rendered(self) -> bool:
        return self.jump is not None or self.inline is not None


class SuggestionOrchestrator:
    """Turns editor events into :class:`SuggestionResult` values for the host."""

    def __init__(
        self,
        service: CompletionService,
        probe: EditorProbe,
        *,
        config: SuggestionConfig | None = None,
        tracker: DocumentTracker | None = None,
        clock: Callable[[], float] = time.monotonic,
        policy: RequestPolicy | None = None,
    ) -> None:
        self.service = service
        self.probe = probe
        self.config = config or SuggestionConfig()
        self.clock = clock
        self.tracker = tracker or DocumentTracker(config=self.config, clock=clock)
        self.policy = policy or request_policy(
            self.config.mode, self.config.debounce_override_ms
        )
        self.logger = telemetry.get_logger("nextedit_engine.orchestrator")
        self._sessions: Dict[str, DocumentSession] = {}
        self._epoch = 0
        self._rendered_epoch = 0
        self._current: Optional[RequestHandle] = None
        self._last_trigger_at: Optional[float] = None
        self._active_uri: Optional[str] = None

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def current_request(self) -> Optional[RequestHandle]:
        return self._current

    def session(self, uri: str) -> DocumentSession:
        if uri not in self._sessions:
            self._sessions[uri] = DocumentSession(uri=uri, queue=SuggestionQueue(uri))
        return self._sessions[uri]

    def update_context(
        self,
        uri: str,
        *,
        diagnostics: Optional[Sequence[Diagnostic]] = None,
        retrieval: Optional[Sequence[FileChunk]] = None,
    ) -> None:
        """Attach diagnostics or retrieval snippets sent with the next request for ``uri``."""

        session = self.session(uri)
        if diagnostics is not None:
            session.diagnostics = tuple(diagnostics)
        if retrieval is not None:
            session.retrieval = tuple(retrieval)

    # ------------------------------------------------------------------
    # Trigger

    async def request_suggestion(self, snapshot: DocumentSnapshot) -> SuggestionResult:
        self._epoch += 1
        handle = RequestHandle(epoch=self._epoch, snapshot=snapshot)
        previous, self._current = self._current, handle
        if previous is not None and self.policy.cancel_on_new_request:
            previous.abort()

        now = self.clock()
        delay_ms = 0.0
        if self._last_trigger_at is not None:
            elapsed_ms = (now - self._last_trigger_at) * 1000.0
            delay_ms = max(0.0, self.policy.debounce_ms - elapsed_ms)
        self._last_trigger_at = now

        with telemetry.span(
            f"orchestrator::request::{handle.epoch}",
            logger_name="nextedit_engine.orchestrator",
            component="orchestrator",
            metadata={"uri": snapshot.uri, "version": snapshot.version},
        ) as span_handle:
            result = await self._run(handle, delay_ms)
            span_handle.add_metadata("action", result.action)
            span_handle.add_metadata("state", handle.state)
            if result.reason:
                span_handle.add_metadata("reason", result.reason)
        return result

    async def _run(self, handle: RequestHandle, delay_ms: float) -> SuggestionResult:
        snapshot = handle.snapshot
        session = self.session(snapshot.uri)

        reason = self._gate(snapshot)
        if reason:
            return self._finish(handle, "settled", none_result(reason, handle.epoch))

        if session.serve_from_queue:
            session.serve_from_queue = False
            served = self._serve_from_queue(session, snapshot, handle.epoch)
            if served is not None:
                return self._finish(handle, "settled", served)

        handle.state = "debouncing"
        if not await self._debounce(handle, delay_ms):
            return self._finish(handle, "aborted", none_result("aborted", handle.epoch))
        if handle.epoch != self._epoch:
            return self._finish(handle, "superseded", none_result("superseded", handle.epoch))

        reason = self._gate(snapshot)
        if reason:
            return self._finish(handle, "settled", none_result(reason, handle.epoch))

        request = build_completion_request(
            snapshot,
            self.tracker,
            self.config,
            diagnostics=session.diagnostics,
            retrieval=session.retrieval,
        )
        handle.state = "in-flight"
        try:
            candidates = await self._complete(handle, request)
        except CompletionServiceError as exc:
            self._log("debug", "orchestrator::service_failed", epoch=handle.epoch, error=exc)
            return self._finish(handle, "aborted", none_result("service-error", handle.epoch))
        except Exception as exc:
            self._log(
                "warning",
                "orchestrator::service_crashed",
                epoch=handle.epoch,
                error=f"{type(exc).__name__}: {exc}",
            )
            return self._finish(handle, "aborted", none_result("service-error", handle.epoch))
        if candidates is None:
            return self._finish(handle, "aborted", none_result("aborted", handle.epoch))
        if not candidates:
            if handle.epoch == self._epoch:
                session.queue.clear()
            return self._finish(handle, "settled", none_result("empty", handle.epoch))

        if handle.epoch != self._epoch:
            return self._finish(handle, "superseded", self._extend(handle, candidates))

        reason = self._gate(snapshot)
        if reason:
            return self._finish(handle, "settled", none_result(reason, handle.epoch))
        current = self.probe.active_snapshot()
        if current is None or not _same_state(current, snapshot):
            return self._finish(handle, "settled", none_result("stale", handle.epoch))

        return self._finish(handle, "settled", self._fan_out(session, current, candidates, handle.epoch))

    async def _debounce(self, handle: RequestHandle, delay_ms: float) -> bool:
        """Wait out the debounce; ``False`` when the request was aborted meanwhile."""

        if handle.aborted:
            return False
        if delay_ms <= 0:
            return True
        try:
            await asyncio.wait_for(handle.abort_event.wait(), timeout=delay_ms / 1000.0)
        except asyncio.TimeoutError:
            return True
        return False

    async def _complete(
        self, handle: RequestHandle, request: CompletionRequest
    ) -> Optional[List[Candidate]]:
        """Await the service, racing it against the abort signal when the policy allows.

        ``None`` means the abort won.
        """

        task = asyncio.ensure_future(self.service.complete(request, cancel=handle.abort_event))
        if not self.policy.respect_cancellation:
            return list(await task)

        aborted = asyncio.ensure_future(handle.abort_event.wait())
        done, _ = await asyncio.wait({task, aborted}, return_when=asyncio.FIRST_COMPLETED)
        if task in done:
            aborted.cancel()
            return list(task.result())
        task.cancel()
        return None

    # ------------------------------------------------------------------
    # Results

    def _extend(self, handle: RequestHandle, candidates: Sequence[Candidate]) -> SuggestionResult:
        if self._rendered_epoch > handle.epoch:
            return none_result("superseded", handle.epoch)
        current = self.probe.active_snapshot()
        if current is None:
            return none_result("superseded", handle.epoch)
        extended = extend_candidates(handle.snapshot, current, candidates)
        if extended is None:
            self._log("debug", "orchestrator::extension_failed", epoch=handle.epoch)
            return none_result("irreconcilable", handle.epoch)
        reason = self._gate(current)
        if reason:
            return none_result(reason, handle.epoch)
        if not extended:
            return none_result("empty", handle.epoch)
        return self._fan_out(self.session(current.uri), current, extended, handle.epoch)

    def _fan_out(
        self,
        session: DocumentSession,
        snapshot: DocumentSnapshot,
        candidates: Iterable[Candidate],
        epoch: int,
    ) -> SuggestionResult:
        text, cursor = snapshot.text, snapshot.cursor_offset
        classified: List[tuple[Candidate, Classification]] = []
        for raw in candidates:
            normalized = normalize_candidate(text, cursor, raw)
            if normalized.candidate is None:
                self._log("debug", "orchestrator::candidate_dropped", id=raw.id, reason=normalized.dropped)
                continue
            classified.append((normalized.candidate, classify_candidate(snapshot, normalized.candidate)))

        session.queue.clear()
        for candidate, classification in classified:
            if classification.decision is DisplayDecision.JUMP:
                return self._show_jump(session, snapshot, candidate, classification, epoch)

        inline = [
            (candidate, classification)
            for candidate, classification in classified
            if classification.decision is DisplayDecision.INLINE
        ]
        if not inline:
            return none_result("suppressed", epoch)
        (first, classification), rest = inline[0], inline[1:]
        session.queue.replace(candidate for candidate, _ in rest)
        return self._show_inline(session, snapshot, first, classification, epoch)

    def _serve_from_queue(
        self, session: DocumentSession, snapshot: DocumentSnapshot, epoch: int
    ) -> Optional[SuggestionResult]:
        text, cursor = snapshot.text, snapshot.cursor_offset
        while session.queue:
            queued = session.queue.pop_next()
            if queued is None:
                break
            normalized = normalize_candidate(text, cursor, queued)
            if normalized.candidate is None:
                continue
            classification = classify_candidate(snapshot, normalized.candidate)
            if classification.decision is DisplayDecision.JUMP:
                session.queue.clear()
                return self._show_jump(session, snapshot, normalized.candidate, classification, epoch)
            if classification.decision is DisplayDecision.INLINE:
                return self._show_inline(session, snapshot, normalized.candidate, classification, epoch)
        return None

    def _show_inline(
        self,
        session: DocumentSession,
        snapshot: DocumentSnapshot,
        candidate: Candidate,
        classification: Classification,
        epoch: int,
    ) -> SuggestionResult:
        self._clear_jump(session)
        self._clear_inline(session)
        additions, deletions = edit_stats(snapshot.text, candidate)
        inline = RenderedInline(
            candidate=candidate,
            version=snapshot.version,
            cursor=snapshot.cursor,
            epoch=epoch,
            additions=additions,
            deletions=deletions,
        )
        session.inline = inline
        self._rendered_epoch = max(self._rendered_epoch, epoch)
        self._record_lifecycle("shown", inline, "GHOST_TEXT", session.uri)
        return SuggestionResult(
            action="inline", reason=classification.reason, candidate=candidate, epoch=epoch
        )

    def _show_jump(
        self,
        session: DocumentSession,
        snapshot: DocumentSnapshot,
        candidate: Candidate,
        classification: Classification,
        epoch: int,
    ) -> SuggestionResult:
        self._clear_jump(session)
        self._clear_inline(session)
        jump = build_jump(snapshot, candidate, epoch=epoch)
        session.jump = jump
        self._rendered_epoch = max(self._rendered_epoch, epoch)
        self._record_lifecycle("shown", jump, "JUMP_TO_EDIT", session.uri)
        return SuggestionResult(
            action="jump",
            reason=classification.reason,
            candidate=candidate,
            jump=jump,
            epoch=epoch,
        )

    # ------------------------------------------------------------------
    # Editor events

    def content_changed(
        self,
        uri: str,
        changes: Sequence[ContentChange],
        *,
        snapshot: Optional[DocumentSnapshot] = None,
        reason: Optional[ChangeReason] = None,
    ) -> SuggestionResult:
        """Record a mutation of ``uri``; ``snapshot`` is the post-change state."""

        if snapshot is None:
            active = self.probe.active_snapshot()
            snapshot = active if active is not None and active.uri == uri else None
        if snapshot is not None:
            self.tracker.track_change(snapshot, changes, reason=reason)

        session = self._sessions.get(uri)
        if session is None:
            return none_result("")
        cleared = self._clear_inline(session)
        jump = session.jump
        if jump is not None:
            if self.config.keep_jump_on_unrelated_edit and snapshot is not None:
                if not jump.follow(changes, snapshot.text):
                    cleared = self._clear_jump(session) or cleared
            else:
                cleared = self._clear_jump(session) or cleared
        return self._cleared(cleared, "document-changed")

    def cursor_moved(self, snapshot: DocumentSnapshot) -> SuggestionResult:
        self.tracker.track_cursor_movement(snapshot)
        session = self._sessions.get(snapshot.uri)
        if session is None:
            return none_result("")
        cleared = False
        if session.jump is not None and snapshot.cursor[0] != session.jump.origin_line:
            cleared = self._clear_jump(session)
        inline = session.inline
        if inline is not None and (
            inline.cursor != snapshot.cursor or inline.version != snapshot.version
        ):
            cleared = self._clear_inline(session) or cleared
        return self._cleared(cleared, "cursor-moved")

    def selection_changed(self, uri: str, selections: Sequence[Selection]) -> SuggestionResult:
        self.tracker.track_selection_change(uri, selections)
        session = self._sessions.get(uri)
        if session is None or not self.tracker.was_recent_multiline_selection(uri):
            return none_result("")
        return self._cleared(self._clear_inline(session), "multiline-selection")

    def active_document_changed(self, snapshot: Optional[DocumentSnapshot]) -> SuggestionResult:
        uri = snapshot.uri if snapshot is not None else None
        cleared = False
        if uri != self._active_uri:
            for session in self._sessions.values():
                cleared = self._clear_jump(session) or cleared
                cleared = self._clear_inline(session) or cleared
                session.queue.clear()
                session.serve_from_queue = False
        self._active_uri = uri
        if snapshot is not None:
            self.tracker.track_file_visit(snapshot)
        return self._cleared(cleared, "active-document-changed")

    def close_document(self, uri: str) -> None:
        session = self._sessions.pop(uri, None)
        if session is not None:
            self._clear_jump(session)
            self._clear_inline(session)
        self.tracker.forget(uri)

    def accept(self) -> SuggestionResult:
        session = self._active_session()
        if session is None:
            return none_result("nothing-to-accept")

        jump = session.jump
        if jump is not None:
            edit = jump.to_edit()
            session.jump = None
            self._record_lifecycle("accepted", jump, "JUMP_TO_EDIT", session.uri)
            return SuggestionResult(
                action="apply", reason="jump-accepted", candidate=jump.candidate, edit=edit, epoch=jump.epoch
            )

        inline = session.inline
        if inline is None:
            return none_result("nothing-to-accept")
        candidate = inline.candidate
        session.inline = None
        session.queue.shift_after_accept(candidate)
        session.serve_from_queue = bool(session.queue)
        self._record_lifecycle("accepted", inline, "GHOST_TEXT", session.uri)
        return SuggestionResult(
            action="apply",
            reason="inline-accepted",
            candidate=candidate,
            edit=TextEdit(
                uri=session.uri,
                start=candidate.start_index,
                end=candidate.end_index,
                new_text=candidate.completion,
            ),
            epoch=inline.epoch,
        )

    def dismiss(self) -> SuggestionResult:
        session = self._active_session()
        if session is None:
            return none_result("")
        cleared = self._clear_jump(session)
        cleared = self._clear_inline(session) or cleared
        session.queue.clear()
        session.serve_from_queue = False
        return self._cleared(cleared, "dismissed")

    # ------------------------------------------------------------------
    # Helpers

    def _active_session(self) -> Optional[DocumentSession]:
        uri = self._active_uri
        if uri is None:
            active = self.probe.active_snapshot()
            uri = active.uri if active is not None else None
        if uri is None:
            return None
        return self._sessions.get(uri)

    def _gate(self, snapshot: DocumentSnapshot) -> Optional[str]:
        return suppression_reason(
            snapshot,
            config=self.config,
            tracker=self.tracker,
            probe=self.probe,
            now=self.clock(),
        )

    def _clear_jump(self, session: DocumentSession) -> bool:
        jump = session.jump
        if jump is None:
            return False
        session.jump = None
        self._record_lifecycle("disposed", jump, "JUMP_TO_EDIT", session.uri)
        return True

    def _clear_inline(self, session: DocumentSession) -> bool:
        inline = session.inline
        if inline is None:
            return False
        session.inline = None
        self._record_lifecycle("disposed", inline, "GHOST_TEXT", session.uri)
        return True

    def _record_lifecycle(
        self,
        kind: str,
        rendered: RenderedInline | PendingJump,
        suggestion_type: str,
        uri: str,
    ) -> None:
        telemetry.suggestion_event(
            kind,
            suggestion_id=rendered.candidate.id,
            suggestion_type=suggestion_type,
            additions=rendered.additions,
            deletions=rendered.deletions,
            uri=uri,
        )

    def _cleared(self, cleared: bool, reason: str) -> SuggestionResult:
        if cleared:
            return SuggestionResult(action="clear", reason=reason, epoch=self._epoch)
        return none_result("")

    def _finish(self, handle: RequestHandle, state: RequestState, result: SuggestionResult) -> SuggestionResult:
        if handle.state != "aborted" or state == "aborted":
            handle.state = state
        if result.action == "none":
            self._log("debug", "orchestrator::no_suggestion", epoch=handle.epoch, reason=result.reason)
        return result

    def _log(self, level: str, message: str, **data: object) -> None:
        telemetry.log(self.logger, level, message, dict(data))


def _same_state(current: DocumentSnapshot, requested: DocumentSnapshot) -> bool:
    return (
        current.uri == requested.uri
        and current.version == requested.version
        and current.text == requested.text
        and current.cursor == requested.cursor
    )


__all__ = [
    "DocumentSession",
    "RenderedInline",
    "RequestHandle",
    "RequestState",
    "SuggestionOrchestrator",
]

from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Sequence

from nextedit_engine.config import SuggestionConfig
from nextedit_engine.document import ContentChange, DocumentSnapshot
from nextedit_engine.retrieval import Diagnostic
from nextedit_engine.service import CompletionRequest, CompletionServiceError
from nextedit_engine.suggestions import (
    Candidate,
    EditorState,
    SuggestionOrchestrator,
    SuggestionResult,
    TextEdit,
)

URI = "file:///src/a.py"
ORIGINAL = "".join(f"line{index}\n" for index in range(10))
EDITED = "line0!" + ORIGINAL[5:]
# Offsets in EDITED: line 0 is 7 characters, every later line 6.
LINE1_END = 12
LINE8_START = 49


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProbe:
    def __init__(self) -> None:
        self.snapshot: Optional[DocumentSnapshot] = None
        self.state = EditorState()

    def active_snapshot(self) -> Optional[DocumentSnapshot]:
        return self.snapshot

    def editor_state(self) -> EditorState:
        return self.state


class ScriptedService:
    """Replays responses in order; a response may be a callable or an exception."""

    def __init__(self, *responses: Any, hold_first: bool = False) -> None:
        self.responses = list(responses)
        self.requests: List[CompletionRequest] = []
        self.hold_first = hold_first
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def complete(self, request: CompletionRequest, *, cancel: Any) -> Sequence[Candidate]:
        self.requests.append(request)
        response = self.responses.pop(0)
        self.started.set()
        if self.hold_first and len(self.requests) == 1:
            await self.release.wait()
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response


def candidate(name: str, start: int, end: int, completion: str) -> Candidate:
    return Candidate(id=name, start_index=start, end_index=end, completion=completion)


def make_orchestrator(
    service: ScriptedService, **overrides: Any
) -> tuple[SuggestionOrchestrator, FakeProbe, FakeClock]:
    overrides.setdefault("debounce_override_ms", 100)
    clock = FakeClock()
    probe = FakeProbe()
    orchestrator = SuggestionOrchestrator(
        service, probe, config=SuggestionConfig(**overrides), clock=clock
    )
    return orchestrator, probe, clock


def open_and_edit(orchestrator: SuggestionOrchestrator, probe: FakeProbe) -> DocumentSnapshot:
    before = DocumentSnapshot(uri=URI, version=1, text=ORIGINAL, cursor=(0, 5), file_path="src/a.py")
    probe.snapshot = before
    orchestrator.active_document_changed(before)
    after = before.with_text(EDITED, cursor_offset=6)
    probe.snapshot = after
    orchestrator.content_changed(URI, [ContentChange(5, 0, "!")], snapshot=after)
    return after


def request(orchestrator: SuggestionOrchestrator, snapshot: DocumentSnapshot) -> SuggestionResult:
    return asyncio.run(orchestrator.request_suggestion(snapshot))


def test_inline_candidate_is_rendered_and_accepted() -> None:
    service = ScriptedService([candidate("s1", 6, 6, " = done")])
    orchestrator, probe, _ = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)

    result = request(orchestrator, snapshot)

    assert result.action == "inline"
    assert result.candidate == candidate("s1", 6, 6, " = done")
    assert service.requests[0].original_file_contents == ORIGINAL
    accepted = orchestrator.accept()
    assert accepted.action == "apply"
    assert accepted.reason == "inline-accepted"
    assert accepted.edit == TextEdit(uri=URI, start=6, end=6, new_text=" = done")
    assert orchestrator.accept().reason == "nothing-to-accept"


def test_first_jump_wins_over_inline_candidates() -> None:
    service = ScriptedService(
        [candidate("inline", 6, 6, "?"), candidate("far", LINE8_START, LINE8_START + 5, "LINE8")]
    )
    orchestrator, probe, _ = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)

    result = request(orchestrator, snapshot)

    assert result.action == "jump"
    assert result.reason == "far-from-cursor"
    assert result.jump is not None and result.jump.target_line == 8
    session = orchestrator.session(URI)
    assert len(session.queue) == 0
    accepted = orchestrator.accept()
    assert accepted.reason == "jump-accepted"
    assert accepted.edit == TextEdit(uri=URI, start=LINE8_START, end=LINE8_START + 5, new_text="LINE8")


def test_remaining_candidates_are_served_from_queue_after_accept() -> None:
    service = ScriptedService(
        [candidate("first", 6, 6, "?"), candidate("second", LINE1_END, LINE1_END, "  # one")]
    )
    orchestrator, probe, clock = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)
    assert request(orchestrator, snapshot).candidate == candidate("first", 6, 6, "?")

    edit = orchestrator.accept().edit
    assert edit is not None
    applied = snapshot.with_text(
        snapshot.text[: edit.start] + edit.new_text + snapshot.text[edit.end :], cursor_offset=7
    )
    probe.snapshot = applied
    orchestrator.content_changed(URI, [ContentChange(6, 0, "?")], snapshot=applied)
    clock.advance(1)

    served = request(orchestrator, applied)

    assert served.action == "inline"
    assert served.candidate == candidate("second", LINE1_END + 1, LINE1_END + 1, "  # one")
    assert len(service.requests) == 1


def test_fresh_response_without_usable_candidates_empties_queue() -> None:
    first_response = [candidate("first", 6, 6, "?"), candidate("second", LINE1_END, LINE1_END, "  # one")]
    service = ScriptedService(
        first_response, [], first_response, [candidate("blank", 6, 6, "")]
    )
    orchestrator, probe, clock = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)
    queue = orchestrator.session(URI).queue

    assert request(orchestrator, snapshot).action == "inline"
    assert [item.id for item in queue] == ["second"]
    clock.advance(1)
    assert request(orchestrator, snapshot).reason == "empty"
    assert len(queue) == 0

    clock.advance(1)
    assert request(orchestrator, snapshot).action == "inline"
    assert len(queue) == 1
    clock.advance(1)
    assert request(orchestrator, snapshot).reason == "suppressed"
    assert len(queue) == 0


def test_new_request_aborts_in_flight_hosted_request() -> None:
    service = ScriptedService([candidate("old", 6, 6, "x")], [candidate("new", 6, 6, "y")], hold_first=True)
    orchestrator, probe, clock = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)

    async def scenario() -> tuple[SuggestionResult, SuggestionResult]:
        first = asyncio.create_task(orchestrator.request_suggestion(snapshot))
        await service.started.wait()
        clock.advance(1)
        second = await orchestrator.request_suggestion(snapshot)
        return await first, second

    first, second = asyncio.run(scenario())

    assert first.action == "none" and first.reason == "aborted"
    assert second.action == "inline"
    assert second.candidate is not None and second.candidate.id == "new"


def test_local_request_superseded_during_debounce() -> None:
    service = ScriptedService([], [candidate("latest", 6, 6, "z")])
    orchestrator, probe, clock = make_orchestrator(service, mode="local")
    snapshot = open_and_edit(orchestrator, probe)

    async def scenario() -> List[SuggestionResult]:
        first = await orchestrator.request_suggestion(snapshot)
        waiting = asyncio.create_task(orchestrator.request_suggestion(snapshot))
        await asyncio.sleep(0)
        clock.advance(1)
        latest = await orchestrator.request_suggestion(snapshot)
        return [first, await waiting, latest]

    first, waiting, latest = asyncio.run(scenario())

    assert first.reason == "empty"
    assert waiting.reason == "superseded"
    assert latest.action == "inline"
    assert len(service.requests) == 2


def test_superseded_local_response_is_extended_with_typed_text() -> None:
    service = ScriptedService([candidate("s", 6, 6, "bar)")], [], hold_first=True)
    orchestrator, probe, _ = make_orchestrator(service, mode="local")
    snapshot = open_and_edit(orchestrator, probe)

    async def scenario() -> tuple[SuggestionResult, SuggestionResult]:
        first = asyncio.create_task(orchestrator.request_suggestion(snapshot))
        await service.started.wait()
        typed = snapshot.with_text(EDITED[:6] + "b" + EDITED[6:], cursor_offset=7)
        probe.snapshot = typed
        orchestrator.content_changed(URI, [ContentChange(6, 0, "b")], snapshot=typed)
        second = asyncio.create_task(orchestrator.request_suggestion(typed))
        await asyncio.sleep(0)
        service.release.set()
        return await first, await second

    first, second = asyncio.run(scenario())

    assert first.action == "inline"
    assert first.candidate == candidate("s", 7, 7, "ar)")
    assert second.reason == "empty"


def test_superseded_response_that_disagrees_with_typed_text_is_dropped() -> None:
    service = ScriptedService([candidate("s", 6, 6, "bar)")], [], hold_first=True)
    orchestrator, probe, _ = make_orchestrator(service, mode="local")
    snapshot = open_and_edit(orchestrator, probe)

    async def scenario() -> SuggestionResult:
        first = asyncio.create_task(orchestrator.request_suggestion(snapshot))
        await service.started.wait()
        typed = snapshot.with_text(EDITED[:6] + "x" + EDITED[6:], cursor_offset=7)
        probe.snapshot = typed
        orchestrator.content_changed(URI, [ContentChange(6, 0, "x")], snapshot=typed)
        second = asyncio.create_task(orchestrator.request_suggestion(typed))
        await asyncio.sleep(0)
        service.release.set()
        await second
        return await first

    first = asyncio.run(scenario())

    assert first.action == "none"
    assert first.reason == "irreconcilable"
    assert orchestrator.session(URI).inline is None


def test_gates_suppress_without_calling_service() -> None:
    service = ScriptedService()
    orchestrator, probe, clock = make_orchestrator(service)
    snapshot = DocumentSnapshot(uri=URI, version=1, text=ORIGINAL)
    probe.snapshot = snapshot
    orchestrator.active_document_changed(snapshot)
    assert request(orchestrator, snapshot).reason == "unchanged-document"

    edited = open_and_edit(orchestrator, probe)
    probe.state = EditorState(focused=False)
    assert request(orchestrator, edited).reason == "unfocused"

    probe.state = EditorState()
    orchestrator.config.snooze_until = clock.now + 60
    assert request(orchestrator, edited).reason == "snoozed"
    assert service.requests == []


def test_result_for_moved_cursor_is_stale() -> None:
    probe_holder: List[FakeProbe] = []

    def move_cursor(request: CompletionRequest) -> List[Candidate]:
        probe = probe_holder[0]
        assert probe.snapshot is not None
        probe.snapshot = probe.snapshot.with_cursor((1, 0))
        return [candidate("s", 6, 6, "x")]

    service = ScriptedService(move_cursor)
    orchestrator, probe, _ = make_orchestrator(service)
    probe_holder.append(probe)
    snapshot = open_and_edit(orchestrator, probe)

    assert request(orchestrator, snapshot).reason == "stale"


def test_service_failure_is_reported_not_raised() -> None:
    service = ScriptedService(CompletionServiceError("boom"))
    orchestrator, probe, _ = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)

    result = request(orchestrator, snapshot)

    assert result.action == "none"
    assert result.reason == "service-error"


def test_unwrapped_service_exceptions_degrade_to_no_suggestion() -> None:
    service = ScriptedService(TimeoutError("read timeout"), ConnectionError("socket closed"))
    orchestrator, probe, clock = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)

    timed_out = request(orchestrator, snapshot)
    clock.advance(1)
    disconnected = request(orchestrator, snapshot)

    assert (timed_out.action, timed_out.reason) == ("none", "service-error")
    assert (disconnected.action, disconnected.reason) == ("none", "service-error")
    assert orchestrator.current_request is not None
    assert orchestrator.current_request.state == "aborted"


def render_jump(**overrides: Any) -> tuple[SuggestionOrchestrator, FakeProbe, DocumentSnapshot]:
    service = ScriptedService([candidate("far", LINE8_START, LINE8_START + 5, "LINE8")])
    orchestrator, probe, _ = make_orchestrator(service, **overrides)
    snapshot = open_and_edit(orchestrator, probe)
    assert request(orchestrator, snapshot).action == "jump"
    return orchestrator, probe, snapshot


def edit(
    orchestrator: SuggestionOrchestrator,
    probe: FakeProbe,
    snapshot: DocumentSnapshot,
    change: ContentChange,
) -> tuple[SuggestionResult, DocumentSnapshot]:
    after = snapshot.with_text(
        change.apply_to(snapshot.text), cursor_offset=change.range_offset + len(change.text)
    )
    probe.snapshot = after
    return orchestrator.content_changed(URI, [change], snapshot=after), after


def test_any_edit_clears_pending_jump_by_default() -> None:
    orchestrator, probe, snapshot = render_jump()

    result, _ = edit(orchestrator, probe, snapshot, ContentChange(6, 0, "?"))

    assert result.action == "clear"
    assert result.reason == "document-changed"
    assert orchestrator.session(URI).jump is None


def test_unrelated_edit_moves_jump_when_configured() -> None:
    orchestrator, probe, snapshot = render_jump(keep_jump_on_unrelated_edit=True)

    result, after = edit(orchestrator, probe, snapshot, ContentChange(6, 0, "??"))

    assert result.action == "none"
    jump = orchestrator.session(URI).jump
    assert jump is not None
    assert jump.to_edit().start == LINE8_START + 2

    overlapping = ContentChange(LINE8_START + 2, 1, "L")
    result, _ = edit(orchestrator, probe, after, overlapping)
    assert result.action == "clear"
    assert orchestrator.session(URI).jump is None


def test_cursor_leaving_origin_line_clears_jump() -> None:
    orchestrator, probe, snapshot = render_jump()

    assert orchestrator.cursor_moved(snapshot.with_cursor((0, 2))).action == "none"
    moved = orchestrator.cursor_moved(snapshot.with_cursor((3, 0)))

    assert moved.action == "clear"
    assert moved.reason == "cursor-moved"


def test_dismiss_and_document_switch_clear_suggestions() -> None:
    service = ScriptedService(
        [candidate("a", 6, 6, "?"), candidate("b", LINE1_END, LINE1_END, "  # one")],
        [candidate("c", 6, 6, "!")],
    )
    orchestrator, probe, clock = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)
    request(orchestrator, snapshot)

    dismissed = orchestrator.dismiss()
    assert dismissed.action == "clear" and dismissed.reason == "dismissed"
    assert len(orchestrator.session(URI).queue) == 0

    clock.advance(1)
    assert request(orchestrator, snapshot).action == "inline"
    other = DocumentSnapshot(uri="file:///b.py", version=1, text="b")
    probe.snapshot = other
    switched = orchestrator.active_document_changed(other)
    assert switched.action == "clear"
    assert switched.reason == "active-document-changed"
    assert not orchestrator.session(URI).has_rendered


def test_context_is_sent_and_closed_documents_are_forgotten() -> None:
    service = ScriptedService([])
    orchestrator, probe, _ = make_orchestrator(service)
    snapshot = open_and_edit(orchestrator, probe)
    orchestrator.update_context(URI, diagnostics=[Diagnostic(2, 0, "error", "undefined name")])

    assert request(orchestrator, snapshot).reason == "empty"
    assert orchestrator.current_request is not None
    assert orchestrator.current_request.state == "settled"
    assert service.requests[0].retrieval_chunks[0].content == "src/a.py:2:0: error: undefined name\n"

    orchestrator.close_document(URI)
    assert orchestrator.tracker.original_content(URI) is None
    assert len(orchestrator.session(URI).queue) == 0

"""Assembly of the request handed to a :class:`CompletionService`."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from nextedit_engine.config import SuggestionConfig
from nextedit_engine.document.snapshot import DocumentSnapshot
from nextedit_engine.document.tracker import DocumentTracker, UserAction
from nextedit_engine.retrieval.chunks import (
    Diagnostic,
    FileChunk,
    build_retrieval_context,
    diagnostics_chunk,
    recent_buffer_chunks,
)

_DIFF_HEADER_PREFIXES = ("Index:", "===", "---", "+++")


@dataclass(slots=True)
class CompletionRequest:
    file_path: str
    file_contents: str
    original_file_contents: str
    cursor_position: int
    recent_changes: str = ""
    file_chunks: List[FileChunk] = field(default_factory=list)
    retrieval_chunks: List[FileChunk] = field(default_factory=list)
    recent_user_actions: List[UserAction] = field(default_factory=list)
    changes_above_cursor: bool = True
    multiple_suggestions: bool = False
    use_bytes: bool = False
    uri: str = ""
    version: int = 0
    language_id: str = "plaintext"

    def to_payload(self) -> Dict[str, Any]:
        """Plain JSON-ready mapping of the wire fields."""

        payload = asdict(self)
        for key in ("uri", "version", "language_id"):
            payload.pop(key)
        return payload


def format_recent_changes(changes: Iterable[Tuple[str, str]]) -> str:
    """Render ``(file_path, diff)`` pairs as ``File: <path>:`` blocks without diff headers."""

    blocks = []
    for path, diff in changes:
        if not diff:
            continue
        lines = [
            line for line in diff.split("\n") if not line.startswith(_DIFF_HEADER_PREFIXES)
        ]
        cleaned = "\n".join(lines).strip()
        if cleaned:
            blocks.append(f"File: {path}:\n{cleaned}\n")
    return "".join(blocks)


def build_completion_request(
    snapshot: DocumentSnapshot,
    tracker: DocumentTracker,
    config: SuggestionConfig,
    *,
    diagnostics: Sequence[Diagnostic] = (),
    retrieval: Sequence[FileChunk] = (),
    multiple_suggestions: bool = True,
) -> CompletionRequest:
    file_path = snapshot.file_path.replace("\\", "/") or "untitled"
    original = tracker.original_content(snapshot.uri)

    history = tracker.edit_diff_history()
    recent_changes = format_recent_changes(
        (record.file_path, record.diff) for record in history
    )

    context_files = tracker.recent_context_files(snapshot.uri, config.max_context_files)
    file_chunks = recent_buffer_chunks(context_files)

    sources: List[FileChunk] = []
    diagnostic_chunk = diagnostics_chunk(file_path, diagnostics)
    if diagnostic_chunk is not None:
        sources.append(diagnostic_chunk)
    sources.extend(retrieval)
    retrieval_chunks = build_retrieval_context(
        sources,
        max_lines=config.retrieval_max_lines,
        max_chunks=config.retrieval_max_chunks,
    )

    line, _ = snapshot.cursor
    return CompletionRequest(
        file_path=file_path,
        file_contents=snapshot.text,
        original_file_contents=original if original is not None else snapshot.text,
        cursor_position=snapshot.cursor_offset,
        recent_changes=recent_changes,
        file_chunks=file_chunks,
        retrieval_chunks=retrieval_chunks,
        recent_user_actions=tracker.user_actions(
            snapshot.file_path, (line, snapshot.cursor_byte_offset)
        ),
        multiple_suggestions=multiple_suggestions,
        uri=snapshot.uri,
        version=snapshot.version,
        language_id=snapshot.language_id,
    )


__all__ = ["CompletionRequest", "build_completion_request", "format_recent_changes"]

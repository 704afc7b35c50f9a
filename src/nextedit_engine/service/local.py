"""Completion service backed by a local next-edit model.

The model sees a window of the file as it was when opened and as it is now,
and writes the updated window. The difference between the current and updated
windows becomes a single candidate.
"""

from __future__ import annotations

import itertools
from typing import Awaitable, Callable, List, Sequence

from nextedit_engine.diff.minimal import compute_replacement_span
from nextedit_engine.runtime import telemetry

from .protocol import CancellationSignal, Candidate, CompletionServiceError, RequestAborted
from .request import CompletionRequest

FILE_SEP_TOKEN = "<|file_sep|>"
STOP_TOKENS = ("<|file_sep|>", "</s>")
LOCAL_CONTEXT_LINE_RADIUS = 40

Generator = Callable[[str], Awaitable[str]]


def build_local_prompt(file_path: str, original: str, current: str) -> str:
    path = file_path.replace("\\", "/") or "untitled"
    return "\n".join(
        [
            f"{FILE_SEP_TOKEN}original/{path}",
            original,
            f"{FILE_SEP_TOKEN}current/{path}",
            current,
            f"{FILE_SEP_TOKEN}updated/{path}",
            "",
        ]
    )


def strip_stop_tokens(text: str) -> str:
    cut = len(text)
    for token in STOP_TOKENS:
        index = text.find(token)
        if index != -1:
            cut = min(cut, index)
    return text[:cut]


class LocalCompletionService:
    """Adapts an async ``generate(prompt) -> str`` callable to :class:`CompletionService`."""

    def __init__(
        self, generate: Generator, *, context_line_radius: int = LOCAL_CONTEXT_LINE_RADIUS
    ) -> None:
        self._generate = generate
        self.context_line_radius = context_line_radius
        self._ids = itertools.count(1)
        self.logger = telemetry.get_logger("nextedit_engine.service")

    async def complete(
        self, request: CompletionRequest, *, cancel: CancellationSignal
    ) -> Sequence[Candidate]:
        if cancel.is_set():
            raise RequestAborted("request cancelled before generation")

        lines = request.file_contents.split("\n")
        cursor = min(max(0, request.cursor_position), len(request.file_contents))
        cursor_line = request.file_contents.count("\n", 0, cursor)
        first = max(0, cursor_line - self.context_line_radius)
        last = min(len(lines), cursor_line + self.context_line_radius + 1)

        current_window = "\n".join(lines[first:last])
        original_window = "\n".join(request.original_file_contents.split("\n")[first:last])
        window_offset = sum(len(line) + 1 for line in lines[:first])

        prompt = build_local_prompt(request.file_path, original_window, current_window)
        with telemetry.span(
            "service::local_generate",
            logger_name="nextedit_engine.service",
            metadata={"file": request.file_path, "lines": last - first},
        ) as handle:
            try:
                raw = await self._generate(prompt)
            except CompletionServiceError:
                raise
            except Exception as exc:
                raise CompletionServiceError(f"local generation failed: {exc}") from exc
            handle.add_metadata("chars", len(raw))

        updated = strip_stop_tokens(raw)
        if updated.endswith("\n") and not current_window.endswith("\n"):
            updated = updated[:-1]

        span = compute_replacement_span(current_window, updated)
        if span is None:
            return []
        candidates: List[Candidate] = [
            Candidate(
                id=f"local-{next(self._ids)}",
                start_index=window_offset + span.start,
                end_index=window_offset + span.end,
                completion=span.replacement,
            )
        ]
        telemetry.log(
            self.logger,
            "debug",
            "service::local_candidate",
            {"start": candidates[0].start_index, "end": candidates[0].end_index},
        )
        return candidates


__all__ = [
    "FILE_SEP_TOKEN",
    "Generator",
    "LOCAL_CONTEXT_LINE_RADIUS",
    "LocalCompletionService",
    "STOP_TOKENS",
    "build_local_prompt",
    "strip_stop_tokens",
]

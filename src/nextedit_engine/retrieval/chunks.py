"""File chunks sent as request context: truncation, fusion and sources."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

DIAGNOSTICS_FILE_PATH = "diagnostics"


@dataclass(frozen=True, slots=True)
class FileChunk:
    """A line range of one file. Lines are inclusive on both ends."""

    file_path: str
    start_line: int
    end_line: int
    content: str
    timestamp: Optional[float] = None

    def touches(self, other: "FileChunk") -> bool:
        return (
            other.start_line <= self.end_line + 1
            and self.start_line <= other.end_line + 1
        )

    def contains(self, other: "FileChunk") -> bool:
        return self.start_line <= other.start_line and self.end_line >= other.end_line


class RecentBuffer(Protocol):
    """Anything carrying a visited file's path, text and visit time."""

    @property
    def file_path(self) -> str: ...

    @property
    def content(self) -> str: ...

    @property
    def timestamp(self) -> Optional[float]: ...


@dataclass(frozen=True, slots=True)
class Diagnostic:
    line: int
    column: int
    severity: str
    message: str


def truncate_retrieval_chunk(chunk: FileChunk, max_lines: int) -> FileChunk:
    lines = chunk.content.split("\n")
    if len(lines) <= max_lines:
        return chunk
    return replace(
        chunk,
        content="\n".join(lines[:max_lines]),
        end_line=min(chunk.end_line, chunk.start_line + max_lines - 1),
    )


def _merge(first: FileChunk, second: FileChunk) -> FileChunk:
    if first.contains(second):
        return first
    if second.contains(first):
        return second
    if first.start_line <= second.start_line:
        content = f"{first.content}\n{second.content}"
    else:
        content = f"{second.content}\n{first.content}"
    return FileChunk(
        file_path=first.file_path,
        start_line=min(first.start_line, second.start_line),
        end_line=max(first.end_line, second.end_line),
        content=content.strip(),
        timestamp=max(first.timestamp or 0, second.timestamp or 0),
    )


def fuse_and_dedup_retrieval_snippets(snippets: Iterable[FileChunk]) -> List[FileChunk]:
    """Merge touching same-file snippets into the entry first seen for that range.

    Snippets from different files never merge; a snippet inside an existing
    range is absorbed without changing it.
    """

    fused: List[FileChunk] = []
    for snippet in snippets:
        for index, existing in enumerate(fused):
            if existing.file_path != snippet.file_path:
                continue
            if existing.touches(snippet):
                fused[index] = _merge(existing, snippet)
                break
            if existing == snippet:
                break
        else:
            fused.append(snippet)
    return fused


def build_retrieval_context(
    chunks: Iterable[FileChunk], *, max_lines: int, max_chunks: int
) -> List[FileChunk]:
    """Truncate, fuse, then keep the ``max_chunks`` most recent entries.

    Chunks without a timestamp rank oldest; ties keep encounter order. The
    survivors are returned in fused order.
    """

    fused = fuse_and_dedup_retrieval_snippets(
        truncate_retrieval_chunk(chunk, max_lines) for chunk in chunks
    )
    if len(fused) <= max_chunks:
        return fused

    def recency(item: Tuple[int, FileChunk]) -> Tuple[bool, float, int]:
        index, chunk = item
        has_timestamp = chunk.timestamp is not None
        return (has_timestamp, chunk.timestamp or 0.0, -index)

    ranked = sorted(enumerate(fused), key=recency, reverse=True)
    keep = sorted(index for index, _ in ranked[: max(0, max_chunks)])
    return [fused[index] for index in keep]


def diagnostics_chunk(
    file_path: str, diagnostics: Sequence[Diagnostic]
) -> Optional[FileChunk]:
    if not diagnostics:
        return None
    content = "".join(
        f"{file_path}:{item.line}:{item.column}: {item.severity}: {item.message}\n"
        for item in diagnostics
    )
    return FileChunk(
        file_path=DIAGNOSTICS_FILE_PATH,
        start_line=1,
        end_line=len(diagnostics),
        content=content,
    )


def recent_buffer_chunks(
    buffers: Iterable[RecentBuffer], *, limit: int = 3, max_lines: int = 30
) -> List[FileChunk]:
    """Leading window of each of the first ``limit`` recently visited buffers."""

    chunks: List[FileChunk] = []
    for buffer in list(buffers)[:limit]:
        lines = buffer.content.split("\n")
        end_line = min(max_lines, len(lines))
        chunks.append(
            FileChunk(
                file_path=buffer.file_path.replace("\\", "/"),
                start_line=0,
                end_line=end_line,
                content="\n".join(lines[:end_line]),
                timestamp=buffer.timestamp,
            )
        )
    return chunks


__all__ = [
    "DIAGNOSTICS_FILE_PATH",
    "Diagnostic",
    "FileChunk",
    "RecentBuffer",
    "build_retrieval_context",
    "diagnostics_chunk",
    "fuse_and_dedup_retrieval_snippets",
    "recent_buffer_chunks",
    "truncate_retrieval_chunk",
]

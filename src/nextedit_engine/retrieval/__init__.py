"""Retrieval context assembly."""

from .chunks import (
    DIAGNOSTICS_FILE_PATH,
    Diagnostic,
    FileChunk,
    RecentBuffer,
    build_retrieval_context,
    diagnostics_chunk,
    fuse_and_dedup_retrieval_snippets,
    recent_buffer_chunks,
    truncate_retrieval_chunk,
)

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

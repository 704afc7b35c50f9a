"""Minimal-diff computation and unified-diff formatting."""

from .minimal import (
    ChangedSpan,
    ReplacementSpan,
    common_prefix_length,
    compute_replacement_span,
    isolate_change,
)
from .unified import (
    DEFAULT_CONTEXT_LINES,
    DEFAULT_MAX_DIFF_CHARS,
    SEPARATOR,
    TRUNCATION_MARKER,
    format_recent_change_diff,
)

__all__ = [
    "ChangedSpan",
    "DEFAULT_CONTEXT_LINES",
    "DEFAULT_MAX_DIFF_CHARS",
    "ReplacementSpan",
    "SEPARATOR",
    "TRUNCATION_MARKER",
    "common_prefix_length",
    "compute_replacement_span",
    "format_recent_change_diff",
    "isolate_change",
]

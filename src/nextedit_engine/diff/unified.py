"""Unified-diff rendering of a single content change for request history."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from nextedit_engine.document.snapshot import ContentChange

DEFAULT_CONTEXT_LINES = 2
DEFAULT_MAX_DIFF_CHARS = 20_000
SEPARATOR = "=" * 67
TRUNCATION_MARKER = "...[truncated]"


def _to_lines(text: str) -> List[str]:
    if not text:
        return []
    return text.split("\n")


def _last_lines(text: str, count: int) -> List[str]:
    if not text or count <= 0:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines[-count:]


def _first_lines(text: str, count: int) -> List[str]:
    if not text or count <= 0:
        return []
    return text.split("\n")[:count]


def format_recent_change_diff(
    file_path: str,
    previous_content: str,
    change: ContentChange,
    *,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    max_diff_chars: int = DEFAULT_MAX_DIFF_CHARS,
) -> Optional[str]:
    """Render ``change`` against ``previous_content`` as a one-hunk unified diff.

    Returns ``None`` for an invalid range, for a change that replaces text with
    itself, and when not even the header fits in ``max_diff_chars``.
    """

    start = change.range_offset
    end = change.range_offset + change.range_length
    if start < 0 or end < start or end > len(previous_content):
        return None

    deleted = previous_content[start:end]
    if deleted == change.text:
        return None

    before_context = _last_lines(previous_content[:start], context_lines)
    after_context = _first_lines(previous_content[end:], context_lines)
    deleted_lines = _to_lines(deleted)
    added_lines = _to_lines(change.text)

    change_line = previous_content.count("\n", 0, start)
    start_line = max(1, change_line + 1 - len(before_context))
    old_count = len(before_context) + len(deleted_lines) + len(after_context)
    new_count = len(before_context) + len(added_lines) + len(after_context)

    body = (
        [f" {line}" for line in before_context]
        + [f"-{line}" for line in deleted_lines]
        + [f"+{line}" for line in added_lines]
        + [f" {line}" for line in after_context]
    )
    header = [
        f"Index: {file_path}",
        SEPARATOR,
        f"@@ -{start_line},{old_count} +{start_line},{new_count} @@",
    ]

    full = "\n".join(header + body)
    if len(full) <= max_diff_chars:
        return full
    return _truncate(header, body, max_diff_chars)


def _truncate(
    header: Sequence[str], body: Sequence[str], max_diff_chars: int
) -> Optional[str]:
    header_text = "\n".join(header)
    if len(header_text) > max_diff_chars:
        return None
    if len(header_text) + 1 + len(TRUNCATION_MARKER) > max_diff_chars:
        return header_text

    # header + "\n" + body + "\n" + marker
    budget = max_diff_chars - (len(header_text) + 1 + len(TRUNCATION_MARKER) + 1)
    kept: List[str] = []
    used = 0
    for line in body:
        cost = len(line) + (1 if kept else 0)
        if used + cost > budget:
            break
        kept.append(line)
        used += cost

    if not kept:
        return f"{header_text}\n{TRUNCATION_MARKER}"
    return "\n".join([header_text, *kept, TRUNCATION_MARKER])


__all__ = [
    "DEFAULT_CONTEXT_LINES",
    "DEFAULT_MAX_DIFF_CHARS",
    "SEPARATOR",
    "TRUNCATION_MARKER",
    "format_recent_change_diff",
]

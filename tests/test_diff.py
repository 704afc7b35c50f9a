from __future__ import annotations

from nextedit_engine.diff import (
    SEPARATOR,
    TRUNCATION_MARKER,
    compute_replacement_span,
    format_recent_change_diff,
    isolate_change,
)
from nextedit_engine.document import ContentChange

PREVIOUS = "one\ntwo\nthree\nfour\nfive\nsix\n"


def test_diff_renders_header_context_and_hunk() -> None:
    change = ContentChange(range_offset=PREVIOUS.index("four"), range_length=4, text="FOUR")
    diff = format_recent_change_diff("src/app.py", PREVIOUS, change)

    assert diff is not None
    lines = diff.split("\n")
    assert lines[0] == "Index: src/app.py"
    assert lines[1] == SEPARATOR
    assert lines[2] == "@@ -2,5 +2,5 @@"
    assert lines[3:] == [" two", " three", "-four", "+FOUR", " ", " five"]


def test_diff_for_pure_insertion_has_no_removed_lines() -> None:
    change = ContentChange(range_offset=0, range_length=0, text="zero\n")
    diff = format_recent_change_diff("a.txt", PREVIOUS, change, context_lines=1)

    assert diff is not None
    assert "-" not in "".join(line[0] for line in diff.split("\n")[3:])
    assert "+zero" in diff


def test_diff_returns_none_for_invalid_or_identity_changes() -> None:
    assert format_recent_change_diff("a", "abc", ContentChange(5, 1, "x")) is None
    assert format_recent_change_diff("a", "abc", ContentChange(0, 1, "a")) is None


def test_long_diff_is_truncated_on_whole_lines() -> None:
    change = ContentChange(range_offset=0, range_length=0, text="x" * 30 + "\n" + "y" * 30)
    header_length = len("\n".join(["Index: a", SEPARATOR, "@@ -1,2 +1,4 @@"]))
    limit = header_length + 1 + 31 + 1 + len(TRUNCATION_MARKER) + 5

    diff = format_recent_change_diff("a", "ab\ncd", change, max_diff_chars=limit)

    assert diff is not None
    assert len(diff) <= limit
    assert diff.endswith(TRUNCATION_MARKER)
    assert "+" + "x" * 30 in diff
    assert "y" * 30 not in diff


def test_truncation_returns_none_when_header_does_not_fit() -> None:
    change = ContentChange(range_offset=0, range_length=0, text="new")
    assert format_recent_change_diff("a", "old", change, max_diff_chars=10) is None


def test_truncation_keeps_header_alone_when_marker_does_not_fit() -> None:
    change = ContentChange(range_offset=0, range_length=0, text="new value here\n")
    full = format_recent_change_diff("a", "old", change)
    assert full is not None
    header = "\n".join(full.split("\n")[:3])

    limit = len(header) + len(TRUNCATION_MARKER)
    diff = format_recent_change_diff("a", "old", change, max_diff_chars=limit)

    assert diff == header


def test_isolate_change_strips_shared_prefix_and_suffix() -> None:
    span = isolate_change("let value = 1;", "let value = 42;")
    assert (span.prefix_len, span.suffix_len) == (12, 1)
    assert (span.old_changed, span.new_changed) == ("1", "42")
    assert isolate_change("same", "same").is_empty


def test_replacement_span_for_insertion_and_equal_text() -> None:
    span = compute_replacement_span("foo(", "foo()")
    assert span is not None
    assert (span.start, span.end, span.replacement) == (4, 4, ")")
    assert compute_replacement_span("x", "x") is None

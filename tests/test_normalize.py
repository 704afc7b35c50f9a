from __future__ import annotations

from nextedit_engine.suggestions import Candidate, normalize_candidate, trim_suffix_overlap


def candidate(start: int, end: int, completion: str) -> Candidate:
    return Candidate(id="c", start_index=start, end_index=end, completion=completion)


def test_out_of_range_candidate_is_malformed() -> None:
    assert normalize_candidate("abc", 0, candidate(2, 9, "x")).dropped == "malformed"
    assert normalize_candidate("abc", 0, candidate(2, 1, "x")).dropped == "malformed"


def test_empty_completion_is_dropped() -> None:
    assert normalize_candidate("abc", 0, candidate(0, 0, "")).dropped == "empty-completion"


def test_candidate_repeating_typed_prefix_is_reanchored() -> None:
    result = normalize_candidate("foo(", 4, candidate(0, 4, "foo(bar)"))
    assert result.ok
    assert result.candidate == candidate(4, 4, "bar)")


def test_candidate_that_only_repeats_the_prefix_is_dropped() -> None:
    assert normalize_candidate("foo", 3, candidate(0, 3, "foo")).dropped == "prefix-only"


def test_completion_tail_matching_following_text_is_trimmed() -> None:
    result = normalize_candidate("foo()", 4, candidate(4, 4, "bar)"))
    assert result.candidate == candidate(4, 4, "bar")


def test_short_repetitive_completion_is_dropped() -> None:
    assert normalize_candidate("a)", 1, candidate(1, 1, ")")).dropped == "suffix-overlap"
    assert trim_suffix_overlap("a)", candidate(1, 1, ")")) is None


def test_replacement_with_identical_text_is_noop() -> None:
    assert normalize_candidate("x = 1\n", 0, candidate(0, 5, "x = 1")).dropped == "no-op"
    assert normalize_candidate("x = 1\n", 0, candidate(0, 6, "\nx = 1")).dropped == "no-op"


def test_reanchored_completion_is_then_suffix_trimmed() -> None:
    kept = normalize_candidate("foo()", 4, candidate(0, 4, "foo(bar)"))
    assert kept.candidate == candidate(4, 4, "bar")

    # "a)" re-anchors to ")" which only repeats the closing bracket already there
    assert normalize_candidate("a)", 1, candidate(0, 1, "a)")).dropped == "suffix-overlap"

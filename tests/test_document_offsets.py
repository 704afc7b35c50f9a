from __future__ import annotations

import pytest

from nextedit_engine.document import (
    ContentChange,
    DocumentSnapshot,
    DocumentValidationError,
    TrackedOffsets,
    apply_content_changes,
    from_utf16_offset,
    from_utf8_byte_offset,
    utf16_offset,
    utf8_byte_offset,
)


def insert(offset: int, text: str) -> ContentChange:
    return ContentChange(range_offset=offset, range_length=0, text=text)


def delete(offset: int, length: int) -> ContentChange:
    return ContentChange(range_offset=offset, range_length=length, text="")


def test_change_before_range_shifts_both_ends() -> None:
    offsets = TrackedOffsets(10, 15).apply(insert(2, "abc"))
    assert (offsets.start_offset, offsets.end_offset) == (13, 18)


def test_change_after_range_leaves_it_alone() -> None:
    offsets = TrackedOffsets(10, 15).apply(delete(20, 4))
    assert (offsets.start_offset, offsets.end_offset) == (10, 15)


def test_insertion_at_start_pushes_range_forward() -> None:
    offsets = TrackedOffsets(10, 15).apply(insert(10, "xy"))
    assert (offsets.start_offset, offsets.end_offset) == (12, 17)


def test_deletion_covering_range_collapses_it() -> None:
    offsets = TrackedOffsets(10, 15).apply(delete(5, 20))
    assert (offsets.start_offset, offsets.end_offset) == (5, 5)


def test_replacement_inside_range_moves_end_by_delta() -> None:
    change = ContentChange(range_offset=11, range_length=2, text="wxyz")
    offsets = TrackedOffsets(10, 15).apply(change)
    assert (offsets.start_offset, offsets.end_offset) == (10, 17)


def test_sequence_of_changes_is_applied_in_order() -> None:
    offsets = TrackedOffsets(4, 6)
    apply_content_changes(offsets, [insert(0, "ab"), delete(0, 1)])
    assert (offsets.start_offset, offsets.end_offset) == (5, 7)


def test_overlap_includes_boundaries() -> None:
    offsets = TrackedOffsets(10, 15)
    assert offsets.overlaps(insert(15, "x"))
    assert offsets.overlaps(delete(8, 2))
    assert not offsets.overlaps(insert(20, "x"))


def test_snapshot_offsets_and_positions() -> None:
    snapshot = DocumentSnapshot(uri="a.py", version=1, text="ab\ncde\n", cursor=(1, 2))
    assert snapshot.cursor_offset == 5
    assert snapshot.position_at(7) == (2, 0)
    assert snapshot.position_at(99) == (2, 0)
    assert snapshot.line_text(1) == "cde"
    assert snapshot.file_path == "a.py"


def test_snapshot_rejects_cursor_outside_text() -> None:
    with pytest.raises(DocumentValidationError):
        DocumentSnapshot(uri="a.py", version=1, text="ab", cursor=(0, 5))
    with pytest.raises(DocumentValidationError):
        DocumentSnapshot.at_offset("a.py", 1, "ab", 3)


def test_with_text_bumps_version_and_moves_cursor() -> None:
    snapshot = DocumentSnapshot(uri="a.py", version=3, text="ab")
    following = snapshot.with_text("ab\nc", cursor_offset=4)
    assert following.version == 4
    assert following.cursor == (1, 1)


def test_content_change_apply_clamps_range() -> None:
    assert ContentChange(range_offset=2, range_length=10, text="!").apply_to("abcd") == "ab!"
    assert ContentChange(range_offset=0, range_length=0, text="").is_noop


def test_encoding_offsets_round_multibyte_characters() -> None:
    text = "aé\U0001f600b"
    assert utf8_byte_offset(text, 2) == 3
    assert from_utf8_byte_offset(text, 3) == 2
    assert utf16_offset(text, 3) == 4
    assert from_utf16_offset(text, 3) == 2
    assert from_utf16_offset(text, 4) == 3


def test_apply_all_matches_sequential_application() -> None:
    changes = [insert(0, "ab"), delete(0, 1)]
    offsets = TrackedOffsets(4, 6).apply_all(changes)
    assert (offsets.start_offset, offsets.end_offset) == (5, 7)


def test_empty_change_leaves_offsets_unchanged() -> None:
    offsets = TrackedOffsets(10, 20).apply(ContentChange(range_offset=14, range_length=0, text=""))
    assert (offsets.start_offset, offsets.end_offset) == (10, 20)


def test_reference_transform_cases() -> None:
    before = TrackedOffsets(10, 20).apply(insert(3, "abc"))
    inside = TrackedOffsets(10, 20).apply(insert(12, "abcd"))
    straddling = TrackedOffsets(10, 20).apply(
        ContentChange(range_offset=8, range_length=5, text="xy")
    )

    assert (before.start_offset, before.end_offset) == (13, 23)
    assert (inside.start_offset, inside.end_offset) == (10, 24)
    # start collapses onto the change, end shifts by the -3 delta
    assert (straddling.start_offset, straddling.end_offset) == (8, 17)

"""Document model: snapshots, change events, offset tracking and history."""

from .validation import DocumentValidationError, ensure_offset, ensure_position
from .text import (
    from_utf16_offset,
    from_utf8_byte_offset,
    utf16_offset,
    utf8_byte_offset,
)
from .snapshot import ContentChange, Cursor, DocumentSnapshot, offset_at, position_at
from .offsets import TrackedOffsets, apply_content_change, apply_content_changes
from .tracker import (
    ContextFile,
    DocumentTracker,
    EditRecord,
    Selection,
    UserAction,
)

__all__ = [
    "ContentChange",
    "ContextFile",
    "Cursor",
    "DocumentSnapshot",
    "DocumentTracker",
    "DocumentValidationError",
    "EditRecord",
    "Selection",
    "TrackedOffsets",
    "UserAction",
    "apply_content_change",
    "apply_content_changes",
    "ensure_offset",
    "ensure_position",
    "from_utf16_offset",
    "from_utf8_byte_offset",
    "offset_at",
    "position_at",
    "utf16_offset",
    "utf8_byte_offset",
]

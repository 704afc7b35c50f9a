"""Engine configuration with ``NEXTEDIT_ENGINE_*`` environment overrides."""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple

ENV_PREFIX = "NEXTEDIT_ENGINE_"
MODES = ("hosted", "local")

MAX_FILE_SIZE = 10_000_000
MAX_LINES = 50_000
AVG_LINE_LENGTH_THRESHOLD = 240
DEFAULT_MAX_CONTEXT_FILES = 5


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_flag(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate an exclusion glob: ``**`` spans directories, ``*`` does not."""

    parts = pattern.split("**")
    translated = ".*".join(
        "[^/]*".join(re.escape(piece) for piece in part.split("*")) for part in parts
    )
    return re.compile(f"^{translated}$")


@dataclass(slots=True)
class SuggestionConfig:
    """Tunables for the suggestion engine.

    Durations are milliseconds. ``snooze_until`` is a deadline on the same
    clock the orchestrator is built with (seconds); ``0`` means not snoozed.
    """

    enabled: bool = True
    mode: str = "hosted"
    debounce_override_ms: Optional[int] = None
    snooze_until: float = 0.0
    exclusion_patterns: Tuple[str, ...] = ()

    max_file_size: int = MAX_FILE_SIZE
    max_lines: int = MAX_LINES
    avg_line_length_threshold: int = AVG_LINE_LENGTH_THRESHOLD

    bulk_change_window_ms: int = 1500
    bulk_change_char_threshold: int = 500
    bulk_change_line_threshold: int = 10
    multiline_selection_window_ms: int = 1500

    max_context_files: int = DEFAULT_MAX_CONTEXT_FILES
    max_edit_history: int = 10
    max_user_actions: int = 50
    max_recent_files: int = 10
    diff_context_lines: int = 2
    max_diff_chars: int = 20_000
    retrieval_max_lines: int = 60
    retrieval_max_chunks: int = 8

    require_changes: bool = True
    keep_jump_on_unrelated_edit: bool = False

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"Unknown mode '{self.mode}'.")
        self.exclusion_patterns = tuple(self.exclusion_patterns)

    @classmethod
    def from_env(cls, **overrides: Any) -> "SuggestionConfig":
        """Build a config from defaults, then environment, then ``overrides``."""

        values: Dict[str, Any] = {}
        for item in fields(cls):
            raw = _env(item.name.upper())
            if raw is None:
                continue
            default = item.default
            if isinstance(default, bool):
                values[item.name] = _env_flag(item.name.upper(), default)
            elif isinstance(default, tuple):
                values[item.name] = tuple(
                    part.strip() for part in raw.split(",") if part.strip()
                )
            elif isinstance(default, float):
                values[item.name] = float(raw)
            elif isinstance(default, int) or item.name == "debounce_override_ms":
                values[item.name] = int(raw)
            else:
                values[item.name] = raw
        values.update(overrides)
        return cls(**values)

    def is_snoozed(self, now: float) -> bool:
        return self.snooze_until > now

    def snooze_remaining(self, now: float) -> Optional[float]:
        if not self.snooze_until:
            return None
        return max(0.0, self.snooze_until - now)

    def should_exclude(self, file_path: str) -> bool:
        patterns = [pattern.strip() for pattern in self.exclusion_patterns]
        patterns = [pattern for pattern in patterns if pattern]
        if not patterns:
            return False
        normalized = file_path.replace("\\", "/")
        file_name = posixpath.basename(normalized)
        for pattern in patterns:
            if "*" in pattern:
                if glob_to_regex(pattern).match(normalized):
                    return True
            elif file_name.endswith(pattern) or normalized.endswith(pattern):
                return True
        return False

    def exceeds_size_limits(self, text: str) -> bool:
        """True when ``text`` is too large or too dense to send for suggestions."""

        if len(text) > self.max_file_size:
            return True
        line_count = text.count("\n") + 1
        if line_count > self.max_lines:
            return True
        return len(text) / line_count > self.avg_line_length_threshold


__all__ = [
    "AVG_LINE_LENGTH_THRESHOLD",
    "DEFAULT_MAX_CONTEXT_FILES",
    "MODES",
    "MAX_FILE_SIZE",
    "MAX_LINES",
    "SuggestionConfig",
    "glob_to_regex",
]

"""Executable Textual app that demonstrates next-edit suggestions."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

try:  # pragma: no cover - imported only when demo is run
    from textual.app import App, ComposeResult
    from textual.containers import Vertical
    from textual.widgets import Footer, Header, Static, TextArea
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use nextedit_engine.adapters.textual.app"
    ) from exc

from nextedit_engine.config import SuggestionConfig
from nextedit_engine.runtime import telemetry
from nextedit_engine.document.snapshot import Cursor
from nextedit_engine.service.local import FILE_SEP_TOKEN, LocalCompletionService
from nextedit_engine.service.protocol import Candidate
from nextedit_engine.suggestions.jump import PendingJump

from .controller import SuggestionUIHooks, TextualSuggestionAdapter

CLOSERS = {"(": ")", "[": "]", "{": "}"}

SAMPLE_TEXT = """def greet(name):
    message = ("hello, " + name
    return message
"""


def _close_brackets(line: str) -> str:
    stack: List[str] = []
    for char in line:
        if char in CLOSERS:
            stack.append(CLOSERS[char])
        elif stack and char == stack[-1]:
            stack.pop()
    return line + "".join(reversed(stack))


async def bracket_closer(prompt: str) -> str:
    """Stand-in model: rewrites the current window with every line's brackets closed."""

    marker = f"{FILE_SEP_TOKEN}current/"
    start = prompt.find(marker)
    if start == -1:
        return ""
    body_start = prompt.find("\n", start) + 1
    body_end = prompt.find(f"\n{FILE_SEP_TOKEN}updated/", body_start)
    current = prompt[body_start:body_end]
    return "\n".join(_close_brackets(line) for line in current.split("\n"))


@dataclass
class UIState:
    preview_text: str = ""
    status_text: str = ""


class NextEditApp(App[None]):
    """Minimal Textual UI wired to the suggestion orchestrator."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#editor {
		height: 1fr;
		border: round $accent;
	}

	#preview {
		height: auto;
		max-height: 10;
		border: round $secondary;
		padding: 0 1;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("ctrl+l", "accept_suggestion", "Accept"),
        ("escape", "dismiss_suggestion", "Dismiss"),
        ("ctrl+s", "trigger_suggestion", "Suggest"),
    ]

    def __init__(
        self,
        *,
        text: str = SAMPLE_TEXT,
        file_path: str = "demo.py",
        config: SuggestionConfig | None = None,
    ) -> None:
        super().__init__()
        self._state = UIState()
        self._initial_text = text
        self._file_path = file_path
        self._config = config
        self.adapter: TextualSuggestionAdapter | None = None
        self._editor: TextArea | None = None
        self._preview_widget: Static | None = None
        self._status_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Vertical(id="editor-area"):
            self._editor = TextArea(self._initial_text, id="editor")
            yield self._editor
            self._preview_widget = Static("", id="preview", markup=False)
            yield self._preview_widget
        self._status_widget = Static("", id="status-line", markup=False)
        yield self._status_widget
        yield Footer()

    def on_mount(self) -> None:
        hooks = SuggestionUIHooks(
            show_inline=self._show_inline,
            show_jump=self._show_jump,
            clear=self._clear_preview,
            apply_edit=self._apply_edit,
            update_status=self._update_status,
        )
        config = self._config or SuggestionConfig.from_env(mode="local")
        self.adapter = TextualSuggestionAdapter(
            LocalCompletionService(bracket_closer),
            hooks,
            uri=f"file://{self._file_path}",
            file_path=self._file_path,
            language_id="python",
            config=config,
        )
        self.adapter.open_document(self._initial_text)
        if self._editor:
            self._editor.focus()

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if not self.adapter:
            return
        area = event.text_area
        self.adapter.text_changed(area.text, area.cursor_location)
        self.run_worker(self.adapter.trigger(), group="suggestions")

    def on_text_area_selection_changed(self, event: TextArea.SelectionChanged) -> None:
        if not self.adapter:
            return
        selection = event.selection
        if selection.start == selection.end:
            self.adapter.cursor_changed(selection.end)
        else:
            self.adapter.selection_changed(selection.start, selection.end)

    def action_accept_suggestion(self) -> None:
        if self.adapter:
            self.adapter.accept()

    def action_dismiss_suggestion(self) -> None:
        if self.adapter:
            self.adapter.dismiss()

    def action_trigger_suggestion(self) -> None:
        if self.adapter:
            self.run_worker(self.adapter.trigger(), group="suggestions")

    def _show_inline(self, candidate: Candidate) -> None:
        self._set_preview(f"ghost text: {candidate.completion!r}  (ctrl+l to accept)")

    def _show_jump(self, jump: PendingJump) -> None:
        lines = [f"jump to line {jump.target_line + 1} (+{jump.additions} -{jump.deletions})"]
        lines.extend(f"- {line}" for line in jump.preview.original_lines)
        lines.extend(f"+ {line}" for line in jump.preview.new_lines)
        self._set_preview("\n".join(lines))

    def _clear_preview(self) -> None:
        self._set_preview("")

    def _apply_edit(self, text: str, cursor: Cursor) -> None:
        if self._editor:
            self._editor.load_text(text)
            self._editor.cursor_location = cursor

    def _set_preview(self, text: str) -> None:
        self._state.preview_text = text
        if self._preview_widget:
            self._preview_widget.update(text)

    def _update_status(self, status: str) -> None:
        self._state.status_text = status
        if self._status_widget:
            self._status_widget.update(status)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the next-edit suggestion Textual demo.")
    parser.add_argument(
        "path",
        nargs="?",
        help="File to open (default: a built-in Python sample)",
    )
    parser.add_argument(
        "--debounce-ms",
        type=int,
        default=None,
        help="Override the request debounce in milliseconds",
    )
    parser.add_argument(
        "--allow-unchanged",
        action="store_true",
        help="Request suggestions before the document has been edited",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    text = SAMPLE_TEXT
    file_path = "demo.py"
    if args.path:
        with open(args.path, encoding="utf-8") as handle:
            text = handle.read()
        file_path = args.path
    overrides: Dict[str, Any] = {"mode": "local"}
    if args.debounce_ms is not None:
        overrides["debounce_override_ms"] = args.debounce_ms
    if args.allow_unchanged:
        overrides["require_changes"] = False
    config = SuggestionConfig.from_env(**overrides)
    # Textual owns the terminal, so nothing may log to the console.
    telemetry.configure(quiet=True)
    app = NextEditApp(text=text, file_path=file_path, config=config)
    app.run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()

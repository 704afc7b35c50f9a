"""Textual host adapter and demo application."""

from .controller import SuggestionUIHooks, TextualSuggestionAdapter

__all__ = ["SuggestionUIHooks", "TextualSuggestionAdapter"]

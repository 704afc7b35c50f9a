"""Conversions between code-point offsets and host encodings.

Hosts built on UTF-16 (most web editors) or UTF-8 (terminals, LSP byte
offsets) translate their positions with these helpers before handing events
to the engine, which works in Python string indices.
"""

from __future__ import annotations


def utf8_byte_offset(text: str, offset: int) -> int:
    return len(text[: max(0, offset)].encode("utf-8"))


def from_utf8_byte_offset(text: str, byte_offset: int) -> int:
    encoded = text.encode("utf-8")
    prefix = encoded[: max(0, byte_offset)]
    return len(prefix.decode("utf-8", errors="ignore"))


def utf16_offset(text: str, offset: int) -> int:
    return sum(2 if ord(char) > 0xFFFF else 1 for char in text[: max(0, offset)])


def from_utf16_offset(text: str, units: int) -> int:
    """Code-point offset for ``units`` UTF-16 code units.

    An offset landing inside a surrogate pair is rounded down to the start of
    that character.
    """

    consumed = 0
    for index, char in enumerate(text):
        width = 2 if ord(char) > 0xFFFF else 1
        if consumed + width > units:
            return index
        consumed += width
    return len(text)


__all__ = [
    "from_utf16_offset",
    "from_utf8_byte_offset",
    "utf16_offset",
    "utf8_byte_offset",
]

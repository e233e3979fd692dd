"""Canonical forms for answer strings and option letters."""

from __future__ import annotations

from .errors import InvalidArgument

__all__ = [
    "normalize_answer",
    "letter_for_index",
    "index_for_letter",
]


def normalize_answer(raw: object) -> str:
    """Return ``raw`` trimmed and upper-cased; ``None`` becomes ``""``."""

    if raw is None:
        return ""
    return str(raw).strip().upper()


def letter_for_index(index: int) -> str:
    """Map an option index to its letter (0 -> ``A``, 1 -> ``B``, ...)."""

    if index < 0:
        raise InvalidArgument(f"Option index must be >= 0, got {index}.")
    return chr(ord("A") + index)


def index_for_letter(letter: str | None) -> int | None:
    key = normalize_answer(letter)[:1]
    if not key or not ("A" <= key <= "Z"):
        return None
    return ord(key) - ord("A")

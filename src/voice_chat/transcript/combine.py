"""Pure helpers for deriving the combined transcript text."""

from __future__ import annotations


def combine_text(base: str, live: str) -> str:
    """
    Join frozen base text and the live feed into one display value.

    Both parts are trimmed; a single space separates them only when both are
    non-empty, so the result never carries a stray separator.
    """

    parts = [part for part in (base.strip(), live.strip()) if part]
    return " ".join(parts)


__all__ = ["combine_text"]

"""Event-stream framing helpers for streamed chat responses."""

from __future__ import annotations

from voice_chat.config import STREAM_DONE_SENTINEL, STREAM_FRAME_MARKER

JSON_CONTENT_TYPE = "application/json"


def is_json_content(content_type: str | None) -> bool:
    """Return True when the declared content kind is a complete JSON document."""

    if not content_type:
        return False
    return JSON_CONTENT_TYPE in content_type.lower()


def has_frame_marker(text: str, marker: str = STREAM_FRAME_MARKER) -> bool:
    return bool(marker) and marker in text


def iter_frame_payloads(
    text: str,
    *,
    marker: str = STREAM_FRAME_MARKER,
    sentinel: str = STREAM_DONE_SENTINEL,
) -> list[str]:
    """
    Split a framed fragment into its event payloads.

    A payload boundary is a line break or a marker occurrence. Payloads are
    stripped; empty payloads and the termination sentinel are dropped.
    """

    payloads: list[str] = []
    for line in text.splitlines():
        for piece in line.split(marker):
            cleaned = piece.strip()
            if not cleaned or cleaned == sentinel:
                continue
            payloads.append(cleaned)
    return payloads


def process_fragment(
    text: str,
    *,
    marker: str = STREAM_FRAME_MARKER,
    sentinel: str = STREAM_DONE_SENTINEL,
) -> str:
    """Return the display text for one decoded fragment."""

    if not has_frame_marker(text, marker):
        return text
    return " ".join(iter_frame_payloads(text, marker=marker, sentinel=sentinel))


def append_fragment(accumulated: str, processed: str, *, framed: bool) -> str:
    """
    Append processed fragment text to the accumulator.

    Framed payloads are separate events, so they are joined to existing text with a
    single space; plain text continues the accumulator verbatim.
    """

    if not processed:
        return accumulated
    if not framed or not accumulated or accumulated[-1].isspace():
        return accumulated + processed
    return f"{accumulated} {processed}"


__all__ = [
    "JSON_CONTENT_TYPE",
    "append_fragment",
    "has_frame_marker",
    "is_json_content",
    "iter_frame_payloads",
    "process_fragment",
]

"""Response stream decoding: JSON documents and framed text streams."""

from .decoder import ChatResponseProtocol, StreamDecoder
from .framing import (
    append_fragment,
    has_frame_marker,
    is_json_content,
    iter_frame_payloads,
    process_fragment,
)

__all__ = [
    "ChatResponseProtocol",
    "StreamDecoder",
    "append_fragment",
    "has_frame_marker",
    "is_json_content",
    "iter_frame_payloads",
    "process_fragment",
]

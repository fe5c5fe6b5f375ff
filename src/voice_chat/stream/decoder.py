"""Incremental decoder for chat backend responses (JSON or framed text streams)."""

from __future__ import annotations

import codecs
from collections.abc import AsyncIterator
from types import TracebackType
from typing import Any, Optional, Protocol, Union

import aiohttp

from voice_chat.cli.logging_utils import ERROR_LOG_LABEL, LOGGER, STREAM_LOG_LABEL, shorten_text
from voice_chat.config import (
    CHAT_RESPONSE_FIELD,
    STREAM_DONE_SENTINEL,
    STREAM_ENCODING,
    STREAM_FRAME_MARKER,
)
from voice_chat.core.exceptions import EmptyResponse, MalformedResponse, TransportError

from .framing import append_fragment, has_frame_marker, is_json_content, process_fragment

Fragment = Union[bytes, bytearray, memoryview, str]


class ChatResponseProtocol(Protocol):
    """Subset of a completed HTTP response used by the decoder."""

    @property
    def content_type(self) -> str: ...

    async def json(self) -> Any: ...

    def iter_chunks(self) -> AsyncIterator[Fragment]: ...

    async def close(self) -> None: ...


class StreamDecoder:
    """
    Turn one response into a lazily growing sequence of text snapshots.

    Each snapshot is the full accumulated text, not the delta. A snapshot is only
    emitted when a fragment grows the text, so fragments that carry nothing but
    framing or the end sentinel produce none. A decoder is bound to
    a single response and cannot be iterated twice. Use it as an async context
    manager when the consumer may stop early so the response is always released::

        async with StreamDecoder(response) as decoder:
            async for snapshot in decoder:
                render(snapshot)
    """

    def __init__(
        self,
        response: ChatResponseProtocol,
        *,
        encoding: str = STREAM_ENCODING,
        errors: str = "replace",
        marker: str = STREAM_FRAME_MARKER,
        sentinel: str = STREAM_DONE_SENTINEL,
        response_field: str = CHAT_RESPONSE_FIELD,
    ):
        self._response = response
        self._decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
        self._marker = marker
        self._sentinel = sentinel
        self._response_field = response_field
        self._text = ""
        self._fragment_count = 0
        self._started = False
        self._released = False
        self._iterator: Optional[AsyncIterator[str]] = None

    @property
    def text(self) -> str:
        """Current accumulated text."""

        return self._text

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("StreamDecoder cannot be restarted; decode a new response instead")
        self._started = True
        self._iterator = self._iter_snapshots()
        return self._iterator

    async def __aenter__(self) -> "StreamDecoder":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Abandon decoding and release the underlying response."""

        iterator = self._iterator
        if iterator is not None and hasattr(iterator, "aclose"):
            await iterator.aclose()  # type: ignore[attr-defined]
        await self._release()

    async def decode_all(self) -> str:
        """Drain the response and return the final text."""

        async with self:
            async for _ in self:
                pass
        return self._text

    async def _iter_snapshots(self) -> AsyncIterator[str]:
        try:
            if is_json_content(self._response.content_type):
                yield await self._decode_json()
                return
            async for snapshot in self._decode_stream():
                yield snapshot
        finally:
            await self._release()

    async def _decode_json(self) -> str:
        try:
            payload = await self._response.json()
        except aiohttp.ClientError as exc:
            raise TransportError(f"Failed to read JSON response: {exc}") from exc
        except ValueError as exc:
            raise MalformedResponse(f"Response body is not valid JSON: {exc}") from exc

        if not isinstance(payload, dict) or self._response_field not in payload:
            keys = sorted(payload) if isinstance(payload, dict) else type(payload).__name__
            LOGGER.log(
                ERROR_LOG_LABEL,
                f"JSON response missing '{self._response_field}' field (got {keys})",
                error=True,
            )
            raise MalformedResponse(f"JSON response lacks the '{self._response_field}' field")

        answer = payload[self._response_field]
        if not isinstance(answer, str):
            raise MalformedResponse(
                f"JSON field '{self._response_field}' must be a string, "
                f"got {type(answer).__name__}"
            )
        if not answer:
            raise EmptyResponse("JSON response carried an empty answer")

        self._text = answer
        LOGGER.verbose(STREAM_LOG_LABEL, f"JSON answer received ({len(answer)} chars)")
        return self._text

    async def _decode_stream(self) -> AsyncIterator[str]:
        try:
            async for fragment in self._response.iter_chunks():
                self._fragment_count += 1
                if self._absorb(self._decode_fragment(fragment)):
                    yield self._text
            if self._absorb(self._decoder.decode(b"", final=True)):
                yield self._text
        except (aiohttp.ClientError, OSError, UnicodeDecodeError) as exc:
            LOGGER.log(
                ERROR_LOG_LABEL,
                f"Stream read failed after {self._fragment_count} fragment(s): {exc}",
                error=True,
            )
            raise TransportError(f"Stream read failed: {exc}") from exc

        LOGGER.verbose(
            STREAM_LOG_LABEL,
            f"Stream finished fragments={self._fragment_count} chars={len(self._text)} "
            f"text={shorten_text(self._text)!r}",
        )
        if not self._text:
            raise EmptyResponse("Stream ended without any text")

    def _decode_fragment(self, fragment: Fragment) -> str:
        if isinstance(fragment, str):
            return fragment
        return self._decoder.decode(bytes(fragment))

    def _absorb(self, decoded: str) -> bool:
        """Append a decoded fragment; return True when the accumulator grew."""

        if not decoded:
            return False
        framed = has_frame_marker(decoded, self._marker)
        processed = process_fragment(decoded, marker=self._marker, sentinel=self._sentinel)
        updated = append_fragment(self._text, processed, framed=framed)
        if updated == self._text:
            return False
        self._text = updated
        return True

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._response.close()


__all__ = ["ChatResponseProtocol", "Fragment", "StreamDecoder"]

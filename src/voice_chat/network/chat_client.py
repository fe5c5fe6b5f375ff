"""
HTTP client for the chat backend.
Posts the prompt and hands back the open response for streaming decode.
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator
from types import TracebackType
from typing import Any, Optional

import aiohttp

from voice_chat.cli.logging_utils import ERROR_LOG_LABEL, LOGGER, http_log_label
from voice_chat.config import CHAT_ENDPOINT, CHAT_REQUEST_TIMEOUT_SECONDS
from voice_chat.core.exceptions import TransportError

_ERROR_SNIPPET_LIMIT = 200


class HttpChatResponse:
    """Adapt an ``aiohttp.ClientResponse`` to the decoder's response protocol."""

    def __init__(self, response: aiohttp.ClientResponse):
        self._response = response
        self._closed = False

    @property
    def status(self) -> int:
        return self._response.status

    @property
    def content_type(self) -> str:
        return self._response.headers.get("Content-Type", "")

    async def json(self) -> Any:
        # Content kind was already classified from the header; do not re-check it here.
        return await self._response.json(content_type=None)

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.content.iter_any():
            yield chunk

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        result = self._response.release()
        if inspect.isawaitable(result):
            await result


class ChatClient:
    """Send prompts to the chat backend over HTTP."""

    def __init__(
        self,
        endpoint: str = CHAT_ENDPOINT,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = CHAT_REQUEST_TIMEOUT_SECONDS,
    ):
        if not endpoint:
            raise ValueError("Chat endpoint is not configured. Set CHAT_ENDPOINT.")
        self._endpoint = endpoint
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=None, sock_read=timeout_seconds)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def send(self, prompt: str, role: str, credential: str = "") -> HttpChatResponse:
        """
        POST the prompt and return the open response.

        Raises ``TransportError`` when the request fails or the backend answers with
        an error status. The caller owns the returned response and must close it.
        """

        payload = {"prompt": prompt, "role": role, "apiKey": credential}
        LOGGER.verbose(
            http_log_label("→"),
            f"POST {self._endpoint} prompt_chars={len(prompt)} role={role!r} "
            f"credential={'yes' if credential else 'no'}",
        )
        session = self._ensure_session()
        try:
            response = await session.post(self._endpoint, json=payload, timeout=self._timeout)
        except (aiohttp.ClientError, OSError) as exc:
            LOGGER.log(ERROR_LOG_LABEL, f"Chat request failed: {exc}", error=True)
            raise TransportError(f"Chat request failed: {exc}") from exc

        content_type = response.headers.get("Content-Type", "")
        LOGGER.verbose(
            http_log_label("←"),
            f"status={response.status} content_type={content_type or '<none>'}",
        )
        if response.status >= 400:
            detail = await self._read_error_detail(response)
            wrapped = HttpChatResponse(response)
            await wrapped.close()
            LOGGER.log(
                ERROR_LOG_LABEL,
                f"Chat backend returned HTTP {response.status}: {detail}",
                error=True,
            )
            raise TransportError(f"Chat backend returned HTTP {response.status}: {detail}")
        return HttpChatResponse(response)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    @staticmethod
    async def _read_error_detail(response: aiohttp.ClientResponse) -> str:
        try:
            body = await response.text()
        except (aiohttp.ClientError, OSError, UnicodeDecodeError) as exc:
            return f"<unreadable body: {exc}>"
        snippet = body.strip()[:_ERROR_SNIPPET_LIMIT]
        return snippet or "<empty body>"


__all__ = ["ChatClient", "HttpChatResponse"]

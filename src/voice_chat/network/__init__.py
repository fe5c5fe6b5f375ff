"""Network layer for the chat backend."""

from .chat_client import ChatClient, HttpChatResponse

__all__ = ["ChatClient", "HttpChatResponse"]

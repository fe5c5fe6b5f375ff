"""Assistant helper package exposing the chat session host."""

from .chat_session import ChatSession, PendingExport, ResponseDisplay, SubmitOutcome

__all__ = ["ChatSession", "PendingExport", "ResponseDisplay", "SubmitOutcome"]

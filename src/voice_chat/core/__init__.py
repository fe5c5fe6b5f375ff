"""Shared primitives for the voice chat client."""

from .exceptions import (
    EmptyPrompt,
    EmptyResponse,
    MalformedResponse,
    MissingCredential,
    MissingRole,
    NotListening,
    RequestInProgress,
    ResponseError,
    TransportError,
    ValidationError,
    VoiceChatError,
)

__all__ = [
    "EmptyPrompt",
    "EmptyResponse",
    "MalformedResponse",
    "MissingCredential",
    "MissingRole",
    "NotListening",
    "RequestInProgress",
    "ResponseError",
    "TransportError",
    "ValidationError",
    "VoiceChatError",
]

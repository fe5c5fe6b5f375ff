"""Custom exception types shared across the voice chat package."""

from __future__ import annotations


class VoiceChatError(Exception):
    """Base class for recoverable errors surfaced at the UI boundary."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)


class ValidationError(VoiceChatError):
    """Raised before any network call when the submission is incomplete."""


class EmptyPrompt(ValidationError):
    """Raised when there is no captured or typed text to submit."""

    user_message = "Please say something before asking AI."


class MissingRole(ValidationError):
    """Raised when the role/system prompt field is blank."""

    user_message = "Please enter your role first."


class MissingCredential(ValidationError):
    """Raised when a credential is required but was not supplied."""

    user_message = "Please enter your API key."


class NotListening(ValidationError):
    """Raised when a valid turn is submitted after listening was stopped."""

    user_message = "Please press start before asking AI."


class RequestInProgress(ValidationError):
    """Raised when a turn is submitted while the previous answer is still loading."""

    user_message = "Please wait for the current answer."


class ResponseError(VoiceChatError):
    """Raised when the backend answered but the answer is unusable."""


class EmptyResponse(ResponseError):
    """Raised when a response ends without producing any text."""

    user_message = "The AI returned an empty response. Please try again."


class MalformedResponse(ResponseError):
    """Raised when a JSON response lacks the expected payload field."""

    user_message = "The AI response could not be read. Please try again."


class TransportError(VoiceChatError):
    """Raised when the network request or the body read fails."""

    user_message = "Failed to get response from AI. Please try again."


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

"""Transcript reconciliation: live speech feed, frozen base text and history."""

from .combine import combine_text
from .history import PromptHistory, compose_prompt
from .state_machine import Command, Mode, SubmitRequest, Transition, TranscriptStateMachine

__all__ = [
    "Command",
    "Mode",
    "PromptHistory",
    "SubmitRequest",
    "Transition",
    "TranscriptStateMachine",
    "combine_text",
    "compose_prompt",
]

"""Transcript reconciliation between the live speech feed and locally frozen text."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from voice_chat.config import CHAT_CONTEXT_MEMORY_ENABLED, CHAT_HISTORY_CONNECTIVE
from voice_chat.core.exceptions import (
    EmptyPrompt,
    MissingCredential,
    MissingRole,
    NotListening,
    RequestInProgress,
)

from .combine import combine_text
from .history import PromptHistory


class Mode(Enum):
    """High-level states of the transcript owner."""

    IDLE = "idle"
    LISTENING = "listening"
    EDITING = "editing"
    SUBMITTING = "submitting"


class Command(Enum):
    """Side effects a transition asks the host to perform on its collaborators."""

    START_LISTENING = "start_listening"
    STOP_LISTENING = "stop_listening"
    RESET_LIVE_FEED = "reset_live_feed"
    RESUME_LISTENING = "resume_listening"
    CLEAR_RESPONSE = "clear_response"
    REQUEST_EXPORT = "request_export"


@dataclass(frozen=True)
class Transition:
    previous: Mode
    mode: Mode
    commands: tuple[Command, ...] = ()


@dataclass(frozen=True)
class SubmitRequest:
    """Validated submission produced by :meth:`TranscriptStateMachine.begin_submit`."""

    turn: str
    prompt: str
    role: str
    credential: str


class TranscriptStateMachine:
    """
    Own the canonical "what the user has said or typed" value.

    The machine never touches the speech source itself. Transitions return the
    commands the host must run (``Command.RESET_LIVE_FEED`` and friends), and the
    host reports live-feed updates back through :meth:`observe_live_text`.
    Transitions that do not apply in the current mode return ``None``.
    """

    def __init__(
        self,
        *,
        context_memory_enabled: bool = CHAT_CONTEXT_MEMORY_ENABLED,
        require_credential: bool = True,
        connective: str = CHAT_HISTORY_CONNECTIVE,
    ):
        self.mode = Mode.IDLE
        self.context_memory_enabled = context_memory_enabled
        self.require_credential = require_credential
        self.connective = connective
        self.history = PromptHistory()
        self._base = ""
        self._live = ""
        self._edit_buffer = ""
        self._pending_turn: Optional[str] = None

    # ------------------------------------------------------------------
    # Derived state
    @property
    def base_text(self) -> str:
        return self._base

    @property
    def live_text(self) -> str:
        return self._live

    @property
    def edit_buffer(self) -> str:
        return self._edit_buffer

    @property
    def combined_text(self) -> str:
        """Text to display; the exact edit buffer while editing."""

        if self.mode == Mode.EDITING:
            return self._edit_buffer
        return combine_text(self._base, self._live)

    @property
    def submission_text(self) -> str:
        """Text that :meth:`begin_submit` would send for the current turn."""

        if self.mode == Mode.EDITING:
            return self._edit_buffer.strip()
        return combine_text(self._base, self._live)

    # ------------------------------------------------------------------
    # Inputs
    def observe_live_text(self, text: str) -> bool:
        """Record the speech source's live transcript; frozen outside Listening."""

        if self.mode != Mode.LISTENING:
            return False
        self._live = text or ""
        return True

    def update_edit_buffer(self, text: str) -> bool:
        if self.mode != Mode.EDITING:
            return False
        self._edit_buffer = text
        return True

    # ------------------------------------------------------------------
    # Transitions
    def start(self) -> Transition:
        """Begin (or restart) listening; an open edit is kept as the base text."""

        previous = self.mode
        if previous == Mode.EDITING:
            self._commit_edit_buffer()
        self.mode = Mode.LISTENING
        self._live = ""
        return Transition(
            previous,
            self.mode,
            (Command.RESET_LIVE_FEED, Command.CLEAR_RESPONSE, Command.START_LISTENING),
        )

    def enter_edit(self) -> Optional[Transition]:
        if self.mode != Mode.LISTENING:
            return None
        previous = self.mode
        self._edit_buffer = combine_text(self._base, self._live)
        self.mode = Mode.EDITING
        return Transition(previous, self.mode, (Command.STOP_LISTENING,))

    def exit_edit(self) -> Optional[Transition]:
        if self.mode != Mode.EDITING:
            return None
        previous = self.mode
        self._commit_edit_buffer()
        self.mode = Mode.LISTENING
        return Transition(
            previous, self.mode, (Command.RESET_LIVE_FEED, Command.RESUME_LISTENING)
        )

    def begin_submit(self, role: str, credential: str = "") -> tuple[SubmitRequest, Transition]:
        """
        Validate the current turn and move to Submitting.

        Raises ``EmptyPrompt``, ``MissingRole`` or ``MissingCredential`` (in that
        order) without changing any state. A complete turn is still refused with
        ``RequestInProgress`` while Submitting and ``NotListening`` while Idle.
        """

        if self.mode == Mode.SUBMITTING:
            raise RequestInProgress()

        turn = self.submission_text
        cleaned_role = (role or "").strip()
        cleaned_credential = (credential or "").strip()
        if not turn:
            raise EmptyPrompt()
        if not cleaned_role:
            raise MissingRole()
        if self.require_credential and not cleaned_credential:
            raise MissingCredential()
        if self.mode == Mode.IDLE:
            raise NotListening()

        previous = self.mode
        commands: tuple[Command, ...] = (Command.STOP_LISTENING,)
        if previous == Mode.EDITING:
            # Keep the edited text as the frozen base so a failed request can be retried.
            self._commit_edit_buffer()
            commands = (Command.STOP_LISTENING, Command.RESET_LIVE_FEED)

        prompt = turn
        if self.context_memory_enabled and self.history:
            prompt = self.history.compose(turn, self.connective)

        self._pending_turn = turn
        self.mode = Mode.SUBMITTING
        request = SubmitRequest(
            turn=turn, prompt=prompt, role=cleaned_role, credential=cleaned_credential
        )
        return request, Transition(previous, self.mode, commands)

    def finish_submit(self, succeeded: bool) -> Optional[Transition]:
        """
        Leave Submitting and always resume listening.

        Only a successful request records history and resets the captured text;
        after a failure the base text and live feed stay as they were.
        """

        if self.mode != Mode.SUBMITTING:
            return None
        previous = self.mode
        turn = self._pending_turn or ""
        self._pending_turn = None
        self.mode = Mode.LISTENING
        if not succeeded:
            return Transition(previous, self.mode, (Command.RESUME_LISTENING,))

        if self.context_memory_enabled:
            self.history.append(turn)
        else:
            self.history.clear()
        self._base = ""
        self._edit_buffer = ""
        self._live = ""
        return Transition(
            previous, self.mode, (Command.RESET_LIVE_FEED, Command.RESUME_LISTENING)
        )

    def clear(self) -> Transition:
        """Zero every piece of text and history, whatever the mode."""

        previous = self.mode
        self._base = ""
        self._edit_buffer = ""
        self._live = ""
        self._pending_turn = None
        self.history.clear()
        self.mode = Mode.IDLE
        return Transition(
            previous,
            self.mode,
            (Command.STOP_LISTENING, Command.RESET_LIVE_FEED, Command.CLEAR_RESPONSE),
        )

    def stop_session(self) -> Transition:
        """Stop listening and ask the host to offer an export of the history."""

        previous = self.mode
        commands = [Command.STOP_LISTENING]
        if previous == Mode.EDITING:
            self._commit_edit_buffer()
            commands.append(Command.RESET_LIVE_FEED)
        if self.history:
            commands.append(Command.REQUEST_EXPORT)
        self._pending_turn = None
        self.mode = Mode.IDLE
        return Transition(previous, self.mode, tuple(commands))

    def export_text(self) -> str:
        return self.history.export_text()

    def finish_export(self) -> None:
        """Drop the history once the export was confirmed or discarded."""

        self.history.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    def _commit_edit_buffer(self) -> None:
        self._base = self._edit_buffer.strip()
        self._edit_buffer = ""
        self._live = ""


__all__ = ["Command", "Mode", "SubmitRequest", "Transition", "TranscriptStateMachine"]

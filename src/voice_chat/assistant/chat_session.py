"""Host for one chat screen: runs transcript commands, requests and response decoding."""

from __future__ import annotations

import codecs
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from voice_chat.cli.logging_utils import (
    CHAT_LOG_LABEL,
    ERROR_LOG_LABEL,
    LOGGER,
    TRANSCRIPT_LOG_LABEL,
    log_mode_transition,
    shorten_text,
)
from voice_chat.config import EXPORT_DEFAULT_LABEL, SPEECH_CONTINUOUS, ChatSettings
from voice_chat.core.exceptions import ValidationError, VoiceChatError
from voice_chat.speech import SpeechSource
from voice_chat.stream import ChatResponseProtocol, StreamDecoder
from voice_chat.transcript import Command, Mode, Transition, TranscriptStateMachine

SnapshotListener = Callable[[str], None]
ExportListener = Callable[[str, str], None]


class _ChatBackend(Protocol):
    async def send(self, prompt: str, role: str, credential: str = "") -> ChatResponseProtocol: ...


@dataclass
class ResponseDisplay:
    """Transient response state shown next to the transcript."""

    text: str = ""
    error: str = ""
    loading: bool = False

    def clear(self) -> None:
        self.text = ""
        self.error = ""
        self.loading = False


@dataclass(frozen=True)
class PendingExport:
    label: str
    text: str


@dataclass
class SubmitOutcome:
    """Result of one :meth:`ChatSession.submit` call."""

    prompt: Optional[str] = None
    text: Optional[str] = None
    error: Optional[VoiceChatError] = None
    snapshots: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.text is not None


class ChatSession:
    """
    Drive a :class:`TranscriptStateMachine` against real collaborators.

    The machine decides; this class executes the returned commands on the speech
    source, owns the response display, and runs the request/decode cycle.
    """

    def __init__(
        self,
        machine: TranscriptStateMachine,
        speech_source: SpeechSource,
        client: _ChatBackend,
        *,
        role: str = "",
        credential: str = "",
        continuous: bool = SPEECH_CONTINUOUS,
        export_label: str = EXPORT_DEFAULT_LABEL,
        on_snapshot: Optional[SnapshotListener] = None,
        on_export: Optional[ExportListener] = None,
        decoder_options: Optional[dict[str, Any]] = None,
    ):
        self._machine = machine
        self._speech = speech_source
        self._client = client
        self.role = role
        self.credential = credential
        self.display = ResponseDisplay()
        self.pending_export: Optional[PendingExport] = None
        self._continuous = continuous
        self._export_label = export_label
        self._on_snapshot = on_snapshot
        self._on_export = on_export
        self._decoder_options = dict(decoder_options or {})
        encoding = self._decoder_options.get("encoding")
        if encoding is not None:
            try:
                codecs.lookup(encoding)
            except LookupError as exc:
                raise ValueError(f"Unknown stream encoding {encoding!r}") from exc
        self._unsubscribe: Optional[Callable[[], None]] = self._speech.subscribe(
            self._handle_live_text
        )

    @classmethod
    def from_settings(
        cls,
        settings: ChatSettings,
        speech_source: SpeechSource,
        client: _ChatBackend,
        **kwargs: Any,
    ) -> "ChatSession":
        machine = TranscriptStateMachine(
            context_memory_enabled=settings.context_memory_enabled,
            require_credential=settings.require_credential,
            connective=settings.history_connective,
        )
        kwargs.setdefault("role", settings.default_role)
        kwargs.setdefault("credential", settings.credential)
        decoder_options = dict(kwargs.pop("decoder_options", None) or {})
        decoder_options.setdefault("response_field", settings.response_field)
        return cls(machine, speech_source, client, decoder_options=decoder_options, **kwargs)

    # ------------------------------------------------------------------
    # Read-only views
    @property
    def machine(self) -> TranscriptStateMachine:
        return self._machine

    @property
    def mode(self) -> Mode:
        return self._machine.mode

    @property
    def combined_text(self) -> str:
        return self._machine.combined_text

    # ------------------------------------------------------------------
    # User actions
    def start(self) -> Transition:
        transition = self._machine.start()
        self._apply(transition, "start")
        return transition

    def enter_edit(self) -> Optional[Transition]:
        transition = self._machine.enter_edit()
        if transition is None:
            LOGGER.verbose(CHAT_LOG_LABEL, f"Edit ignored while {self.mode.value}")
            return None
        self._apply(transition, "edit")
        return transition

    def update_edit(self, text: str) -> bool:
        return self._machine.update_edit_buffer(text)

    def exit_edit(self) -> Optional[Transition]:
        transition = self._machine.exit_edit()
        if transition is None:
            return None
        self._apply(transition, "edit committed")
        return transition

    def clear(self) -> Transition:
        transition = self._machine.clear()
        self.pending_export = None
        self._apply(transition, "clear")
        return transition

    def stop_session(self) -> Transition:
        transition = self._machine.stop_session()
        self._apply(transition, "session stopped")
        return transition

    def confirm_export(self, label: Optional[str] = None) -> Optional[PendingExport]:
        """Hand back the pending export (optionally relabelled) and drop the history."""

        pending = self.pending_export
        self.pending_export = None
        self._machine.finish_export()
        if pending is None:
            return None
        cleaned_label = (label or "").strip()
        if cleaned_label:
            pending = PendingExport(label=cleaned_label, text=pending.text)
        LOGGER.verbose(CHAT_LOG_LABEL, f"Export confirmed label={pending.label!r}")
        return pending

    def discard_export(self) -> None:
        self.pending_export = None
        self._machine.finish_export()

    async def submit(self) -> SubmitOutcome:
        """
        Send the current turn and stream the answer into the display.

        Validation errors are reported before any network call and keep the captured
        text. Listening is resumed once the request ends, whatever the outcome.
        """

        outcome = SubmitOutcome()
        try:
            request, transition = self._machine.begin_submit(self.role, self.credential)
        except ValidationError as exc:
            self._report_error(exc)
            outcome.error = exc
            return outcome

        self._apply(transition, "submit")
        outcome.prompt = request.prompt
        self.display.text = ""
        self.display.error = ""
        self.display.loading = True
        LOGGER.log(CHAT_LOG_LABEL, f"Asking AI ({len(request.prompt)} chars)...")
        succeeded = False
        try:
            response = await self._client.send(request.prompt, request.role, request.credential)
            decoder = await self._open_decoder(response)
            async with decoder:
                async for snapshot in decoder:
                    self.display.text = snapshot
                    outcome.snapshots.append(snapshot)
                    if self._on_snapshot is not None:
                        self._on_snapshot(snapshot)
            outcome.text = self.display.text
            succeeded = True
            LOGGER.verbose(
                CHAT_LOG_LABEL,
                f"Answer complete chars={len(outcome.text)} "
                f"text={shorten_text(outcome.text)!r}",
            )
        except VoiceChatError as exc:
            self._report_error(exc)
            outcome.error = exc
        finally:
            self.display.loading = False
            finished = self._machine.finish_submit(succeeded)
            if finished is not None:
                self._apply(finished, "request finished")
        return outcome

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # Internal helpers
    def _handle_live_text(self, text: str) -> None:
        if self._machine.observe_live_text(text):
            LOGGER.verbose(TRANSCRIPT_LOG_LABEL, f"live={shorten_text(text)!r}")

    def _report_error(self, exc: VoiceChatError) -> None:
        self.display.error = exc.user_message
        LOGGER.log(ERROR_LOG_LABEL, f"{type(exc).__name__}: {exc}", error=True)
        if exc.__cause__ is not None:
            LOGGER.verbose(ERROR_LOG_LABEL, "Caused by:", error=True, exc_info=exc.__cause__)

    async def _open_decoder(self, response: ChatResponseProtocol) -> StreamDecoder:
        try:
            return StreamDecoder(response, **self._decoder_options)
        except BaseException:
            await response.close()
            raise

    def _apply(self, transition: Transition, reason: str) -> None:
        log_mode_transition(transition.previous, transition.mode, reason)
        for command in transition.commands:
            self._execute(command)

    def _execute(self, command: Command) -> None:
        if command in (Command.START_LISTENING, Command.RESUME_LISTENING):
            self._speech.start(continuous=self._continuous)
        elif command == Command.STOP_LISTENING:
            self._speech.stop()
        elif command == Command.RESET_LIVE_FEED:
            self._speech.reset()
        elif command == Command.CLEAR_RESPONSE:
            self.display.clear()
        elif command == Command.REQUEST_EXPORT:
            self.pending_export = PendingExport(
                label=self._export_label, text=self._machine.export_text()
            )
            if self._on_export is not None:
                self._on_export(self.pending_export.label, self.pending_export.text)


__all__ = [
    "ChatSession",
    "PendingExport",
    "ResponseDisplay",
    "SubmitOutcome",
]

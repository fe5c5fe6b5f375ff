"""Speech source capability consumed by the chat session."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from voice_chat.cli.logging_utils import LOGGER, SPEECH_LOG_LABEL

LiveTextListener = Callable[[str], None]


class SpeechSource(Protocol):
    """External speech-to-text capability: a growing live transcript plus start/stop."""

    @property
    def live_text(self) -> str: ...

    @property
    def is_active(self) -> bool: ...

    def start(self, continuous: bool = True) -> None: ...

    def stop(self) -> None: ...

    def reset(self) -> None: ...

    def subscribe(self, listener: LiveTextListener) -> Callable[[], None]: ...


class BufferedSpeechSource:
    """
    In-memory speech source fed with already-recognized text.

    Recognized phrases are appended to the live transcript while the source is
    active; in non-continuous mode the source stops itself after one phrase.
    """

    def __init__(self) -> None:
        self._live_text = ""
        self._active = False
        self._continuous = True
        self._listeners: list[LiveTextListener] = []

    @property
    def live_text(self) -> str:
        return self._live_text

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def continuous(self) -> bool:
        return self._continuous

    def start(self, continuous: bool = True) -> None:
        self._continuous = continuous
        if self._active:
            return
        self._active = True
        LOGGER.verbose(SPEECH_LOG_LABEL, f"Listening started (continuous={continuous})")

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        LOGGER.verbose(SPEECH_LOG_LABEL, "Listening stopped")

    def reset(self) -> None:
        if not self._live_text:
            return
        self._live_text = ""
        self._notify()

    def feed(self, phrase: str) -> bool:
        """Append a recognized phrase; ignored while the source is inactive."""

        cleaned = phrase.strip()
        if not cleaned or not self._active:
            return False
        self._live_text = f"{self._live_text} {cleaned}" if self._live_text else cleaned
        self._notify()
        if not self._continuous:
            self.stop()
        return True

    def subscribe(self, listener: LiveTextListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._live_text)


__all__ = ["BufferedSpeechSource", "LiveTextListener", "SpeechSource"]

"""Line-driven terminal front end for a chat session."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import AsyncIterator
from typing import Optional, TextIO

from voice_chat.assistant import ChatSession
from voice_chat.cli.logging_utils import (
    CHAT_LOG_LABEL,
    CONTROL_LOG_LABEL,
    ERROR_LOG_LABEL,
    LOGGER,
    TRANSCRIPT_LOG_LABEL,
)
from voice_chat.speech import BufferedSpeechSource
from voice_chat.transcript import Mode

HELP_TEXT = """Type to speak. Commands:
  /start          start (or restart) listening with a fresh transcript
  /edit           pause listening and edit the captured text
  /set TEXT       replace the edit buffer while editing
  /done           commit the edit and resume listening
  /send           ask the AI with the current text
  /role TEXT      set the role sent with each prompt
  /key TEXT       set the API key sent with each prompt
  /clear          drop all captured text, history and the last answer
  /stop           stop listening and offer the history for export
  /export [NAME]  confirm the pending export (prints it)
  /discard        discard the pending export
  /quit           leave"""


class StreamPrinter:
    """Write only the new tail of each growing snapshot."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream or sys.stdout
        self._printed = ""

    def reset(self) -> None:
        self._printed = ""

    def __call__(self, snapshot: str) -> None:
        if snapshot.startswith(self._printed):
            delta = snapshot[len(self._printed) :]
        else:
            delta = "\n" + snapshot
        self._printed = snapshot
        if delta:
            self._stream.write(delta)
            self._stream.flush()

    def finish(self) -> None:
        if self._printed:
            self._stream.write("\n")
            self._stream.flush()
        self._printed = ""


class ConsoleController:
    """Map terminal lines onto chat session actions."""

    def __init__(
        self,
        session: ChatSession,
        speech_source: BufferedSpeechSource,
        printer: Optional[StreamPrinter] = None,
    ):
        self._session = session
        self._speech = speech_source
        self._printer = printer

    async def handle_line(self, line: str) -> bool:
        """Process one line; return False when the user asked to quit."""

        text = line.strip()
        if not text:
            return True
        if not text.startswith("/"):
            self._speak(text)
            return True

        command, _, argument = text[1:].partition(" ")
        command = command.lower()
        argument = argument.strip()
        if command in {"quit", "exit", "q"}:
            return False
        if command == "help":
            LOGGER.log(CONTROL_LOG_LABEL, HELP_TEXT)
        elif command == "start":
            self._session.start()
            LOGGER.log(CONTROL_LOG_LABEL, "Listening...")
        elif command == "edit":
            if self._session.enter_edit() is None:
                LOGGER.log(CONTROL_LOG_LABEL, "Start listening before editing.")
            else:
                self._show_transcript("Editing")
        elif command == "set":
            if not self._session.update_edit(argument):
                LOGGER.log(CONTROL_LOG_LABEL, "Not editing; use /edit first.")
            else:
                self._show_transcript("Edit buffer")
        elif command == "done":
            if self._session.exit_edit() is not None:
                self._show_transcript("You said")
        elif command == "send":
            await self._send()
        elif command == "role":
            self._session.role = argument
            LOGGER.log(CONTROL_LOG_LABEL, f"Role set to {argument!r}")
        elif command == "key":
            self._session.credential = argument
            LOGGER.log(CONTROL_LOG_LABEL, "API key updated")
        elif command == "clear":
            self._session.clear()
            LOGGER.log(CONTROL_LOG_LABEL, "Cleared")
        elif command == "stop":
            self._session.stop_session()
            if self._session.pending_export is not None:
                LOGGER.log(
                    CONTROL_LOG_LABEL,
                    "History ready for export: /export [NAME] to keep it, /discard to drop it.",
                )
            else:
                LOGGER.log(CONTROL_LOG_LABEL, "Stopped")
        elif command == "export":
            exported = self._session.confirm_export(argument or None)
            if exported is None:
                LOGGER.log(CONTROL_LOG_LABEL, "Nothing to export.")
            else:
                LOGGER.log(CHAT_LOG_LABEL, f"Export '{exported.label}':\n{exported.text}")
        elif command == "discard":
            self._session.discard_export()
            LOGGER.log(CONTROL_LOG_LABEL, "Export discarded")
        else:
            LOGGER.log(ERROR_LOG_LABEL, f"Unknown command /{command}; try /help", error=True)
        return True

    async def run(self, lines: AsyncIterator[str]) -> None:
        async for line in lines:
            if not await self.handle_line(line):
                break

    def _speak(self, text: str) -> None:
        if self._session.mode == Mode.EDITING:
            current = self._session.combined_text
            self._session.update_edit(f"{current} {text}" if current else text)
            self._show_transcript("Edit buffer")
            return
        if not self._speech.feed(text):
            LOGGER.log(CONTROL_LOG_LABEL, "Not listening; use /start first.")
            return
        self._show_transcript("You said")

    async def _send(self) -> None:
        if self._printer is not None:
            self._printer.reset()
        outcome = await self._session.submit()
        if self._printer is not None:
            self._printer.finish()
        if outcome.error is not None:
            LOGGER.log(ERROR_LOG_LABEL, self._session.display.error, error=True)
            return
        if self._printer is None and outcome.text:
            LOGGER.log(CHAT_LOG_LABEL, f"AI says: {outcome.text}")

    def _show_transcript(self, label: str) -> None:
        LOGGER.log(TRANSCRIPT_LOG_LABEL, f"{label}: {self._session.combined_text}")


async def stdin_lines(stream: TextIO | None = None) -> AsyncIterator[str]:
    """Yield lines from ``stream`` (stdin by default) without blocking the loop."""

    source = stream or sys.stdin
    while True:
        line = await asyncio.to_thread(source.readline)
        if not line:
            return
        yield line.rstrip("\n")


__all__ = ["ConsoleController", "HELP_TEXT", "StreamPrinter", "stdin_lines"]

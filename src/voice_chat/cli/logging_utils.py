"""Labelled console logging plus an optional verbose capture file."""

from __future__ import annotations

import atexit
import re
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, TextIO, TypedDict

from typing_extensions import Unpack

from voice_chat.config import VERBOSE_LOG_CAPTURE_ENABLED, VERBOSE_LOG_DIRECTORY

if TYPE_CHECKING:
    from voice_chat.transcript.state_machine import Mode

STATE_LOG_LABEL = "STATE"
TRANSCRIPT_LOG_LABEL = "TRANSCRIPT"
STREAM_LOG_LABEL = "STREAM"
CHAT_LOG_LABEL = "CHAT"
HTTP_LOG_LABEL = "HTTP"
SPEECH_LOG_LABEL = "SPEECH"
CONTROL_LOG_LABEL = "CONTROL"
ERROR_LOG_LABEL = "ERROR"

_RESET = "\033[0m"
_LABEL_COLORS = {
    STATE_LOG_LABEL: "\033[36m",
    TRANSCRIPT_LOG_LABEL: "\033[32m",
    STREAM_LOG_LABEL: "\033[33m",
    CHAT_LOG_LABEL: "\033[35m",
    SPEECH_LOG_LABEL: "\033[34m",
    CONTROL_LOG_LABEL: "\033[38;5;208m",
    ERROR_LOG_LABEL: "\033[31m",
}
_HTTP_DIRECTIONS = ("←", "→")

ANSI_ESCAPE_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")
MAX_SESSION_FILE_ATTEMPTS = 100


class LogOptions(TypedDict, total=False):
    verbose: bool
    error: bool
    exc_info: Optional[BaseException]


def strip_ansi_sequences(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def _colorize(label: str) -> str:
    color = _LABEL_COLORS.get(label)
    if color is None and label.startswith(HTTP_LOG_LABEL):
        color = "\033[37m"
    return f"{color}[{label}]{_RESET}" if color else f"[{label}]"


class VerboseLogFile:
    """
    Append-only file that receives every verbose line, shown or not.

    Lines are written without color codes. Write failures are reported to stderr
    once and then ignored so logging never breaks the chat session.
    """

    def __init__(self) -> None:
        self._handle: Optional[TextIO] = None
        self.path: Optional[Path] = None
        self._failed = False

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def open(self, destination: str | Path, *, per_session: bool = False) -> None:
        self.close()
        target = Path(destination)
        try:
            if per_session:
                target.mkdir(parents=True, exist_ok=True)
                target = self._claim_session_file(target)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
            self._handle = target.open("a", encoding="utf-8")
        except OSError as exc:
            self._report_once(f"Unable to open verbose log file at {target}: {exc}")
            return
        self.path = target
        self._failed = False

    def close(self) -> None:
        handle, self._handle = self._handle, None
        self.path = None
        if handle is None:
            return
        try:
            handle.close()
        except OSError as exc:
            sys.stderr.write(f"Unable to close verbose log file: {exc}\n")

    def write(self, line: str) -> None:
        if self._handle is None:
            return
        try:
            self._handle.write(strip_ansi_sequences(line) + "\n")
            self._handle.flush()
        except OSError as exc:
            self._report_once(f"Unable to write to verbose log file: {exc}")

    def _report_once(self, message: str) -> None:
        if self._failed:
            return
        self._failed = True
        sys.stderr.write(message + "\n")

    @staticmethod
    def _claim_session_file(directory: Path) -> Path:
        stamp = datetime.now().isoformat(timespec="milliseconds").replace(":", "-")
        for attempt in range(MAX_SESSION_FILE_ATTEMPTS):
            suffix = f"_{attempt}" if attempt else ""
            candidate = directory / f"{stamp}{suffix}.log"
            try:
                candidate.touch(exist_ok=False)
            except FileExistsError:
                continue
            return candidate
        raise OSError(f"no free session log name for {stamp} in {directory}")


class Logger:
    """Write `[mm:ss.mmm] [LABEL] message` lines to the console and capture file."""

    def __init__(self, capture_directory: Optional[Path] = None) -> None:
        self._show_verbose = False
        self._capture = VerboseLogFile()
        # Session capture from config is opened lazily on the first verbose line.
        self._pending_directory = capture_directory

    @property
    def verbose_enabled(self) -> bool:
        return self._show_verbose

    @verbose_enabled.setter
    def verbose_enabled(self, enabled: bool) -> None:
        self._show_verbose = bool(enabled)

    @property
    def capture_path(self) -> Optional[Path]:
        self._open_pending_capture()
        return self._capture.path

    def capture_to(self, destination: str | Path | None, *, per_session: bool = False) -> None:
        self._pending_directory = None
        if destination is None:
            self._capture.close()
            return
        self._capture.open(destination, per_session=per_session)

    def close(self) -> None:
        self._capture.close()

    def log(self, label: str, *parts: object, **options: Unpack[LogOptions]) -> None:
        label = label.strip()
        if not label:
            raise ValueError("log label is required")
        verbose = bool(options.pop("verbose", False))
        error = bool(options.pop("error", False))
        exc = options.pop("exc_info", None)
        if options:
            raise TypeError(f"Unsupported log option(s): {', '.join(sorted(options))}")

        message = " ".join(str(part) for part in parts)
        stamp = self._timestamp()
        body = f"{message}\n{self._format_traceback(exc)}" if exc is not None else message
        body = body.rstrip("\n")

        if verbose:
            self._open_pending_capture()
            self._capture.write(f"[{stamp}] [{label}] {body}".rstrip())
            if not self._show_verbose:
                return

        stream = sys.stderr if error else sys.stdout
        stream.write(f"[{stamp}] {_colorize(label)} {body}".rstrip() + "\n")

    def verbose(self, label: str, *parts: object, **options: Any) -> None:
        options["verbose"] = True
        self.log(label, *parts, **options)

    def _open_pending_capture(self) -> None:
        directory, self._pending_directory = self._pending_directory, None
        if directory is not None and not self._capture.is_open:
            self._capture.open(directory, per_session=True)

    @staticmethod
    def _format_traceback(exc: BaseException) -> str:
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    @staticmethod
    def _timestamp() -> str:
        now = datetime.now()
        return f"{now:%M:%S}.{now.microsecond // 1000:03d}"


LOGGER = Logger(VERBOSE_LOG_DIRECTORY if VERBOSE_LOG_CAPTURE_ENABLED else None)
atexit.register(LOGGER.close)


def configure_verbose_log_capture(
    destination: str | Path | None, *, per_session: bool = False
) -> None:
    LOGGER.capture_to(destination, per_session=per_session)


def set_verbose_logging(enabled: bool) -> None:
    LOGGER.verbose_enabled = enabled


def is_verbose_logging_enabled() -> bool:
    return LOGGER.verbose_enabled


def current_verbose_log_path() -> Optional[Path]:
    return LOGGER.capture_path


def http_log_label(direction: str | None = None) -> str:
    if direction in _HTTP_DIRECTIONS:
        return f"{HTTP_LOG_LABEL}{direction}"
    return HTTP_LOG_LABEL


def shorten_text(text: Optional[str], limit: int = 80) -> Optional[str]:
    """Return a single-line preview of *text* suitable for log lines."""

    if not text:
        return None
    flattened = " ".join(text.split())
    if len(flattened) <= limit:
        return flattened
    return flattened[:limit] + "…"


def log_mode_transition(previous: Optional["Mode"], new: "Mode", reason: str) -> None:
    if previous == new:
        return
    if previous is None:
        LOGGER.verbose(STATE_LOG_LABEL, f"Entered {new.name} ({reason})")
    else:
        LOGGER.verbose(STATE_LOG_LABEL, f"{previous.name} -> {new.name} ({reason})")

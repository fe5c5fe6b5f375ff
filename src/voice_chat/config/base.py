"""
Shared configuration helpers and transport/stream settings for the voice chat client.

Defaults live in ``config/defaults.toml`` next to this module and can be overridden
via environment variables (a ``.env`` file is honoured) or CLI flags.
"""

from __future__ import annotations

import codecs
import os
import sys
from pathlib import Path

import tomllib
from dotenv import load_dotenv

PACKAGE_ROOT = Path(__file__).resolve().parent
DEFAULTS_PATH = PACKAGE_ROOT / "defaults.toml"
ENV_PATH = Path(os.getenv("VOICE_CHAT_ENV_FILE", ".env")).expanduser()

load_dotenv(ENV_PATH)

if not DEFAULTS_PATH.exists():  # pragma: no cover - packaging issue
    raise FileNotFoundError(
        f"Missing configuration defaults at {DEFAULTS_PATH}. Reinstall the voice-chat package."
    )

with DEFAULTS_PATH.open("rb") as defaults_file:
    _DEFAULTS = tomllib.load(defaults_file)


def _coerce_path(value: str | Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    return path


def _env_bool(name: str, default: bool = False) -> bool:
    """Return True when the env var is set to a truthy value."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        _warn_invalid_env_value(name, value, default)
        return default


def _env_path(name: str, default: str) -> Path:
    raw = os.getenv(name, default)
    return _coerce_path(raw)


def _env_str(name: str, default: str) -> str:
    """Return the env var when set (even to an empty string), else ``default``."""

    value = os.getenv(name)
    if value is None:
        return default
    return value


def _env_encoding(name: str, default: str) -> str:
    """Return a codec name Python knows, falling back to ``default``."""

    value = (os.getenv(name) or "").strip()
    if not value:
        return default
    try:
        codecs.lookup(value)
    except LookupError:
        _warn_invalid_env_value(name, value, default)
        return default
    return value


def _warn_invalid_env_value(name: str, value: str | None, default: object) -> None:
    """Emit a warning when env overrides cannot be parsed."""

    sys.stderr.write(f"Invalid value for {name}={value!r}; falling back to {default!r}.\n")


# Stream decoding
_STREAM = _DEFAULTS.get("stream", {})
STREAM_ENCODING = _env_encoding("STREAM_ENCODING", _STREAM.get("encoding", "utf-8"))
STREAM_FRAME_MARKER = _env_str("STREAM_FRAME_MARKER", _STREAM.get("frame_marker", "data:"))
STREAM_DONE_SENTINEL = _env_str("STREAM_DONE_SENTINEL", _STREAM.get("done_sentinel", "[DONE]"))

# Speech source
_SPEECH = _DEFAULTS.get("speech", {})
SPEECH_CONTINUOUS = _env_bool("SPEECH_CONTINUOUS", _SPEECH.get("continuous", True))

# History export
_EXPORT = _DEFAULTS.get("export", {})
EXPORT_DEFAULT_LABEL = (
    _env_str("EXPORT_DEFAULT_LABEL", _EXPORT.get("default_label", "conversation")).strip()
    or "conversation"
)

_LOGGING = _DEFAULTS.get("logging", {})
VERBOSE_LOG_CAPTURE_ENABLED = _env_bool(
    "VERBOSE_LOG_CAPTURE_ENABLED", _LOGGING.get("verbose_capture_enabled", False)
)
if VERBOSE_LOG_CAPTURE_ENABLED:
    _DEFAULT_VERBOSE_DIR = _LOGGING.get("verbose_log_directory")
    default_verbose_dir = (
        _DEFAULT_VERBOSE_DIR.strip()
        if isinstance(_DEFAULT_VERBOSE_DIR, str) and _DEFAULT_VERBOSE_DIR.strip()
        else "logs"
    )

    VERBOSE_LOG_DIRECTORY = _env_path("VERBOSE_LOG_DIRECTORY", default_verbose_dir)
else:
    VERBOSE_LOG_DIRECTORY = None

__all__ = [
    "PACKAGE_ROOT",
    "DEFAULTS_PATH",
    "ENV_PATH",
    "_DEFAULTS",
    "_coerce_path",
    "_env_bool",
    "_env_encoding",
    "_env_float",
    "_env_path",
    "_env_str",
    "STREAM_ENCODING",
    "STREAM_FRAME_MARKER",
    "STREAM_DONE_SENTINEL",
    "SPEECH_CONTINUOUS",
    "EXPORT_DEFAULT_LABEL",
    "VERBOSE_LOG_CAPTURE_ENABLED",
    "VERBOSE_LOG_DIRECTORY",
]

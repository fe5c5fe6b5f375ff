from pathlib import Path

import pytest

from voice_chat.cli import logging_utils
from voice_chat.cli.logging_utils import Logger, VerboseLogFile
from voice_chat.transcript import Mode


@pytest.fixture
def logger():
    instance = Logger()
    yield instance
    instance.close()


@pytest.fixture(autouse=True)
def quiet_global_logger():
    logging_utils.set_verbose_logging(False)
    yield
    logging_utils.configure_verbose_log_capture(None)
    logging_utils.set_verbose_logging(False)


def test_plain_line_has_timestamp_and_colored_label(logger, capsys):
    logger.log(logging_utils.CHAT_LOG_LABEL, "Asking AI", "(5 chars)...")

    out = capsys.readouterr().out
    assert out.startswith("[")
    assert "\033[35m[CHAT]\033[0m Asking AI (5 chars)..." in out


def test_unknown_label_is_left_uncolored(logger, capsys):
    logger.log("SYSTEM", "ready")

    assert "] [SYSTEM] ready" in capsys.readouterr().out


def test_error_lines_go_to_stderr(logger, capsys):
    logger.log(logging_utils.ERROR_LOG_LABEL, "bad", error=True)

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "bad" in captured.err


def test_verbose_lines_hidden_until_enabled(logger, capsys):
    logger.verbose(logging_utils.STREAM_LOG_LABEL, "fragment")
    assert capsys.readouterr().out == ""

    logger.verbose_enabled = True
    logger.verbose(logging_utils.STREAM_LOG_LABEL, "fragment")
    assert "[STREAM]" in capsys.readouterr().out


def test_verbose_lines_are_captured_without_colors(logger, tmp_path: Path):
    target = tmp_path / "logs" / "chat.log"
    logger.capture_to(target)

    logger.verbose(logging_utils.SPEECH_LOG_LABEL, "Listening started")
    logger.log(logging_utils.CHAT_LOG_LABEL, "not verbose")
    logger.close()

    data = target.read_text(encoding="utf-8")
    assert "[SPEECH] Listening started\n" in data
    assert "not verbose" not in data
    assert "\x1b" not in data


def test_exception_traceback_is_appended(logger, capsys):
    try:
        raise KeyError("missing")
    except KeyError as exc:
        logger.log(logging_utils.ERROR_LOG_LABEL, "CLI error", error=True, exc_info=exc)

    err = capsys.readouterr().err
    assert "CLI error\nTraceback" in err
    assert "KeyError: 'missing'" in err


def test_rejects_blank_label_and_unknown_options(logger):
    with pytest.raises(ValueError):
        logger.log("  ", "noop")
    with pytest.raises(TypeError):
        logger.log("CHAT", "noop", **{"color": "red"})  # type: ignore[arg-type]


def test_session_capture_opens_lazily_on_first_verbose_line(tmp_path: Path):
    logger = Logger(capture_directory=tmp_path)

    assert not any(tmp_path.iterdir())
    logger.verbose(logging_utils.STATE_LOG_LABEL, "boot")
    path = logger.capture_path
    logger.close()

    assert path is not None
    assert path.parent == tmp_path
    assert path.stem[:4].isdigit()
    assert "boot" in path.read_text(encoding="utf-8")


def test_session_files_never_collide(tmp_path: Path):
    first, second = VerboseLogFile(), VerboseLogFile()

    first.open(tmp_path, per_session=True)
    second.open(tmp_path, per_session=True)

    assert first.path is not None and second.path is not None
    assert first.path != second.path
    first.close()
    second.close()


def test_unwritable_destination_reports_once(tmp_path: Path, capsys):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    capture = VerboseLogFile()

    capture.open(blocker / "nested" / "chat.log")
    capture.write("ignored")

    assert capture.is_open is False
    assert capsys.readouterr().err.count("Unable to open verbose log file") == 1


def test_write_failure_is_reported_once(capsys):
    class BrokenHandle:
        def write(self, _value):
            raise OSError("disk full")

        def flush(self):
            pass

        def close(self):
            pass

    capture = VerboseLogFile()
    capture._handle = BrokenHandle()  # type: ignore[assignment]

    capture.write("one")
    capture.write("two")

    assert capsys.readouterr().err.count("Unable to write to verbose log file") == 1


def test_module_level_helpers_drive_shared_logger(tmp_path: Path):
    logging_utils.set_verbose_logging(True)
    logging_utils.configure_verbose_log_capture(tmp_path, per_session=True)

    assert logging_utils.is_verbose_logging_enabled() is True
    assert logging_utils.current_verbose_log_path() is not None


def test_strip_ansi_sequences_removes_codes():
    assert logging_utils.strip_ansi_sequences("\033[31mhello\033[0m world") == "hello world"


@pytest.mark.parametrize(
    "direction,expected",
    [(None, "HTTP"), ("→", "HTTP→"), ("←", "HTTP←"), ("?", "HTTP")],
)
def test_http_log_label(direction, expected):
    assert logging_utils.http_log_label(direction) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        (None, None),
        ("", None),
        ("  two\nlines  ", "two lines"),
        ("x" * 81, "x" * 80 + "…"),
    ],
)
def test_shorten_text(text, expected):
    assert logging_utils.shorten_text(text) == expected


@pytest.mark.parametrize(
    "previous,new,expected",
    [
        (None, Mode.IDLE, ["Entered IDLE (boot)"]),
        (Mode.EDITING, Mode.SUBMITTING, ["EDITING -> SUBMITTING (boot)"]),
        (Mode.LISTENING, Mode.LISTENING, []),
    ],
)
def test_log_mode_transition(monkeypatch, previous, new, expected):
    messages: list[str] = []
    monkeypatch.setattr(
        logging_utils.LOGGER,
        "verbose",
        lambda label, message, **_: messages.append(message),
    )

    logging_utils.log_mode_transition(previous, new, "boot")

    assert messages == expected

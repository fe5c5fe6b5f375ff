import asyncio
from typing import Any

import pytest

from voice_chat.cli import app
from voice_chat.cli.app import build_settings, main, parse_args, run_chat
from voice_chat.config import resolve_chat_settings


class FakeResponse:
    content_type = "text/event-stream"

    def __init__(self, fragments: list[bytes]):
        self._fragments = fragments
        self.closed = False

    async def json(self) -> Any:
        raise AssertionError("streamed responses are not parsed as JSON")

    async def iter_chunks(self):
        for fragment in self._fragments:
            yield fragment

    async def close(self) -> None:
        self.closed = True


class FakeChatClient:
    instances: list["FakeChatClient"] = []
    fragments: list[bytes] = [b"data: Hi", b" there\n", b"data: [DONE]\n"]

    def __init__(self, endpoint: str, *, timeout_seconds: float):
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self.calls: list[tuple[str, str, str]] = []
        self.closed = False
        FakeChatClient.instances.append(self)

    async def __aenter__(self) -> "FakeChatClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True

    async def send(self, prompt: str, role: str, credential: str = "") -> FakeResponse:
        self.calls.append((prompt, role, credential))
        return FakeResponse(list(self.fragments))


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch):
    FakeChatClient.instances = []
    monkeypatch.setattr(app, "ChatClient", FakeChatClient)
    return FakeChatClient


def test_parse_args_defaults() -> None:
    args = parse_args([])

    assert args.variant is None
    assert args.endpoint is None
    assert args.memory is None
    assert args.require_key is None
    assert args.prompt is None
    assert args.verbose is False


def test_parse_args_normalizes_variant() -> None:
    args = parse_args(["--variant", "Interview_Secure", "--no-memory", "-v"])

    assert args.variant == "interview-secure"
    assert args.memory is False
    assert args.verbose is True


def test_parse_args_rejects_unknown_variant() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--variant", "kiosk"])


def test_build_settings_applies_cli_overrides() -> None:
    args = parse_args(
        [
            "--variant",
            "open",
            "--endpoint",
            "http://other.test/chat",
            "--role",
            "Designer",
            "--api-key",
            "secret",
            "--memory",
            "--require-key",
        ]
    )

    settings = build_settings(args)

    assert settings.variant == "open"
    assert settings.endpoint == "http://other.test/chat"
    assert settings.default_role == "Designer"
    assert settings.credential == "secret"
    assert settings.context_memory_enabled is True
    assert settings.require_credential is True


def test_build_settings_keeps_variant_values_without_flags() -> None:
    settings = build_settings(parse_args(["--variant", "interview"]))

    assert settings.default_role == "Full Stack Developer"
    assert settings.context_memory_enabled is True


def test_run_chat_single_prompt_streams_answer(fake_client, capsys) -> None:
    settings = resolve_chat_settings("interview")

    exit_code = asyncio.run(run_chat(settings, prompt="what is asyncio"))

    client = fake_client.instances[0]
    assert exit_code == 0
    assert client.calls == [("what is asyncio", "Full Stack Developer", "")]
    assert client.closed is True
    assert "Hi there" in capsys.readouterr().out


def test_run_chat_single_prompt_reports_validation_failure(fake_client, capsys) -> None:
    settings = resolve_chat_settings("api-key", default_role="Engineer", credential="")

    exit_code = asyncio.run(run_chat(settings, prompt="hello"))

    assert exit_code == 1
    assert fake_client.instances[0].calls == []
    assert "Please enter your API key." in capsys.readouterr().err


def test_main_runs_chat_with_resolved_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}

    async def fake_run_chat(settings, *, prompt=None):
        seen["settings"] = settings
        seen["prompt"] = prompt
        return 0

    monkeypatch.setattr(app, "run_chat", fake_run_chat)

    main(["--variant", "open", "--prompt", "hi"])

    assert seen["settings"].variant == "open"
    assert seen["prompt"] == "hi"


def test_main_exits_with_request_failure_code(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_run_chat(settings, *, prompt=None):
        return 1

    monkeypatch.setattr(app, "run_chat", fake_run_chat)

    with pytest.raises(SystemExit) as excinfo:
        main(["--prompt", "hi"])

    assert excinfo.value.code == 1


def test_main_reports_configuration_error(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    def broken_settings(args):
        raise ValueError("Chat endpoint is not configured")

    monkeypatch.setattr(app, "build_settings", broken_settings)

    with pytest.raises(SystemExit) as excinfo:
        main([])

    assert excinfo.value.code == 2
    assert "Configuration error" in capsys.readouterr().err


def test_main_reports_unexpected_errors(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    async def failing_run_chat(settings, *, prompt=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(app, "run_chat", failing_run_chat)

    with pytest.raises(SystemExit) as excinfo:
        main([])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "CLI error: boom" in err
    assert "RuntimeError: boom" in err


def test_main_log_dir_enables_session_capture(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    captured: list[tuple[Any, bool]] = []

    async def fake_run_chat(settings, *, prompt=None):
        return 0

    monkeypatch.setattr(app, "run_chat", fake_run_chat)
    monkeypatch.setattr(
        app,
        "configure_verbose_log_capture",
        lambda destination, *, per_session=False: captured.append((destination, per_session)),
    )

    main(["--log-dir", str(tmp_path)])

    assert captured == [(str(tmp_path), True)]

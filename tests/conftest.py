import os

import pytest

_TEST_ENV_DEFAULTS = {
    "VOICE_CHAT_ENV_FILE": os.path.join(os.path.dirname(__file__), "missing.env"),
    "CHAT_ENDPOINT": "http://chat.test/api/chat",
    "VERBOSE_LOG_CAPTURE_ENABLED": "0",
}
_TEST_ENV_UNSET = (
    "CHAT_API_KEY",
    "CHAT_DEFAULT_ROLE",
    "CHAT_REQUIRE_CREDENTIAL",
    "CHAT_CONTEXT_MEMORY_ENABLED",
    "CHAT_HISTORY_CONNECTIVE",
    "CHAT_VARIANT",
    "STREAM_FRAME_MARKER",
    "STREAM_DONE_SENTINEL",
)

for key, value in _TEST_ENV_DEFAULTS.items():
    os.environ[key] = value
for key in _TEST_ENV_UNSET:
    os.environ.pop(key, None)


@pytest.fixture(autouse=True)
def set_test_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep critical environment variables stable across tests."""

    for key, value in _TEST_ENV_DEFAULTS.items():
        monkeypatch.setenv(key, value)
    for key in _TEST_ENV_UNSET:
        monkeypatch.delenv(key, raising=False)

"""Chat backend settings and screen variant presets."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, TypedDict

from typing_extensions import Unpack

from .base import _DEFAULTS, _env_bool, _env_float, _env_str

_CHAT = _DEFAULTS.get("chat", {})
_VARIANTS: dict[str, dict[str, object]] = {
    str(name): dict(values) for name, values in _DEFAULTS.get("variants", {}).items()
}
_VARIANT_KEYS = frozenset({"default_role", "require_credential", "context_memory_enabled"})

CHAT_ENDPOINT = _env_str("CHAT_ENDPOINT", _CHAT.get("endpoint", "")).strip()
CHAT_API_KEY = (os.getenv("CHAT_API_KEY") or "").strip()
CHAT_DEFAULT_ROLE = _env_str("CHAT_DEFAULT_ROLE", _CHAT.get("default_role", "")).strip()
CHAT_REQUIRE_CREDENTIAL = _env_bool(
    "CHAT_REQUIRE_CREDENTIAL", _CHAT.get("require_credential", True)
)
CHAT_CONTEXT_MEMORY_ENABLED = _env_bool(
    "CHAT_CONTEXT_MEMORY_ENABLED", _CHAT.get("context_memory_enabled", False)
)
CHAT_HISTORY_CONNECTIVE = _env_str(
    "CHAT_HISTORY_CONNECTIVE", _CHAT.get("history_connective", " Also, ")
)
CHAT_REQUEST_TIMEOUT_SECONDS = _env_float(
    "CHAT_REQUEST_TIMEOUT_SECONDS", float(_CHAT.get("request_timeout_seconds", 60.0))
)
CHAT_RESPONSE_FIELD = (
    _env_str("CHAT_RESPONSE_FIELD", _CHAT.get("response_field", "response")).strip()
    or "response"
)
CHAT_VARIANT = _env_str("CHAT_VARIANT", _CHAT.get("variant", "")).strip().lower() or None

CHAT_VARIANT_CHOICES: tuple[str, ...] = tuple(sorted(_VARIANTS))


@dataclass(frozen=True, slots=True)
class ChatSettings:
    """Resolved configuration for one chat screen."""

    endpoint: str = CHAT_ENDPOINT
    credential: str = CHAT_API_KEY
    default_role: str = CHAT_DEFAULT_ROLE
    require_credential: bool = CHAT_REQUIRE_CREDENTIAL
    context_memory_enabled: bool = CHAT_CONTEXT_MEMORY_ENABLED
    history_connective: str = CHAT_HISTORY_CONNECTIVE
    request_timeout_seconds: float = CHAT_REQUEST_TIMEOUT_SECONDS
    response_field: str = CHAT_RESPONSE_FIELD
    variant: Optional[str] = None


CHAT_SETTINGS_FIELDS = frozenset(ChatSettings.__dataclass_fields__.keys())


class ChatSettingsOverrides(TypedDict, total=False):
    endpoint: str
    credential: str
    default_role: str
    require_credential: bool
    context_memory_enabled: bool
    history_connective: str
    request_timeout_seconds: float
    response_field: str


def _validate_overrides(overrides: Mapping[str, object]) -> None:
    if not overrides:
        return
    invalid = set(overrides) - set(CHAT_SETTINGS_FIELDS - {"variant"})
    if invalid:
        joined = ", ".join(sorted(invalid))
        raise TypeError(f"Invalid chat settings override(s): {joined}")


def normalize_variant_choice(value: str | None) -> str | None:
    """Return the canonical variant key, or None when it is unknown."""

    if not value:
        return None
    normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
    if normalized in _VARIANTS:
        return normalized
    return None


def variant_preset(name: str) -> dict[str, object]:
    """Return the settings a named variant overrides."""

    key = normalize_variant_choice(name)
    if key is None:
        allowed = ", ".join(CHAT_VARIANT_CHOICES) or "none configured"
        raise ValueError(f"Unknown chat variant '{name}'. Choose from: {allowed}.")
    preset = _VARIANTS[key]
    return {field: value for field, value in preset.items() if field in _VARIANT_KEYS}


def resolve_chat_settings(
    variant: Optional[str] = None,
    **overrides: Unpack[ChatSettingsOverrides],
) -> ChatSettings:
    """
    Build the effective settings for a screen.

    Precedence (lowest first): ``defaults.toml``/environment, the variant preset,
    then explicit ``overrides`` (CLI flags). Environment variables for the three
    variant-controlled keys still win over the preset when they are set explicitly.
    """

    _validate_overrides(overrides)
    settings = ChatSettings()
    selected = variant if variant is not None else CHAT_VARIANT
    if selected:
        preset = variant_preset(selected)
        preset = {
            field: value
            for field, value in preset.items()
            if os.getenv(_env_name_for(field)) is None
        }
        settings = replace(settings, variant=normalize_variant_choice(selected), **preset)
    if overrides:
        settings = replace(settings, **overrides)
    return settings


def _env_name_for(field: str) -> str:
    return f"CHAT_{field.upper()}"


__all__ = [
    "CHAT_API_KEY",
    "CHAT_CONTEXT_MEMORY_ENABLED",
    "CHAT_DEFAULT_ROLE",
    "CHAT_ENDPOINT",
    "CHAT_HISTORY_CONNECTIVE",
    "CHAT_REQUEST_TIMEOUT_SECONDS",
    "CHAT_REQUIRE_CREDENTIAL",
    "CHAT_RESPONSE_FIELD",
    "CHAT_SETTINGS_FIELDS",
    "CHAT_VARIANT",
    "CHAT_VARIANT_CHOICES",
    "ChatSettings",
    "ChatSettingsOverrides",
    "normalize_variant_choice",
    "resolve_chat_settings",
    "variant_preset",
]

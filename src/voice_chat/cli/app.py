"""
Voice chat client entry point.
Reconciles a live transcript with typed edits and streams the AI's answer.
"""

import argparse
import asyncio
import sys
from typing import Optional

from voice_chat.assistant import ChatSession
from voice_chat.cli.console import HELP_TEXT, ConsoleController, StreamPrinter, stdin_lines
from voice_chat.cli.logging_utils import (
    CHAT_LOG_LABEL,
    CONTROL_LOG_LABEL,
    ERROR_LOG_LABEL,
    LOGGER,
    configure_verbose_log_capture,
    current_verbose_log_path,
    set_verbose_logging,
)
from voice_chat.config import (
    CHAT_VARIANT,
    CHAT_VARIANT_CHOICES,
    ChatSettings,
    normalize_variant_choice,
    resolve_chat_settings,
)
from voice_chat.network import ChatClient
from voice_chat.speech import BufferedSpeechSource


def _parse_variant_arg(value: str) -> str:
    normalized = normalize_variant_choice(value)
    if normalized:
        return normalized
    raise argparse.ArgumentTypeError(
        f"Unknown variant '{value}'. Choose from: {', '.join(CHAT_VARIANT_CHOICES)}."
    )


def build_settings(args: argparse.Namespace) -> ChatSettings:
    """Resolve settings from the selected variant plus explicit CLI overrides."""

    overrides: dict[str, object] = {}
    if args.endpoint:
        overrides["endpoint"] = args.endpoint
    if args.role is not None:
        overrides["default_role"] = args.role
    if args.api_key is not None:
        overrides["credential"] = args.api_key
    if args.memory is not None:
        overrides["context_memory_enabled"] = args.memory
    if args.require_key is not None:
        overrides["require_credential"] = args.require_key
    return resolve_chat_settings(args.variant, **overrides)  # type: ignore[arg-type]


async def run_chat(settings: ChatSettings, *, prompt: Optional[str] = None) -> int:
    """
    Run an interactive session (or a single prompt when ``prompt`` is given).

    Returns the process exit code.
    """

    LOGGER.log(
        "SYSTEM",
        f"Voice chat ready (variant={settings.variant or 'default'}, "
        f"memory={'on' if settings.context_memory_enabled else 'off'})",
    )
    speech = BufferedSpeechSource()
    printer = StreamPrinter()
    async with ChatClient(
        settings.endpoint, timeout_seconds=settings.request_timeout_seconds
    ) as client:
        session = ChatSession.from_settings(settings, speech, client, on_snapshot=printer)
        controller = ConsoleController(session, speech, printer)
        try:
            session.start()
            if prompt is not None:
                speech.feed(prompt)
                await controller.handle_line("/send")
                return 0 if session.display.error == "" else 1
            LOGGER.log(CONTROL_LOG_LABEL, HELP_TEXT)
            await controller.run(stdin_lines())
        finally:
            session.stop_session()
            session.close()
    return 0


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Voice-driven chat client with editable transcripts and streamed answers."
    )
    parser.add_argument(
        "--variant",
        type=_parse_variant_arg,
        default=None,
        help=(
            "Screen preset controlling the default role, whether an API key is required, "
            f"and context memory. Choices: {', '.join(CHAT_VARIANT_CHOICES)}. "
            f"Default: {CHAT_VARIANT or 'none'}"
        ),
    )
    parser.add_argument("--endpoint", help="Chat backend URL (overrides CHAT_ENDPOINT).")
    parser.add_argument("--role", help="Role sent with every prompt.")
    parser.add_argument("--api-key", dest="api_key", help="API key sent with every prompt.")
    parser.add_argument(
        "--memory",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Send earlier turns along with each new prompt.",
    )
    parser.add_argument(
        "--require-key",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Refuse to send prompts without an API key.",
    )
    parser.add_argument(
        "--prompt",
        help="Send a single prompt non-interactively and print the answer.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed diagnostic logs (state changes, stream fragments, HTTP).",
    )
    parser.add_argument(
        "--log-dir",
        dest="log_dir",
        help="Capture verbose logs to a per-session file in this directory.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point"""

    args = parse_args(argv)
    set_verbose_logging(args.verbose)
    if args.log_dir:
        configure_verbose_log_capture(args.log_dir, per_session=True)
        log_path = current_verbose_log_path()
        if log_path is not None:
            LOGGER.log(CONTROL_LOG_LABEL, f"Verbose log: {log_path}")
    try:
        settings = build_settings(args)
    except (ValueError, TypeError) as e:
        LOGGER.log(ERROR_LOG_LABEL, f"Configuration error: {e}", error=True)
        sys.exit(2)

    try:
        exit_code = asyncio.run(run_chat(settings, prompt=args.prompt))
    except KeyboardInterrupt:
        LOGGER.log("SYSTEM", "Shutdown requested")
        return
    except Exception as e:
        LOGGER.log(ERROR_LOG_LABEL, f"CLI error: {e}", error=True, exc_info=e)
        sys.exit(1)
    if exit_code:
        LOGGER.log(CHAT_LOG_LABEL, "Request did not complete.", error=True)
        sys.exit(exit_code)


if __name__ == "__main__":
    main()

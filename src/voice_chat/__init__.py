"""Core package for the voice chat client."""

from . import assistant, cli, config, core, network, speech, stream, transcript

__all__ = [
    "assistant",
    "cli",
    "config",
    "core",
    "network",
    "speech",
    "stream",
    "transcript",
]

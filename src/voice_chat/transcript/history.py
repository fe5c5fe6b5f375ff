"""Prompt history used for context memory across turns."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from voice_chat.config import CHAT_HISTORY_CONNECTIVE


def compose_prompt(
    history: Sequence[str], turn: str, connective: str = CHAT_HISTORY_CONNECTIVE
) -> str:
    """Join earlier turns and the new one, oldest first, with ``connective`` between each."""

    return connective.join([*history, turn])


class PromptHistory:
    """Append-only list of submitted turns; stores only the untransformed text."""

    def __init__(self, entries: Sequence[str] = ()):
        self._entries: list[str] = [entry for entry in entries if entry]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def append(self, turn: str) -> None:
        if turn:
            self._entries.append(turn)

    def clear(self) -> None:
        self._entries.clear()

    def compose(self, turn: str, connective: str = CHAT_HISTORY_CONNECTIVE) -> str:
        return compose_prompt(self._entries, turn, connective)

    def export_text(self) -> str:
        """Return the history as one block of text, one turn per line."""

        return "\n".join(self._entries)


__all__ = ["PromptHistory", "compose_prompt"]

"""Append-only conversation memory for a single interactive session."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ConversationTurn:
    """One entry of the conversation log.

    Attributes
    ----------
    role:
        ``"user"`` for questions, ``"assistant"`` for answers.
    content:
        The text, stripped of surrounding whitespace.
    """

    role: str
    content: str


@dataclass
class ConversationMemory:
    """Ordered log of turns, oldest first.

    Not thread-safe: one session drives one query at a time.
    """

    _turns: list[ConversationTurn] = field(default_factory=list)

    def add_turn(self, text: str, role: str = "user") -> ConversationTurn:
        turn = ConversationTurn(role=role, content=text.strip())
        self._turns.append(turn)
        return turn

    def recent_turns(self, n: int) -> list[str]:
        """Return the contents of the last *n* turns in chronological order."""
        if n <= 0:
            return []
        return [t.content for t in self._turns[-n:]]

    def all_turns(self) -> list[str]:
        return [t.content for t in self._turns]

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

"""Context assembly with character budgets.

Retrieved context and conversation history are truncated differently:
context keeps its *prefix*, because matches arrive best-first; history
keeps its *suffix*, because the latest turns matter most.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from pdf_rag.chat.memory import ConversationMemory
from pdf_rag.chat.prompts import build_answer_prompt
from pdf_rag.config import settings
from pdf_rag.retrieval.models import QueryMatch

ELLIPSIS = "..."


def truncate_head(text: str, budget: int) -> str:
    """Keep the first *budget* characters, marking any cut with an ellipsis."""
    if len(text) <= budget:
        return text
    return text[:budget] + ELLIPSIS


def truncate_tail(text: str, budget: int) -> str:
    """Keep the last *budget* characters."""
    if len(text) <= budget:
        return text
    return text[len(text) - budget :]


@dataclass
class PromptContext:
    """Everything built for one query; rebuilt on every call.

    Attributes
    ----------
    context:
        Truncated retrieved context.
    history:
        Truncated recent conversation.
    references:
        ``[score%] source`` lines for the matches that made the cut.
    prompt:
        The final prompt sent to the chat model.
    matches:
        Matches that passed the score threshold, best first.
    """

    context: str
    history: str
    prompt: str
    references: list[str] = field(default_factory=list)
    matches: list[QueryMatch] = field(default_factory=list)


class ContextAssembler:
    """Builds a size-bounded prompt from matches, memory and the query.

    Parameters
    ----------
    score_threshold:
        Matches scoring below this are left out of the context.
    context_char_budget:
        Maximum characters of retrieved context.
    memory_char_budget:
        Maximum characters of conversation history.
    memory_window:
        Number of most recent turns considered for history.
    """

    def __init__(
        self,
        *,
        score_threshold: float = settings.score_threshold,
        context_char_budget: int = settings.context_char_budget,
        memory_char_budget: int = settings.memory_char_budget,
        memory_window: int = settings.memory_window,
    ) -> None:
        self.score_threshold = score_threshold
        self.context_char_budget = context_char_budget
        self.memory_char_budget = memory_char_budget
        self.memory_window = memory_window

    def select(self, matches: Sequence[QueryMatch]) -> list[QueryMatch]:
        """Drop matches under the score threshold, keeping their order."""
        return [m for m in matches if m.score >= self.score_threshold]

    def assemble(
        self,
        matches: Sequence[QueryMatch],
        memory: ConversationMemory,
        query: str,
    ) -> PromptContext:
        selected = self.select(matches)

        lines = [f"[{m.record.title}] {m.record.content}\n" for m in selected]
        context = truncate_head("".join(lines), self.context_char_budget)

        recent = memory.recent_turns(self.memory_window)
        history = truncate_tail("\n".join(recent), self.memory_char_budget)

        return PromptContext(
            context=context,
            history=history,
            prompt=build_answer_prompt(context, history, query),
            references=[m.reference() for m in selected],
            matches=selected,
        )

"""One interactive question-answering session.

The session owns its :class:`ConversationMemory`; nothing is shared at
module level, so a new session starts with an empty history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pdf_rag.chat.generation import FragmentCallback, GenerationController
from pdf_rag.chat.memory import ConversationMemory
from pdf_rag.retrieval.context import ContextAssembler
from pdf_rag.retrieval.models import QueryMatch
from pdf_rag.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)


@dataclass
class SessionAnswer:
    """What the session hands back for one question."""

    answer: str
    timed_out: bool
    references: list[str] = field(default_factory=list)
    matches: list[QueryMatch] = field(default_factory=list)


class ChatSession:
    """Retrieve → assemble → generate, recording both sides in memory.

    Parameters
    ----------
    retriever:
        Turns the question into ranked matches.
    controller:
        Streams the answer under a deadline.
    assembler:
        Builds the bounded prompt; defaults to the configured budgets.
    memory:
        Conversation log; a fresh one is created when omitted.
    """

    def __init__(
        self,
        retriever: SemanticRetriever,
        controller: GenerationController,
        *,
        assembler: ContextAssembler | None = None,
        memory: ConversationMemory | None = None,
    ) -> None:
        self.retriever = retriever
        self.controller = controller
        self.assembler = assembler or ContextAssembler()
        self.memory = memory if memory is not None else ConversationMemory()

    async def ask(self, query: str, *, on_fragment: FragmentCallback | None = None) -> SessionAnswer:
        """Answer *query*, streaming fragments to *on_fragment*.

        The question is recorded before generation starts and the answer
        (partial if the deadline fired) once it ends.  Errors propagate;
        a generation failure leaves the question recorded without an
        answer.
        """
        query = query.strip()
        if not query:
            raise ValueError("query must not be blank")

        matches = await self.retriever.retrieve(query)
        for match in matches:
            logger.debug("Retrieved %s", match)

        prompt = self.assembler.assemble(matches, self.memory, query)
        self.memory.add_turn(query, role="user")

        result = await self.controller.generate(prompt.prompt, on_fragment=on_fragment)
        self.memory.add_turn(result.answer, role="assistant")

        return SessionAnswer(
            answer=result.answer,
            timed_out=result.timed_out,
            references=prompt.references,
            matches=prompt.matches,
        )

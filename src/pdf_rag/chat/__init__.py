"""
Chat — conversation memory and deadline-bounded answer streaming.

Public API
----------
- :class:`ConversationMemory` — append-only turn log for one session.
- :class:`GenerationController` — streams an answer under a deadline.
- :class:`GenerationResult` — answer text plus the timeout flag.

:class:`~pdf_rag.chat.session.ChatSession` ties these to retrieval; import
it from :mod:`pdf_rag.chat.session`.
"""

from pdf_rag.chat.generation import TIMEOUT_SENTINEL, GenerationController, GenerationResult
from pdf_rag.chat.memory import ConversationMemory, ConversationTurn

__all__ = [
    "TIMEOUT_SENTINEL",
    "ConversationMemory",
    "ConversationTurn",
    "GenerationController",
    "GenerationResult",
]

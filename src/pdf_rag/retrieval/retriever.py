"""Semantic retriever — query text to ranked matches.

Usage::

    from pdf_rag.retrieval.retriever import SemanticRetriever

    retriever = SemanticRetriever(store, embedder)
    matches   = await retriever.retrieve("How do I configure failover?", k=5)
    for m in matches:
        print(m.reference(), m.record.content[:80])
"""

from __future__ import annotations

import asyncio
import logging

from pdf_rag.config import settings
from pdf_rag.ingestion.embedder import Embedder
from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.models import QueryMatch

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """Embeds a query and runs an unfiltered top-*k* similarity search.

    No score threshold is applied here; the full top-*k* is returned and
    :class:`~pdf_rag.retrieval.context.ContextAssembler` decides what is
    relevant enough for the prompt.

    Parameters
    ----------
    store:
        A concrete vector-store backend.
    embedder:
        Embedding port used for the query text.
    default_k:
        Default number of results returned by :meth:`retrieve`.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: Embedder,
        *,
        default_k: int = settings.search_k,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self.default_k = default_k

    async def retrieve(self, query: str, k: int | None = None) -> list[QueryMatch]:
        """Return up to *k* matches for *query*, best first.

        Raises
        ------
        EmbeddingUnavailable
            When the query cannot be embedded.
        ValueError
            When *k* is not positive.
        """
        k = self.default_k if k is None else k
        if k < 1:
            raise ValueError(f"k must be positive, got {k}")
        embedding = await self._embedder.embed(query)
        matches = await asyncio.to_thread(self._store.similarity_search, embedding, k=k)
        logger.debug("Retrieved %d match(es) for query of %d chars", len(matches), len(query))
        return list(matches)

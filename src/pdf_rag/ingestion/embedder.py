"""Embedding port — text to fixed-dimension vectors."""

from __future__ import annotations

from langchain_core.embeddings import Embeddings
from langchain_huggingface import HuggingFaceEmbeddings

from pdf_rag.config import settings
from pdf_rag.exceptions import EmbeddingDimensionMismatch, EmbeddingUnavailable


def get_embedding_function() -> HuggingFaceEmbeddings:
    """Return the configured sentence-transformer embedding function."""
    return HuggingFaceEmbeddings(model_name=settings.embedding_model)


class Embedder:
    """Async wrapper around any LangChain :class:`Embeddings`.

    Parameters
    ----------
    embeddings:
        Backend used to compute vectors.  When *None*, the configured
        HuggingFace model is loaded.
    dimension:
        Expected vector length; every returned vector is checked against it.
    """

    def __init__(
        self,
        embeddings: Embeddings | None = None,
        *,
        dimension: int = settings.embedding_dimension,
    ) -> None:
        self._embeddings = embeddings if embeddings is not None else get_embedding_function()
        self.dimension = dimension

    async def embed(self, text: str) -> list[float]:
        """Embed *text*, raising :class:`EmbeddingUnavailable` on failure."""
        try:
            vector = await self._embeddings.aembed_query(text)
        except Exception as exc:
            raise EmbeddingUnavailable(f"Embedding request failed: {exc}") from exc

        if len(vector) != self.dimension:
            raise EmbeddingDimensionMismatch(self.dimension, len(vector))
        return [float(x) for x in vector]

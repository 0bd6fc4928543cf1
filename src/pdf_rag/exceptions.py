"""Error kinds raised across the ingestion, retrieval and chat layers.

Only failures that callers act on are exceptions.  Empty pages are skipped
during ingestion and a generation deadline is reported through
:class:`~pdf_rag.chat.generation.GenerationResult`, so neither has a class
here.
"""

from __future__ import annotations


class RagError(Exception):
    """Base class for every error raised by :mod:`pdf_rag`."""


class DocumentLoadError(RagError):
    """A source document could not be opened or parsed."""


class EmbeddingUnavailable(RagError):
    """The embedding service failed to produce a vector."""


class EmbeddingDimensionMismatch(EmbeddingUnavailable):
    """The embedding service returned a vector of the wrong length."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected embedding dimension {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class IndexUnavailable(RagError):
    """The vector index could not be reached or prepared."""


class GenerationUnavailable(RagError):
    """The chat service failed while producing an answer."""

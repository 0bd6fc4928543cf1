"""Abstract base class for vector-store backends.

Adding a new backend (Qdrant, Pinecone, Weaviate …) only requires
subclassing :class:`VectorStoreBase` and implementing the abstract
methods.  The rest of the ingestion and retrieval stack is
backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from pdf_rag.retrieval.models import MetadataFilter, QueryMatch, Record

SUPPORTED_METRICS = ("cosine", "l2", "ip")


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    @abstractmethod
    def create_collection_if_absent(self, dimension: int, metric: str = "cosine") -> bool:
        """Make sure the collection exists.

        Parameters
        ----------
        dimension:
            Length every stored embedding must have.
        metric:
            Similarity metric, one of :data:`SUPPORTED_METRICS`.

        Returns
        -------
        bool
            ``True`` when the collection was created by this call.

        Raises
        ------
        IndexUnavailable
            When the backend cannot list or create collections.
        """
        ...

    @abstractmethod
    def upsert(self, records: Sequence[Record]) -> None:
        """Insert or overwrite *records*, keyed by :attr:`Record.key`."""
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        where: MetadataFilter | None = None,
    ) -> list[QueryMatch]:
        """Return the top-*k* records matching *query_embedding*.

        Matches are ordered by descending score (higher = more similar).

        Parameters
        ----------
        query_embedding:
            Dense vector for the query.
        k:
            Maximum number of results to return.
        where:
            Optional equality filter applied server-side.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

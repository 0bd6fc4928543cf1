"""Duplicate guard — has this document already been ingested?"""

from __future__ import annotations

from pdf_rag.config import settings
from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.models import MetadataFilter


class DuplicateGuard:
    """Checks the index for records carrying a given file name.

    The lookup is a filtered search with an all-zero placeholder vector,
    so the answer depends only on the filter.  It is advisory: two
    concurrent ingestions of the same file are not prevented.
    """

    def __init__(self, store: VectorStoreBase, *, dimension: int = settings.embedding_dimension) -> None:
        self._store = store
        self.dimension = dimension

    def is_ingested(self, file_name: str) -> bool:
        matches = self._store.similarity_search(
            [0.0] * self.dimension,
            k=1,
            where=MetadataFilter.equals("file_name", file_name),
        )
        return bool(matches)

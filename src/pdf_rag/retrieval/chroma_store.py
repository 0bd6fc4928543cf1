"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import chromadb

from pdf_rag.config import settings
from pdf_rag.exceptions import IndexUnavailable
from pdf_rag.retrieval.base import SUPPORTED_METRICS, VectorStoreBase
from pdf_rag.retrieval.models import MetadataFilter, QueryMatch, Record

logger = logging.getLogger(__name__)

_DIMENSION_KEY = "embedding_dimension"


def _build_chroma_where(where: MetadataFilter | None) -> dict[str, Any] | None:
    """Convert a :class:`MetadataFilter` to Chroma ``where`` syntax."""
    if where is None:
        return None
    return {where.field: {"$eq": where.value}}


def _distance_to_score(distance: float, metric: str) -> float:
    """Convert a Chroma distance to a similarity score (higher = closer)."""
    if metric == "l2":
        return 1.0 / (1.0 + distance)
    # cosine and ip distances are both ``1 - similarity``
    return 1.0 - distance


def _column(results: Any, key: str, nested: bool) -> list[Any]:
    # Chroma may hand back numpy arrays, so no truthiness tests here.
    value = results.get(key)
    if value is None:
        return []
    if nested:
        return list(value[0]) if len(value) else []
    return list(value)


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    client:
        Pre-built Chroma client (e.g. ``chromadb.EphemeralClient()``);
        overrides *host* / *port*.
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        client: Any | None = None,
    ) -> None:
        super().__init__(collection_name)
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        self._collection: Any | None = None
        self.dimension: int | None = None
        self.metric = settings.distance_metric

    # -- VectorStoreBase overrides --------------------------------------------

    def create_collection_if_absent(self, dimension: int, metric: str = "cosine") -> bool:
        if metric not in SUPPORTED_METRICS:
            raise ValueError(f"Unsupported metric {metric!r}; expected one of {SUPPORTED_METRICS}")

        try:
            existing = {getattr(c, "name", c) for c in self._client.list_collections()}
            created = self.collection_name not in existing
            if created:
                logger.info("Creating Chroma collection %s (dim=%d, %s)", self.collection_name, dimension, metric)
            self._collection = self._client.get_or_create_collection(
                self.collection_name,
                metadata={"hnsw:space": metric, _DIMENSION_KEY: dimension},
            )
        except Exception as exc:
            raise IndexUnavailable(f"Cannot prepare collection {self.collection_name!r}: {exc}") from exc

        meta = self._collection.metadata or {}
        stored_dim = meta.get(_DIMENSION_KEY, dimension)
        if stored_dim != dimension:
            raise IndexUnavailable(
                f"Collection {self.collection_name!r} holds {stored_dim}-d vectors, expected {dimension}"
            )
        self.dimension = dimension
        self.metric = meta.get("hnsw:space", metric)
        return created

    def upsert(self, records: Sequence[Record]) -> None:
        if not records:
            return
        for record in records:
            if self.dimension is not None and len(record.embedding) != self.dimension:
                raise ValueError(
                    f"Record {record.key} has a {len(record.embedding)}-d embedding, expected {self.dimension}"
                )

        self._get_collection().upsert(
            ids=[r.key for r in records],
            embeddings=[r.embedding for r in records],
            documents=[r.content for r in records],
            metadatas=[r.metadata() for r in records],
        )

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        where: MetadataFilter | None = None,
    ) -> list[QueryMatch]:
        chroma_where = _build_chroma_where(where)
        collection = self._get_collection()

        # A zero vector has no direction under cosine; serve it by filter only.
        if not any(query_embedding):
            results = collection.get(
                where=chroma_where,
                limit=k,
                include=["documents", "metadatas", "embeddings"],
            )
            ids = _column(results, "ids", nested=False)
            docs = _column(results, "documents", nested=False)
            metas = _column(results, "metadatas", nested=False)
            vectors = _column(results, "embeddings", nested=False)
            distances: list[float | None] = [None] * len(ids)
        else:
            results = collection.query(
                query_embeddings=[query_embedding],
                n_results=k,
                where=chroma_where,
                include=["documents", "metadatas", "distances", "embeddings"],
            )
            ids = _column(results, "ids", nested=True)
            docs = _column(results, "documents", nested=True)
            metas = _column(results, "metadatas", nested=True)
            vectors = _column(results, "embeddings", nested=True)
            distances = _column(results, "distances", nested=True)

        matches: list[QueryMatch] = []
        for i, key in enumerate(ids):
            meta = (metas[i] if i < len(metas) else None) or {}
            vector = vectors[i] if i < len(vectors) else None
            record = Record(
                key=key,
                title=meta.get("title", ""),
                content=(docs[i] if i < len(docs) else None) or "",
                source=meta.get("source", ""),
                file_name=meta.get("file_name", ""),
                embedding=[float(x) for x in vector] if vector is not None else [],
            )
            distance = distances[i]
            score = 0.0 if distance is None else _distance_to_score(float(distance), self.metric)
            matches.append(QueryMatch(record=record, score=score))
        return matches

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    # -- internals ------------------------------------------------------------

    def _get_collection(self) -> Any:
        if self._collection is None:
            try:
                self._collection = self._client.get_collection(self.collection_name)
            except Exception as exc:
                raise IndexUnavailable(f"Collection {self.collection_name!r} is not available: {exc}") from exc
            meta = self._collection.metadata or {}
            self.dimension = meta.get(_DIMENSION_KEY)
            self.metric = meta.get("hnsw:space", self.metric)
        return self._collection

"""
Retrieval — vector search and context assembly.

This module wraps the vector store behind a clean interface so that
the chat layer never needs to know which DB is backing retrieval.

Public surface
--------------
- :class:`SemanticRetriever` — query text to ranked :class:`QueryMatch` list.
- :class:`ContextAssembler` — size-bounded prompt construction.
- :class:`VectorStoreBase` — abstract backend (subclass for Qdrant, etc.).
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`Record`, :class:`QueryMatch`, :class:`MetadataFilter` — data models.
"""

from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.context import ContextAssembler, PromptContext
from pdf_rag.retrieval.models import MetadataFilter, QueryMatch, Record
from pdf_rag.retrieval.retriever import SemanticRetriever

__all__ = [
    "ChromaVectorStore",
    "ContextAssembler",
    "MetadataFilter",
    "PromptContext",
    "QueryMatch",
    "Record",
    "SemanticRetriever",
    "VectorStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from pdf_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""
Ingestion — page extraction, chunking, and embedding of PDF documents.

This module turns raw PDF files into embedded :class:`~pdf_rag.retrieval.models.Record`
objects ready to be upserted into the vector store, and tells callers which
documents the store already holds.
"""

"""Document loaders — page-level text extraction from PDF files."""

from __future__ import annotations

import logging
from pathlib import Path

from langchain_community.document_loaders import PyPDFLoader

from pdf_rag.exceptions import DocumentLoadError

logger = logging.getLogger(__name__)

PageText = tuple[int, str]


def load_pdf_pages(path: str | Path) -> list[PageText]:
    """Extract the text of every page of the PDF at *path*.

    ``PyPDFLoader`` yields one ``Document`` per page with a 0-based
    ``metadata["page"]``; page numbers returned here are 1-based.

    Returns
    -------
    list[PageText]
        ``(page_number, text)`` pairs in page order.  Pages without text
        are kept; the chunker skips them.
    """
    try:
        documents = PyPDFLoader(str(path)).load()
    except Exception as exc:
        raise DocumentLoadError(f"Could not read {path}: {exc}") from exc

    pages: list[PageText] = []
    for position, doc in enumerate(documents):
        page = doc.metadata.get("page", position)
        pages.append((int(page) + 1, doc.page_content or ""))
    return pages


def list_pdfs(folder: str | Path) -> list[Path]:
    """Return the PDF files directly inside *folder*, sorted by name."""
    root = Path(folder)
    if not root.is_dir():
        logger.warning("PDF folder %s does not exist", root)
        return []
    return sorted(p for p in root.iterdir() if p.is_file() and p.suffix.lower() == ".pdf")

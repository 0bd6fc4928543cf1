"""PDF ingestion — chunk pages and embed them with bounded concurrency.

Every chunk of a document is collected before embedding starts, so
progress is reported against a fixed total.  At most ``max_concurrency``
embedding calls are in flight at once; a failing chunk is recorded and
the rest of the document carries on.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from pdf_rag.config import settings
from pdf_rag.exceptions import EmbeddingUnavailable
from pdf_rag.ingestion.chunker import PageChunk, chunk_pages
from pdf_rag.ingestion.embedder import Embedder
from pdf_rag.ingestion.loader import PageText, load_pdf_pages
from pdf_rag.retrieval.models import Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionProgress:
    """Snapshot sent to the progress callback after each embedding call."""

    file_name: str
    completed: int
    total: int

    @property
    def percent(self) -> float:
        return 100.0 * self.completed / self.total if self.total else 100.0


@dataclass(frozen=True)
class ChunkFailure:
    """A chunk whose embedding failed."""

    page: int
    chunk_index: int
    error: str


@dataclass
class IngestionResult:
    """Records built for one document plus the chunks that failed."""

    file_name: str
    records: list[Record] = field(default_factory=list)
    failures: list[ChunkFailure] = field(default_factory=list)

    @property
    def total_chunks(self) -> int:
        return len(self.records) + len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


ProgressCallback = Callable[[IngestionProgress], None]


class IngestionPipeline:
    """Turns a document into embedded :class:`Record` objects.

    Parameters
    ----------
    embedder:
        Embedding port shared by every chunk.
    max_words:
        Chunk size cap in whitespace tokens.
    max_concurrency:
        Upper bound on simultaneous embedding calls.
    progress_callback:
        Called after every embedding call, successful or not.
    page_loader:
        Extracts ``(page_number, text)`` pairs from a document path.
    """

    def __init__(
        self,
        embedder: Embedder,
        *,
        max_words: int = settings.chunk_max_words,
        max_concurrency: int = settings.embed_max_concurrency,
        progress_callback: ProgressCallback | None = None,
        page_loader: Callable[[Path], list[PageText]] = load_pdf_pages,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")
        self._embedder = embedder
        self.max_words = max_words
        self.max_concurrency = max_concurrency
        self._progress_callback = progress_callback
        self._page_loader = page_loader

    async def ingest(self, document_path: str | Path) -> IngestionResult:
        """Load, chunk and embed the document at *document_path*.

        Raises
        ------
        DocumentLoadError
            When the document cannot be read.
        """
        path = Path(document_path)
        pages = await asyncio.to_thread(self._page_loader, path)
        return await self.ingest_pages(path.name, pages)

    async def ingest_pages(self, file_name: str, pages: Iterable[PageText]) -> IngestionResult:
        """Chunk and embed already-extracted *pages* of *file_name*.

        Embedding failures are collected per chunk.  Any other error
        cancels the outstanding chunks and surfaces as an
        :class:`ExceptionGroup` once they have all stopped.
        """
        chunks = chunk_pages(pages, self.max_words)
        total = len(chunks)
        logger.info("Embedding %d chunk(s) from %s", total, file_name)

        semaphore = asyncio.Semaphore(self.max_concurrency)
        completed = 0

        async def embed_one(chunk: PageChunk) -> Record | ChunkFailure:
            nonlocal completed
            async with semaphore:
                try:
                    vector = await self._embedder.embed(chunk.text)
                except EmbeddingUnavailable as exc:
                    logger.warning(
                        "Embedding failed for %s page %d chunk %d: %s",
                        file_name,
                        chunk.page,
                        chunk.index,
                        exc,
                    )
                    outcome: Record | ChunkFailure = ChunkFailure(chunk.page, chunk.index, str(exc))
                else:
                    outcome = Record.from_page_chunk(file_name, chunk.page, chunk.text, vector)

            # Only the event-loop thread touches the counter.
            completed += 1
            self._report(IngestionProgress(file_name, completed, total))
            return outcome

        # A task failing outside the per-chunk handling cancels and joins its siblings.
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(embed_one(c)) for c in chunks]
        outcomes = [task.result() for task in tasks]

        result = IngestionResult(file_name=file_name)
        for outcome in outcomes:
            if isinstance(outcome, Record):
                result.records.append(outcome)
            else:
                result.failures.append(outcome)

        logger.info(
            "Ingested %s: %d record(s), %d failure(s)",
            file_name,
            len(result.records),
            len(result.failures),
        )
        return result

    def _report(self, progress: IngestionProgress) -> None:
        logger.debug("%s: %d/%d (%.1f%%)", progress.file_name, progress.completed, progress.total, progress.percent)
        if self._progress_callback is None:
            return
        try:
            self._progress_callback(progress)
        except Exception:
            logger.warning("Progress callback failed for %s", progress.file_name, exc_info=True)

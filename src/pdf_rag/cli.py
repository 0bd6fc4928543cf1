"""Command-line entry point: ingest a PDF folder, then answer questions.

Run
---
    python -m pdf_rag --pdf-folder ./pdfs
    # or, once installed
    pdf-rag --pdf-folder ./pdfs --log-level INFO
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pdf_rag.chat.generation import TIMEOUT_SENTINEL, GenerationController
from pdf_rag.chat.llm import get_llm
from pdf_rag.chat.session import ChatSession
from pdf_rag.config import settings
from pdf_rag.exceptions import IndexUnavailable
from pdf_rag.ingestion.embedder import Embedder
from pdf_rag.ingestion.guard import DuplicateGuard
from pdf_rag.ingestion.loader import list_pdfs
from pdf_rag.ingestion.pipeline import IngestionPipeline, IngestionProgress
from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)

PROMPT = "\nYour question: "
QUIT_COMMAND = "quit"

Writer = Callable[[str], None]


def _write_stdout(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def _print_progress(progress: IngestionProgress) -> None:
    end = "\n" if progress.completed == progress.total else ""
    _write_stdout(
        f"\r  {progress.completed}/{progress.total} chunks embedded ({progress.percent:.0f}%)" + end
    )


async def _read_in_background(read_line: Callable[[str], str], prompt: str) -> str:
    """Run a blocking *read_line* on a daemon thread and await its result.

    Unlike the default executor, the thread is not joined on shutdown, so
    Ctrl-C at the prompt exits without waiting for a line of input.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def deliver(value: str | None, exc: Exception | None) -> None:
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(value)

    def worker() -> None:
        try:
            value, exc = read_line(prompt), None
        except Exception as err:
            value, exc = None, err
        try:
            loop.call_soon_threadsafe(deliver, value, exc)
        except RuntimeError:
            # Loop already closed; nobody is waiting for the line.
            pass

    threading.Thread(target=worker, name="stdin-reader", daemon=True).start()
    return await future


# ── Bootstrap ─────────────────────────────────────────────────────────


def open_store(collection_name: str) -> VectorStoreBase:
    """Connect to Chroma and make sure the collection exists.

    Raises
    ------
    IndexUnavailable
        When the server is unreachable or the collection cannot be created.
    """
    from pdf_rag.retrieval.chroma_store import ChromaVectorStore

    try:
        store = ChromaVectorStore(collection_name)
    except Exception as exc:
        raise IndexUnavailable(f"Cannot connect to Chroma at {settings.chroma_host}:{settings.chroma_port}: {exc}") from exc

    prepare_store(store)
    return store


def prepare_store(store: VectorStoreBase) -> bool:
    """Health-check *store* and create its collection when missing."""
    if not store.health_check():
        raise IndexUnavailable(f"Vector store for {store.collection_name!r} is not reachable")

    created = store.create_collection_if_absent(settings.embedding_dimension, settings.distance_metric)
    if created:
        logger.info("Collection %s created", store.collection_name)
    return created


async def ingest_folder(
    folder: str | Path,
    pipeline: IngestionPipeline,
    guard: DuplicateGuard,
    store: VectorStoreBase,
    *,
    write: Writer = _write_stdout,
) -> dict[str, list[str]]:
    """Ingest every PDF in *folder* that the store does not hold yet.

    A failing document is logged and skipped; the others still run.

    Returns
    -------
    dict[str, list[str]]
        File names under ``"ingested"``, ``"skipped"`` and ``"failed"``.
    """
    summary: dict[str, list[str]] = {"ingested": [], "skipped": [], "failed": []}

    for pdf in list_pdfs(folder):
        name = pdf.name
        try:
            if await asyncio.to_thread(guard.is_ingested, name):
                write(f"Skipping {name} (already ingested)\n")
                summary["skipped"].append(name)
                continue

            write(f"Processing {name}...\n")
            result = await pipeline.ingest(pdf)
            await asyncio.to_thread(store.upsert, result.records)
        except Exception:
            logger.exception("Failed to ingest %s", name)
            write(f"Failed to ingest {name}\n")
            summary["failed"].append(name)
            continue

        for failure in result.failures:
            logger.warning("%s page %d chunk %d not embedded: %s", name, failure.page, failure.chunk_index, failure.error)
        write(f"Added {len(result.records)} record(s) from {name}.\n")
        summary["ingested"].append(name)

    return summary


# ── Interactive loop ──────────────────────────────────────────────────


async def interactive_loop(
    session: ChatSession,
    *,
    read_line: Callable[[str], str] | None = None,
    write: Writer = _write_stdout,
) -> int:
    """Prompt for questions until ``quit`` or end of input; return the exit status.

    *read_line* defaults to :func:`input`.
    """
    read_line = read_line or input
    while True:
        try:
            line = await _read_in_background(read_line, PROMPT)
        except EOFError:
            write("\nGoodbye!\n")
            return 0

        query = line.strip()
        if not query:
            continue
        if query.lower() == QUIT_COMMAND:
            write("Goodbye!\n")
            return 0

        try:
            answer = await session.ask(query, on_fragment=write)
        except Exception as exc:
            logger.debug("Query failed", exc_info=True)
            write(f"\nError: {exc}\n")
            continue

        if answer.timed_out:
            write(TIMEOUT_SENTINEL)
        if answer.references:
            write("\n\nReferences used:\n")
            for reference in answer.references:
                write(f"- {reference}\n")
        write("\n")


# ── Entry point ───────────────────────────────────────────────────────


async def run(args: argparse.Namespace) -> int:
    try:
        store = await asyncio.to_thread(open_store, args.collection)
    except IndexUnavailable as exc:
        print(f"Vector index unavailable: {exc}", file=sys.stderr)
        return 1

    embedder = Embedder()
    pipeline = IngestionPipeline(embedder, progress_callback=_print_progress)
    await ingest_folder(args.pdf_folder, pipeline, DuplicateGuard(store), store)

    controller = GenerationController(get_llm())
    warm_up: asyncio.Task[Any] | None = None if args.no_warmup else controller.start_warm_up()

    session = ChatSession(SemanticRetriever(store, embedder), controller)
    print("PDF RAG ready! Ask questions or type 'quit' to exit.")
    try:
        return await interactive_loop(session)
    finally:
        if warm_up is not None:
            warm_up.cancel()


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask questions about a folder of PDF documents")
    parser.add_argument("--pdf-folder", default=settings.pdf_folder, help="Folder scanned for *.pdf files")
    parser.add_argument("--collection", default=settings.chroma_collection, help="Chroma collection name")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (DEBUG, INFO, …)")
    parser.add_argument("--no-warmup", action="store_true", help="Skip the background model warm-up request")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130

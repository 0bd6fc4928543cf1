"""Word-count text chunking."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class PageChunk:
    """One chunk of page text, tagged with where it came from.

    Attributes
    ----------
    page:
        1-based page number of the source page.
    index:
        Ordinal position of the chunk within its page.
    text:
        Chunk text, tokens joined by single spaces.
    """

    page: int
    index: int
    text: str


def chunk_text(text: str, max_words: int = 800) -> list[str]:
    """Split *text* into chunks of at most *max_words* whitespace tokens.

    Parameters
    ----------
    text:
        Raw page text.
    max_words:
        Maximum number of tokens per chunk.  Every chunk except the last
        holds exactly this many.

    Returns
    -------
    list[str]
        Chunks in source order.  Empty or whitespace-only input yields ``[]``.
    """
    if max_words < 1:
        raise ValueError(f"max_words must be positive, got {max_words}")

    words = text.split()
    return [" ".join(words[i : i + max_words]) for i in range(0, len(words), max_words)]


def chunk_pages(pages: Iterable[tuple[int, str]], max_words: int = 800) -> list[PageChunk]:
    """Chunk every ``(page_number, text)`` pair, skipping blank pages."""
    chunks: list[PageChunk] = []
    for page, text in pages:
        if not text or not text.strip():
            continue
        for index, chunk in enumerate(chunk_text(text, max_words)):
            chunks.append(PageChunk(page=page, index=index, text=chunk))
    return chunks

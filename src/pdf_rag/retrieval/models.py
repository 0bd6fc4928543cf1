"""Domain models for stored records, search matches and filters."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class MetadataFilter(BaseModel):
    """Equality filter on one metadata key for vector-store queries.

    Attributes
    ----------
    field:
        The metadata key to filter on (e.g. ``"file_name"``).
    value:
        The value the key must equal.
    """

    field: str
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, value=value)


class Record(BaseModel):
    """The unit of storage in the vector index: one embedded page chunk.

    Records are immutable; a new ``key`` is generated for every instance.

    Attributes
    ----------
    key:
        Unique identifier (UUID4 string).
    title:
        Display title, ``"Page {n} - {file_name}"``.
    content:
        The chunk text.
    source:
        Human-readable provenance, ``"{file_name} (Page {n})"``.
    file_name:
        Base name of the source document; used for deduplication.
    embedding:
        Content embedding; its length is fixed per collection.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(default_factory=lambda: str(uuid4()))
    title: str = ""
    content: str = ""
    source: str = ""
    file_name: str = ""
    embedding: list[float] = Field(default_factory=list)

    @classmethod
    def from_page_chunk(cls, file_name: str, page: int, content: str, embedding: list[float]) -> Record:
        """Build a record for a chunk taken from *page* of *file_name*."""
        return cls(
            title=f"Page {page} - {file_name}",
            content=content,
            source=f"{file_name} (Page {page})",
            file_name=file_name,
            embedding=embedding,
        )

    def metadata(self) -> dict[str, str]:
        """Scalar attributes stored next to the vector."""
        return {"title": self.title, "source": self.source, "file_name": self.file_name}


class QueryMatch(BaseModel):
    """A record returned by a similarity search, with its score."""

    record: Record
    score: float

    def reference(self) -> str:
        """Return the ``[87.50%] file.pdf (Page 3)`` reference line."""
        return f"[{self.score * 100:.2f}%] {self.record.source}"

    def __str__(self) -> str:  # noqa: D105
        return f"{self.record.title} (score: {self.score:.4f})"

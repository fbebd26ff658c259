"""Core HitFinder data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Sequence


@dataclass(slots=True)
class DocumentMetadata:
    """Minimal metadata describing a document."""

    path: Path
    title: str
    sha256: str
    mtime: float
    size: int


@dataclass(slots=True)
class ChunkRecord:
    """Chunk of document text.

    ``chunk_id`` 0 holds the whole text of an unchunked document; chunked
    documents use ids starting at 1.
    """

    chunk_id: int
    text: str


@dataclass(slots=True, frozen=True)
class ContentHit:
    """A search hit, located by document and chunk."""

    document_id: int
    chunk_id: int


class QueryKind(str, Enum):
    LITERAL = "literal"
    PATTERN = "pattern"


class FilterType(str, Enum):
    FILE = "file"
    CHUNK = "chunk"


@dataclass(slots=True, frozen=True)
class KeywordFilter:
    filter_type: FilterType
    document_id: int


@dataclass(slots=True, frozen=True)
class QuerySpec:
    """The query a navigator highlights.

    When ``hits`` is given, chunk discovery reads chunk ids from it instead of
    searching the backend again.
    """

    text: str
    kind: QueryKind = QueryKind.LITERAL
    group: bool = True
    hits: Mapping[str, Sequence[ContentHit]] | None = None

    @property
    def is_pattern(self) -> bool:
        return self.kind is QueryKind.PATTERN

"""Document indexing pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from hitfinder.index.storage import SQLiteChunkStore
from hitfinder.models import ChunkRecord, DocumentMetadata
from hitfinder.utils.files import compute_sha256, iter_text_paths, read_text
from hitfinder.utils.text import chunk_text, normalize_newlines

LOGGER = logging.getLogger(__name__)


def find_text_files(paths: Sequence[Path]) -> list[Path]:
    """Find all indexable text files under the given paths."""
    return list(iter_text_paths(paths))


def build_chunks(text: str, *, max_chars: int, overlap: int) -> List[ChunkRecord]:
    """Split text into pages.

    Text that fits in a single page is kept whole under chunk id 0.
    """
    pieces = list(chunk_text(text, max_chars=max_chars, overlap=overlap))
    if len(pieces) <= 1:
        return [ChunkRecord(chunk_id=0, text=text)] if text else []
    return [ChunkRecord(chunk_id=index, text=piece) for index, piece in enumerate(pieces, start=1)]


@dataclass(slots=True)
class IndexStats:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    processed_files: list[Path] = field(default_factory=list)

    def increment(self, status: str, path: Path) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.processed_files.append(path)


class Indexer:
    """Coordinates text ingestion and persistence."""

    def __init__(
        self,
        store: SQLiteChunkStore,
        *,
        chunk_chars: int = 2000,
        overlap: int = 0,
    ) -> None:
        self.store = store
        self.chunk_chars = chunk_chars
        self.overlap = overlap

    def index(self, paths: Sequence[Path]) -> IndexStats:
        """Index all text files found under the given paths."""
        text_files = find_text_files(paths)
        if not text_files:
            LOGGER.warning("No text files found")
            return IndexStats()

        stats = IndexStats()
        for path in text_files:
            try:
                LOGGER.info("Processing: %s", path)
                status = self._index_single(path)
                stats.increment(status, path)
            except Exception as exc:
                LOGGER.error("Failed to process %s: %s", path, exc)
                stats.increment("failed", path)

        return stats

    def _index_single(self, path: Path) -> str:
        text = normalize_newlines(read_text(path))
        chunks = build_chunks(text, max_chars=self.chunk_chars, overlap=self.overlap)
        if not chunks:
            LOGGER.warning("No text extracted from %s", path)
            return "skipped"

        stat = path.stat()
        document = DocumentMetadata(
            path=path,
            title=path.stem,
            sha256=compute_sha256(path),
            mtime=stat.st_mtime,
            size=stat.st_size,
        )
        _, status = self.store.upsert_document(document, chunks)
        LOGGER.debug("%s: %s (%d chunks)", path, status, len(chunks))
        return status

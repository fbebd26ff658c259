"""Shared fixtures for HitFinder tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List

import pytest

from hitfinder.index.storage import SQLiteChunkStore
from hitfinder.models import ChunkRecord, DocumentMetadata


@pytest.fixture
def store(tmp_path: Path):
    """Create a temporary chunk store."""
    store = SQLiteChunkStore(tmp_path / "test.db")
    yield store
    store.close()


def _add_document(store: SQLiteChunkStore, name: str, pages: List[str]) -> int:
    if len(pages) == 1:
        chunks = [ChunkRecord(chunk_id=0, text=pages[0])]
    else:
        chunks = [ChunkRecord(chunk_id=i, text=text) for i, text in enumerate(pages, start=1)]
    document = DocumentMetadata(
        path=Path("/docs") / name,
        title=name,
        sha256=f"sha-{name}-{len(pages)}",
        mtime=0.0,
        size=sum(len(text) for text in pages),
    )
    doc_id, _ = store.upsert_document(document, chunks)
    return doc_id


@pytest.fixture
def add_document(store: SQLiteChunkStore) -> Callable[[str, List[str]], int]:
    """Store a document; a single page is stored unchunked."""

    def _add(name: str, pages: List[str]) -> int:
        return _add_document(store, name, pages)

    return _add


@pytest.fixture
def populated_db(tmp_path: Path) -> tuple[Path, dict[str, int]]:
    """A database file with one unchunked and one chunked document."""
    db_path = tmp_path / "populated.db"
    store = SQLiteChunkStore(db_path)
    try:
        ids = {
            "report": _add_document(store, "report.txt", ["Found malware twice: malware."]),
            "log": _add_document(
                store,
                "log.txt",
                ["nothing here", "malware one", "clean page", "malware and malware"],
            ),
        }
    finally:
        store.close()
    return db_path, ids

"""SQLite store for documents and their chunk texts."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Sequence

from hitfinder.models import ChunkRecord, DocumentMetadata


class SQLiteChunkStore:
    """Persistence layer for documents and the text of their pages."""

    def __init__(self, db_path: Path, *, check_same_thread: bool = True) -> None:
        self.db_path = Path(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=check_same_thread)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY,
                    path TEXT NOT NULL UNIQUE,
                    title TEXT,
                    sha256 TEXT NOT NULL,
                    mtime REAL NOT NULL,
                    size INTEGER NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TRIGGER IF NOT EXISTS documents_updated
                AFTER UPDATE ON documents
                BEGIN
                    UPDATE documents SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
                END;
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY,
                    document_id INTEGER NOT NULL,
                    chunk_id INTEGER NOT NULL,
                    text TEXT NOT NULL,
                    FOREIGN KEY(document_id) REFERENCES documents(id) ON DELETE CASCADE,
                    UNIQUE(document_id, chunk_id)
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_chunks_document_id
                    ON chunks(document_id)
                """
            )

    def init_document(self, document: DocumentMetadata) -> tuple[int, str]:
        """Initialize a document for insertion.

        Returns:
            (doc_id, status) where status is 'inserted', 'updated', or 'skipped'.
            If skipped, doc_id is the id of the unchanged stored document.
        """
        # Note: This should be called within a transaction
        conn = self._conn

        existing = conn.execute(
            "SELECT id, sha256 FROM documents WHERE path = ?",
            (str(document.path),),
        ).fetchone()

        if existing and existing["sha256"] == document.sha256:
            return existing["id"], "skipped"

        if existing:
            conn.execute("DELETE FROM chunks WHERE document_id = ?", (existing["id"],))
            conn.execute("DELETE FROM documents WHERE id = ?", (existing["id"],))

        doc_id = conn.execute(
            """
            INSERT INTO documents(path, title, sha256, mtime, size)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(document.path),
                document.title,
                document.sha256,
                document.mtime,
                document.size,
            ),
        ).lastrowid

        return doc_id, "updated" if existing else "inserted"

    def insert_chunks(self, doc_id: int, chunks: Sequence[ChunkRecord]) -> None:
        """Insert a batch of chunks for a document."""
        self._conn.executemany(
            "INSERT INTO chunks(document_id, chunk_id, text) VALUES (?, ?, ?)",
            [(doc_id, chunk.chunk_id, chunk.text) for chunk in chunks],
        )

    def upsert_document(
        self,
        document: DocumentMetadata,
        chunks: Sequence[ChunkRecord],
    ) -> tuple[int, str]:
        with self.transaction():
            doc_id, status = self.init_document(document)
            if status == "skipped":
                return doc_id, status

            self.insert_chunks(doc_id, chunks)
            return doc_id, status

    def count_chunks(self, doc_id: int) -> int:
        """Number of pages of a chunked document; 0 when stored unchunked."""
        row = self._conn.execute(
            "SELECT COUNT(*) FROM chunks WHERE document_id = ? AND chunk_id > 0",
            (doc_id,),
        ).fetchone()
        return int(row[0])

    def get_chunk_text(self, doc_id: int, chunk_id: int) -> str | None:
        row = self._conn.execute(
            "SELECT text FROM chunks WHERE document_id = ? AND chunk_id = ?",
            (doc_id, chunk_id),
        ).fetchone()
        return row["text"] if row else None

    def iter_chunks(self, doc_id: int) -> Iterator[ChunkRecord]:
        """Yield the chunks of a document in chunk id order."""
        rows = self._conn.execute(
            "SELECT chunk_id, text FROM chunks WHERE document_id = ? ORDER BY chunk_id",
            (doc_id,),
        ).fetchall()
        for row in rows:
            yield ChunkRecord(chunk_id=row["chunk_id"], text=row["text"])

    def list_documents(self) -> List[dict]:
        rows = self._conn.execute(
            """
            SELECT
                d.id AS id,
                d.path AS path,
                d.title AS title,
                d.size AS size,
                d.updated_at AS updated_at,
                SUM(CASE WHEN c.chunk_id > 0 THEN 1 ELSE 0 END) AS chunk_count
            FROM documents d
            LEFT JOIN chunks c ON c.document_id = d.id
            GROUP BY d.id
            ORDER BY d.id
            """
        ).fetchall()
        return [
            {
                "id": row["id"],
                "path": row["path"],
                "title": row["title"],
                "size": row["size"],
                "updated_at": row["updated_at"],
                "chunk_count": int(row["chunk_count"] or 0),
            }
            for row in rows
        ]

    def get_stats(self) -> dict:
        documents = self._conn.execute(
            "SELECT COUNT(*), COALESCE(SUM(size), 0) FROM documents"
        ).fetchone()
        chunks = self._conn.execute("SELECT COUNT(*) FROM chunks").fetchone()
        return {
            "document_count": int(documents[0]),
            "chunk_count": int(chunks[0]),
            "total_size_bytes": int(documents[1]),
        }

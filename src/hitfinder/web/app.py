"""FastAPI application exposing hit navigation sessions."""

from __future__ import annotations

import asyncio
import logging
import os
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from hitfinder.config import AppConfig
from hitfinder.errors import NoSuchTransition
from hitfinder.index.backend import SQLiteSearchBackend
from hitfinder.index.indexer import Indexer
from hitfinder.index.storage import SQLiteChunkStore
from hitfinder.models import QueryKind
from hitfinder.navigation import HitNavigator, create_navigator

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="HitFinder Web", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.db_path = None


class SessionPayload(BaseModel):
    document_id: int
    query: str
    kind: QueryKind = QueryKind.LITERAL
    group: bool = True
    db: Path | None = None


class IndexPayload(BaseModel):
    paths: List[str]
    db: str | None = None
    chunk_chars: int | None = None
    overlap: int | None = None


class Direction(str, Enum):
    NEXT = "next"
    PREVIOUS = "previous"


@dataclass(slots=True)
class Session:
    navigator: HitNavigator
    store: SQLiteChunkStore


# One navigator per open view, least recently used first; all access happens
# on the event loop.
SESSIONS: OrderedDict[str, Session] = OrderedDict()
MAX_SESSIONS = 64


def _resolve_db_path(db: Path | None) -> Path:
    if db is None:
        db = app.state.db_path
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    return config.resolve_db_path(Path.cwd())


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _get_session(session_id: str) -> Session:
    session = SESSIONS.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    SESSIONS.move_to_end(session_id)
    return session


def _store_session(session_id: str, session: Session) -> None:
    SESSIONS[session_id] = session
    while len(SESSIONS) > MAX_SESSIONS:
        evicted_id, evicted = SESSIONS.popitem(last=False)
        evicted.store.close()
        LOGGER.info("Closed idle session %s", evicted_id)


def _page_snapshot(session_id: str, navigator: HitNavigator) -> dict[str, Any]:
    markup = navigator.render()
    return {
        "session_id": session_id,
        "document_id": navigator.document_id,
        "number_pages": navigator.get_number_pages(),
        "current_page": navigator.get_current_page(),
        "hits_pages": {str(page): hits for page, hits in navigator.get_hits_pages().items()},
        "number_hits": navigator.get_number_hits(),
        "current_item": navigator.current_item(),
        "has_next_page": navigator.has_next_page(),
        "has_previous_page": navigator.has_previous_page(),
        "has_next_item": navigator.has_next_item(),
        "has_previous_item": navigator.has_previous_item(),
        "anchor_prefix": navigator.get_anchor_prefix(),
        "markup": markup,
    }


def _item_snapshot(navigator: HitNavigator) -> dict[str, Any]:
    item = navigator.current_item()
    return {
        "current_page": navigator.get_current_page(),
        "current_item": item,
        "number_hits": navigator.get_number_hits(),
        "anchor": f"{navigator.get_anchor_prefix()}{item}",
        "has_next_item": navigator.has_next_item(),
        "has_previous_item": navigator.has_previous_item(),
    }


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    for session in SESSIONS.values():
        session.store.close()
    SESSIONS.clear()


@app.post("/sessions")
async def open_session(payload: SessionPayload) -> dict[str, Any]:
    if not payload.query.strip():
        raise HTTPException(status_code=400, detail="Empty query")

    resolved_db = _resolve_db_path(payload.db)
    if not resolved_db.exists():
        raise HTTPException(
            status_code=404,
            detail=f"Database not found at {resolved_db}. Index some documents first.",
        )

    store = SQLiteChunkStore(resolved_db, check_same_thread=False)
    navigator = create_navigator(
        SQLiteSearchBackend(store),
        payload.document_id,
        payload.query,
        kind=payload.kind,
        group=payload.group,
    )
    session_id = uuid4().hex
    _store_session(session_id, Session(navigator=navigator, store=store))
    LOGGER.info("Opened session %s for document %s", session_id, payload.document_id)
    return _page_snapshot(session_id, navigator)


@app.get("/sessions/{session_id}")
async def get_session(session_id: str) -> dict[str, Any]:
    session = _get_session(session_id)
    return _page_snapshot(session_id, session.navigator)


@app.post("/sessions/{session_id}/pages/{direction}")
async def move_page(session_id: str, direction: Direction) -> dict[str, Any]:
    navigator = _get_session(session_id).navigator
    try:
        if direction is Direction.NEXT:
            navigator.next_page()
        else:
            navigator.previous_page()
    except NoSuchTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _page_snapshot(session_id, navigator)


@app.post("/sessions/{session_id}/items/{direction}")
async def move_item(session_id: str, direction: Direction) -> dict[str, Any]:
    navigator = _get_session(session_id).navigator
    try:
        if direction is Direction.NEXT:
            navigator.next_item()
        else:
            navigator.previous_item()
    except NoSuchTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _item_snapshot(navigator)


@app.delete("/sessions/{session_id}")
async def close_session(session_id: str) -> dict[str, str]:
    session = _get_session(session_id)
    session.store.close()
    del SESSIONS[session_id]
    return {"status": "ok"}


@app.get("/documents")
async def list_documents(db: Path | None = None) -> dict[str, Any]:
    """List all indexed documents in the database."""
    resolved_db = _resolve_db_path(db)
    if not resolved_db.exists():
        return {"documents": [], "stats": {"document_count": 0, "chunk_count": 0, "total_size_bytes": 0}}

    store = SQLiteChunkStore(resolved_db)
    try:
        documents = store.list_documents()
        stats = store.get_stats()
    finally:
        store.close()

    return {"documents": documents, "stats": stats}


def _run_index_job(paths: List[Path], config: AppConfig, resolved_db: Path) -> dict[str, Any]:
    store = SQLiteChunkStore(resolved_db)
    indexer = Indexer(store, chunk_chars=config.chunk_chars, overlap=config.overlap)
    try:
        stats = indexer.index(paths)
    finally:
        store.close()

    return {
        "inserted": stats.inserted,
        "updated": stats.updated,
        "skipped": stats.skipped,
        "failed": stats.failed,
        "processed_files": [str(path) for path in stats.processed_files],
    }


def _validate_index_path(raw: str, safe_base_dir: Path) -> Path | None:
    clean_path = raw.strip().replace("\r", "").replace("\n", "")
    if not clean_path:
        return None
    if "\0" in clean_path:
        raise HTTPException(status_code=400, detail="Invalid path: contains null byte")

    try:
        real_path = os.path.realpath(os.path.expanduser(clean_path))
    except (ValueError, OSError) as exc:
        LOGGER.error("Invalid path '%s': %s", clean_path, exc)
        raise HTTPException(status_code=400, detail="Invalid path: %s" % clean_path) from exc

    # Separator suffix keeps /home/user from matching /home/user2.
    if not (real_path + os.sep).startswith(str(safe_base_dir) + os.sep):
        raise HTTPException(status_code=403, detail="Access denied: path is outside allowed directory")

    validated_path = Path(real_path)
    if not validated_path.exists():
        raise HTTPException(status_code=404, detail="Path not found: %s" % clean_path)
    if not validated_path.is_dir():
        raise HTTPException(status_code=400, detail="Path must be a directory: %s" % clean_path)
    return validated_path


@app.post("/index")
async def index_documents(payload: IndexPayload) -> dict[str, Any]:
    if not payload.paths:
        raise HTTPException(status_code=400, detail="No path provided")

    config_defaults = AppConfig()
    config = AppConfig(
        db_path=Path(payload.db) if payload.db is not None else app.state.db_path or config_defaults.db_path,
        chunk_chars=payload.chunk_chars or config_defaults.chunk_chars,
        overlap=payload.overlap if payload.overlap is not None else config_defaults.overlap,
    )

    safe_base_dir = Path(os.path.realpath(str(Path.home())))
    resolved_paths = [
        path
        for path in (_validate_index_path(raw, safe_base_dir) for raw in payload.paths)
        if path is not None
    ]

    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    try:
        stats = await asyncio.to_thread(_run_index_job, resolved_paths, config, resolved_db)
    except Exception as exc:  # pragma: no cover - defensive
        LOGGER.exception("Indexing failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {"status": "ok", "db": str(resolved_db), "stats": stats}

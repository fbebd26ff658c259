"""Tests for the FastAPI web application."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import hitfinder.web.app as web_app
from hitfinder.web.app import SESSIONS, _ensure_db_parent, _resolve_db_path, app


client = TestClient(app)


@pytest.fixture(autouse=True)
def close_sessions():
    yield
    for session in SESSIONS.values():
        session.store.close()
    SESSIONS.clear()
    app.state.db_path = None


def _open(db_path: Path, document_id: int, query: str = "malware", **extra) -> dict:
    response = client.post(
        "/sessions",
        json={"document_id": document_id, "query": query, "db": str(db_path), **extra},
    )
    assert response.status_code == 200
    return response.json()


class TestHelperFunctions:
    def test_resolve_db_path_with_path(self, tmp_path: Path) -> None:
        db_path = tmp_path / "custom.db"
        assert _resolve_db_path(db_path) == db_path

    def test_resolve_db_path_uses_app_default(self, tmp_path: Path) -> None:
        app.state.db_path = tmp_path / "served.db"
        assert _resolve_db_path(None) == tmp_path / "served.db"

    def test_ensure_db_parent_creates_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "subdir" / "test.db"
        _ensure_db_parent(db_path)
        assert db_path.parent.exists()


class TestOpenSession:
    def test_empty_query(self, populated_db) -> None:
        db_path, ids = populated_db
        response = client.post(
            "/sessions", json={"document_id": ids["report"], "query": "  ", "db": str(db_path)}
        )
        assert response.status_code == 400
        assert "Empty query" in response.json()["detail"]

    def test_database_not_found(self, tmp_path: Path) -> None:
        response = client.post(
            "/sessions",
            json={"document_id": 1, "query": "x", "db": str(tmp_path / "missing.db")},
        )
        assert response.status_code == 404
        assert "Database not found" in response.json()["detail"]

    def test_unchunked_document(self, populated_db) -> None:
        db_path, ids = populated_db

        data = _open(db_path, ids["report"])

        assert data["number_pages"] == 1
        assert data["current_page"] == 1
        assert data["number_hits"] == 2
        assert data["current_item"] == 1
        assert data["hits_pages"] == {"1": 2}
        assert data["has_next_item"] is True
        assert "HitNavigator_2" in data["markup"]
        assert data["session_id"] in SESSIONS

    def test_pattern_session(self, populated_db) -> None:
        db_path, ids = populated_db

        data = _open(db_path, ids["report"], query="mal.are", kind="pattern")

        assert data["number_hits"] == 2

    def test_invalid_kind(self, populated_db) -> None:
        db_path, ids = populated_db
        response = client.post(
            "/sessions",
            json={"document_id": ids["report"], "query": "x", "kind": "fuzzy", "db": str(db_path)},
        )
        assert response.status_code == 422


class TestNavigateSession:
    def test_page_walk(self, populated_db) -> None:
        db_path, ids = populated_db
        data = _open(db_path, ids["log"])
        session_id = data["session_id"]

        assert data["current_page"] == 2
        assert data["has_previous_page"] is False

        response = client.post(f"/sessions/{session_id}/pages/next")
        assert response.status_code == 200
        data = response.json()
        assert data["current_page"] == 4
        assert data["hits_pages"] == {"2": 1, "4": 2}

        response = client.post(f"/sessions/{session_id}/pages/next")
        assert response.status_code == 409

        response = client.post(f"/sessions/{session_id}/pages/previous")
        assert response.json()["current_page"] == 2

    def test_item_walk(self, populated_db) -> None:
        db_path, ids = populated_db
        session_id = _open(db_path, ids["report"])["session_id"]

        response = client.post(f"/sessions/{session_id}/items/next")
        assert response.status_code == 200
        assert response.json()["current_item"] == 2
        assert response.json()["anchor"] == "HitNavigator_2"

        assert client.post(f"/sessions/{session_id}/items/next").status_code == 409

        response = client.post(f"/sessions/{session_id}/items/previous")
        assert response.json()["current_item"] == 1

    def test_get_session_keeps_cursor(self, populated_db) -> None:
        db_path, ids = populated_db
        session_id = _open(db_path, ids["report"])["session_id"]
        client.post(f"/sessions/{session_id}/items/next")

        data = client.get(f"/sessions/{session_id}").json()

        assert data["current_item"] == 2

    def test_unknown_direction(self, populated_db) -> None:
        db_path, ids = populated_db
        session_id = _open(db_path, ids["report"])["session_id"]
        assert client.post(f"/sessions/{session_id}/pages/sideways").status_code == 422

    def test_unknown_session(self) -> None:
        assert client.get("/sessions/nope").status_code == 404
        assert client.post("/sessions/nope/items/next").status_code == 404

    def test_close_session(self, populated_db) -> None:
        db_path, ids = populated_db
        session_id = _open(db_path, ids["report"])["session_id"]

        response = client.delete(f"/sessions/{session_id}")

        assert response.status_code == 200
        assert session_id not in SESSIONS
        assert client.get(f"/sessions/{session_id}").status_code == 404


class TestListDocuments:
    def test_database_not_found(self, tmp_path: Path) -> None:
        response = client.get("/documents", params={"db": str(tmp_path / "missing.db")})
        assert response.status_code == 200
        assert response.json()["documents"] == []

    def test_lists_documents(self, populated_db) -> None:
        db_path, _ = populated_db

        data = client.get("/documents", params={"db": str(db_path)}).json()

        assert [Path(doc["path"]).name for doc in data["documents"]] == ["report.txt", "log.txt"]
        assert data["stats"]["document_count"] == 2


class TestIndexEndpoint:
    def test_no_paths(self) -> None:
        response = client.post("/index", json={"paths": []})
        assert response.status_code == 400

    def test_null_byte(self) -> None:
        response = client.post("/index", json={"paths": ["/tmp/a\0b"]})
        assert response.status_code == 400

    def test_outside_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path / "home"))
        (tmp_path / "home").mkdir()
        (tmp_path / "elsewhere").mkdir()

        response = client.post(
            "/index", json={"paths": [str(tmp_path / "elsewhere")], "db": str(tmp_path / "i.db")}
        )

        assert response.status_code == 403

    def test_index_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        home = tmp_path / "home"
        docs = home / "docs"
        docs.mkdir(parents=True)
        (docs / "a.txt").write_text("malware", encoding="utf-8")
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
        db_path = tmp_path / "i.db"

        response = client.post("/index", json={"paths": [str(docs)], "db": str(db_path)})

        assert response.status_code == 200
        assert response.json()["stats"]["inserted"] == 1
        assert db_path.exists()


class TestSessionLimit:
    def test_oldest_session_evicted(self, populated_db, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should close the least recently used session beyond the limit."""
        monkeypatch.setattr(web_app, "MAX_SESSIONS", 2)
        db_path, ids = populated_db

        first = _open(db_path, ids["report"])["session_id"]
        first_store = SESSIONS[first].store
        second = _open(db_path, ids["report"])["session_id"]
        third = _open(db_path, ids["report"])["session_id"]

        assert list(SESSIONS) == [second, third]
        assert client.get(f"/sessions/{first}").status_code == 404
        with pytest.raises(sqlite3.ProgrammingError):
            first_store.connection.execute("SELECT 1")

    def test_recent_use_keeps_session(self, populated_db, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(web_app, "MAX_SESSIONS", 2)
        db_path, ids = populated_db

        first = _open(db_path, ids["report"])["session_id"]
        second = _open(db_path, ids["report"])["session_id"]
        client.post(f"/sessions/{first}/items/next")
        third = _open(db_path, ids["report"])["session_id"]

        assert list(SESSIONS) == [first, third]
        assert second not in SESSIONS

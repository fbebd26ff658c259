"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from hitfinder.config import AppConfig


class TestAppConfig:
    """Test AppConfig dataclass."""

    def test_default_sizes(self) -> None:
        config = AppConfig()
        assert config.chunk_chars == 2000
        assert config.overlap == 0

    def test_default_db_in_documents(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should fall back to the Documents folder without a local data/ db."""
        monkeypatch.chdir(tmp_path)
        config = AppConfig()
        assert config.db_path == Path.home() / "Documents" / "HitFinder" / "hitfinder.db"

    def test_default_db_prefers_local(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "data").mkdir()
        (tmp_path / "data" / "hitfinder.db").touch()
        assert AppConfig().db_path == Path("data/hitfinder.db")

    def test_custom_config(self) -> None:
        config = AppConfig(db_path=Path("/custom/path.db"), chunk_chars=800, overlap=100)
        assert config.db_path == Path("/custom/path.db")
        assert config.chunk_chars == 800
        assert config.overlap == 100

    def test_resolve_db_path_absolute(self) -> None:
        config = AppConfig(db_path=Path("/absolute/path/db.db"))
        assert config.resolve_db_path(Path("/base")) == Path("/absolute/path/db.db")

    def test_resolve_db_path_relative_no_base(self) -> None:
        config = AppConfig(db_path=Path("relative/db.db"))
        assert config.resolve_db_path(base_dir=None) == Path("relative/db.db")

    def test_resolve_db_path_relative_with_base(self) -> None:
        config = AppConfig(db_path=Path("relative/db.db"))
        assert config.resolve_db_path(base_dir=Path("/base")) == Path("/base/relative/db.db")

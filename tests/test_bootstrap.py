"""Tests for the state directory bootstrap."""

from __future__ import annotations

from pathlib import Path

import pytest

from taskboard.container import TaskboardContainer
from taskboard.errors import InternalError
from taskboard.storage.bootstrap import ensure_state_root


def _legacy_dirs(data_dir: Path) -> list[Path]:
    return [p for p in data_dir.iterdir() if p.name.startswith(".taskboard_legacy_")]


def _write_documents(data_dir: Path, text: str) -> Path:
    state = data_dir / ".taskboard"
    state.mkdir()
    documents = state / "documents.yaml"
    documents.write_text(text, encoding="utf-8")
    return documents


class TestEnsureStateRoot:
    """Test ensure_state_root function."""

    def test_fresh_directory(self, tmp_path: Path) -> None:
        base = ensure_state_root(tmp_path)
        assert base == tmp_path / ".taskboard"
        assert (base / "events.jsonl").exists()
        assert (base / "config.yaml").exists()
        assert _legacy_dirs(tmp_path) == []

    def test_current_schema_is_kept(self, tmp_path: Path) -> None:
        documents = _write_documents(tmp_path, "schema_version: 1\ncollections: {}\n")
        ensure_state_root(tmp_path)
        assert documents.exists()
        assert _legacy_dirs(tmp_path) == []

    def test_missing_schema_version_is_archived(self, tmp_path: Path) -> None:
        _write_documents(tmp_path, "collections: {}\n")
        ensure_state_root(tmp_path)
        legacy = _legacy_dirs(tmp_path)
        assert len(legacy) == 1
        assert (legacy[0] / "documents.yaml").exists()
        assert not (tmp_path / ".taskboard" / "documents.yaml").exists()

    def test_unreadable_store_is_reported_not_archived(self, tmp_path: Path) -> None:
        """A document store that fails to parse stays in place untouched."""
        text = "schema_version: 1\ncollections: [unclosed\n"
        documents = _write_documents(tmp_path, text)

        with pytest.raises(InternalError, match="Cannot read document store"):
            ensure_state_root(tmp_path)

        assert documents.read_text(encoding="utf-8") == text
        assert _legacy_dirs(tmp_path) == []


def test_container_refuses_corrupt_store(tmp_path: Path) -> None:
    """Opening a container over a damaged store fails instead of starting empty."""
    container = TaskboardContainer(tmp_path)
    assert container.users.register_user("acme", {"id": "u-lead", "username": "lead"}).ok
    documents = tmp_path / ".taskboard" / "documents.yaml"
    with documents.open("a", encoding="utf-8") as handle:
        handle.write("collections: [unclosed\n")
    damaged = documents.read_text(encoding="utf-8")

    with pytest.raises(InternalError):
        TaskboardContainer(tmp_path)

    assert documents.read_text(encoding="utf-8") == damaged
    assert _legacy_dirs(tmp_path) == []

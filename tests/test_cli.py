from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest
import yaml
from loguru import logger

from taskboard.cli import main
from taskboard.container import TaskboardContainer
from taskboard.domain.models import Actor


@pytest.fixture(autouse=True)
def _restore_logging() -> Any:
    yield
    logger.remove()
    logger.add(sys.__stderr__)


def _run(capsys: pytest.CaptureFixture[str], data_dir: Path, *argv: str) -> tuple[int, Any]:
    code = main(["--data-dir", str(data_dir), "--user", "u-lead", "--org", "acme", "--log-level", "error", *argv])
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip().startswith("{") else out


@pytest.fixture
def seeded(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> Path:
    assert _run(capsys, tmp_path, "user", "add", "lead", "--id", "u-lead")[0] == 0
    code, payload = _run(capsys, tmp_path, "project", "create", "Website", "web")
    assert code == 0
    assert payload["data"]["project"]["key"] == "WEB"
    return tmp_path


class TestStateRoot:
    def test_first_run_creates_state_directory(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, payload = _run(capsys, tmp_path, "project", "list")
        assert code == 0
        assert payload == {"ok": True, "data": {"projects": []}}
        state = tmp_path / ".taskboard"
        assert (state / "events.jsonl").exists()
        config = yaml.safe_load((state / "config.yaml").read_text(encoding="utf-8"))
        assert config["limits"]["max_task_attachments"] == 20

    def test_incompatible_schema_is_archived(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        state = tmp_path / ".taskboard"
        state.mkdir()
        (state / "documents.yaml").write_text("schema_version: 0\ncollections: {}\n", encoding="utf-8")
        assert _run(capsys, tmp_path, "project", "list")[0] == 0
        legacy = [p for p in tmp_path.iterdir() if p.name.startswith(".taskboard_legacy_")]
        assert len(legacy) == 1
        assert (legacy[0] / "documents.yaml").exists()


class TestCommands:
    def test_task_flow(self, seeded: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, created = _run(capsys, seeded, "task", "create", "WEB", "Ship landing page", "--priority", "high")
        assert code == 0
        task = created["data"]
        assert task["issue_key"] == "WEB-1"

        code, moved = _run(capsys, seeded, "task", "move", task["id"], "done")
        assert code == 0
        assert moved["data"]["status"] == "done"

        code, listed = _run(capsys, seeded, "task", "list", "web", "--status", "done")
        assert [t["issue_key"] for t in listed["data"]["tasks"]] == ["WEB-1"]

        code, board = _run(capsys, seeded, "board", "show", "WEB", "--json")
        done = [c for c in board["data"]["columns"] if c["key"] == "done"][0]
        assert [t["id"] for t in done["tasks"]] == [task["id"]]

    def test_failures_exit_non_zero_with_error_on_stderr(self, seeded: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["--data-dir", str(seeded), "--user", "u-lead", "--org", "acme", "--log-level", "error",
                     "task", "create", "WEB", "Valid title", "--status", "review"])
        captured = capsys.readouterr()
        assert code == 1
        assert captured.out == ""
        assert json.loads(captured.err[captured.err.index("{"):])["error_code"] == "VALIDATION_ERROR"

    def test_unknown_project(self, seeded: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["--data-dir", str(seeded), "--org", "acme", "board", "show", "NOPE"])
        assert code == 1
        assert "Unknown project: NOPE" in capsys.readouterr().err

    def test_column_commands_and_rebalance(self, seeded: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(capsys, seeded, "column", "add", "WEB", "review", "--label", "Review")[0] == 0
        _run(capsys, seeded, "task", "create", "WEB", "Needs review", "--status", "review")

        code, _ = _run(capsys, seeded, "column", "delete", "WEB", "review")
        assert code == 1
        code, removed = _run(capsys, seeded, "column", "delete", "WEB", "review", "--target", "done")
        assert code == 0
        assert len(removed["data"]["migrated"]) == 1

        code, rebalanced = _run(capsys, seeded, "ranks", "rebalance", "WEB", "--status", "done")
        assert code == 0
        assert rebalanced["data"]["status"] == "done"

    def test_board_table_output(self, seeded: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _run(capsys, seeded, "task", "create", "WEB", "Table row")
        code, out = _run(capsys, seeded, "board", "show", "WEB")
        assert code == 0
        assert "WEB-1" in out
        assert "To Do (1)" in out


def test_events_are_appended_for_other_members(tmp_path: Path) -> None:
    container = TaskboardContainer(tmp_path)
    lead = Actor(id="u-lead", organization_id="acme")
    for user_id in ("u-lead", "u-dev"):
        assert container.users.register_user("acme", {"id": user_id, "username": user_id}).ok
    created = container.projects.create_project(lead, {"name": "Website", "key": "WEB", "members": ["u-dev"]})
    project_id = created.data["project"]["id"]
    assert container.tasks.create_task(lead, project_id, {"title": "Notify the dev"}).ok

    events = container.notifier.list_recent(10)
    assert [e["type"] for e in events] == ["project.member_added", "task.created"]
    assert events[-1]["recipients"] == ["u-dev"]
    assert container.notifier.list_recent(1)[0]["type"] == "task.created"

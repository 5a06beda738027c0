"""Board administration and the grouped board view.

Column lists are always replaced as a whole: every mutation reads the
current board inside its transaction, derives a new validated list through
:class:`ColumnRegistry`, and saves it.  Removing a column that still holds
tasks requires a migration target or explicit confirmation.
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from ..domain.access import AccessGuard
from ..domain.activity import ACTION_STATUS_CHANGED, ActivityEntry
from ..domain.columns import ColumnRegistry, default_columns
from ..domain.models import Actor, Board, Task, now_iso
from ..domain.rank import RankKey
from ..errors import ConflictError
from ..results import operation
from ..schemas import (
    AddColumnRequest,
    CreateBoardRequest,
    DeleteColumnRequest,
    RenameColumnRequest,
    ReorderColumnsRequest,
    UpdateBoardRequest,
    validate_payload,
)
from ..storage.interfaces import DocumentTransaction
from .base import ServiceBase, audience, event

_SUMMARY_FIELDS = ("id", "issue_key", "title", "type", "priority", "assignee", "status", "rank", "due_date")


def _summary(doc: dict[str, Any]) -> dict[str, Any]:
    return {name: doc.get(name) for name in _SUMMARY_FIELDS}


class BoardService(ServiceBase):
    def _save_board(self, tx: DocumentTransaction, board: Board) -> None:
        board.updated_at = now_iso()
        tx.save("boards", board.to_dict())

    @operation("create_board")
    def create_board(self, actor: Actor, project_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(CreateBoardRequest, payload)
        if request.columns is None:
            columns = default_columns()
        else:
            columns = ColumnRegistry.validate([column.model_dump() for column in request.columns])
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            AccessGuard.require_manager(project, actor.id, "create boards")
            if tx.find_one("boards", {"project_id": project.id, "is_active": True}) is not None:
                raise ConflictError(f"Project {project.key} already has an active board")
            board = Board(
                organization_id=project.organization_id,
                project_id=project.id,
                name=request.name,
                columns=columns,
                created_by=actor.id,
            )
            tx.save("boards", board.to_dict())
        logger.info("Created board {} for {}", board.id, project.key)
        return board.to_dict()

    @operation("get_board")
    def get_board(self, actor: Actor, project_id: str) -> dict[str, Any]:
        """Active board with each column's tasks in rank order."""
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            board = self._load_active_board(tx, project)
            docs = tx.find("tasks", {"project_id": project.id}, sort=[("rank", 1)])
        grouped: dict[str, list[dict[str, Any]]] = {key: [] for key in board.column_keys()}
        for doc in docs:
            bucket = grouped.get(doc.get("status"))
            if bucket is not None:
                bucket.append(_summary(doc))
        return {
            "board": board.to_dict(),
            "columns": [
                {**column.to_dict(), "tasks": grouped[column.key]}
                for column in sorted(board.columns, key=lambda c: c.order)
            ],
        }

    @operation("update_board")
    def update_board(self, actor: Actor, board_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(UpdateBoardRequest, payload)
        columns = None
        if request.columns is not None:
            columns = ColumnRegistry.validate([column.model_dump() for column in request.columns])
        with self._store.transaction() as tx:
            board, project = self._load_board(tx, actor, board_id)
            AccessGuard.require_manager(project, actor.id, "update boards")
            if columns is not None:
                occupied = [
                    key
                    for key in ColumnRegistry.removed_keys(board.columns, columns)
                    if tx.count("tasks", {"project_id": project.id, "status": key})
                ]
                if occupied:
                    raise ConflictError(
                        f"Column(s) {', '.join(occupied)} still hold tasks; move them or delete the column with a target",
                        errors=[{"field": "columns", "message": f"column '{key}' is not empty"} for key in occupied],
                    )
                board.columns = columns
            if request.name is not None:
                board.name = request.name
            self._save_board(tx, board)
        logger.info("Updated board {} columns={}", board.id, board.column_keys())
        self._dispatch([(audience(project, exclude=actor.id), event("board.updated", actor, project, board_id=board.id))])
        return board.to_dict()

    @operation("add_column")
    def add_column(self, actor: Actor, board_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(AddColumnRequest, payload)
        with self._store.transaction() as tx:
            board, project = self._load_board(tx, actor, board_id)
            AccessGuard.require_manager(project, actor.id, "add columns")
            board.columns = ColumnRegistry.add(board.columns, request.key, request.label, request.order)
            self._save_board(tx, board)
        logger.info("Added column {} to board {}", request.key, board.id)
        return board.to_dict()

    @operation("rename_column")
    def rename_column(self, actor: Actor, board_id: str, key: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(RenameColumnRequest, payload)
        with self._store.transaction() as tx:
            board, project = self._load_board(tx, actor, board_id)
            AccessGuard.require_manager(project, actor.id, "rename columns")
            board.columns = ColumnRegistry.rename(board.columns, key, request.label)
            self._save_board(tx, board)
        return board.to_dict()

    @operation("reorder_columns")
    def reorder_columns(self, actor: Actor, board_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(ReorderColumnsRequest, payload)
        with self._store.transaction() as tx:
            board, project = self._load_board(tx, actor, board_id)
            AccessGuard.require_manager(project, actor.id, "reorder columns")
            board.columns = ColumnRegistry.reorder(board.columns, request.keys)
            self._save_board(tx, board)
        return board.to_dict()

    @operation("delete_column")
    def delete_column(self, actor: Actor, board_id: str, key: str, payload: Optional[Any] = None) -> dict[str, Any]:
        """Remove column *key*.

        With ``target_key`` every task in the column is moved to the end of the
        target column, keeping its relative order.  Without a target the
        removal is refused while tasks remain, unless ``confirm_destructive``
        is set, in which case those tasks are deleted.
        """
        request = validate_payload(DeleteColumnRequest, payload)
        migrated: list[str] = []
        deleted: list[str] = []
        with self._store.transaction() as tx:
            board, project = self._load_board(tx, actor, board_id)
            AccessGuard.require_manager(project, actor.id, "delete columns")
            plan = ColumnRegistry.remove_with_migration(board.columns, key, request.target_key)
            docs = tx.find("tasks", {"project_id": project.id, "status": key}, sort=[("rank", 1)])

            if docs and plan.migrates:
                rank = self._column_end_rank(tx, project.id, plan.target_key)
                for doc in docs:
                    task = Task.from_dict(doc)
                    task.activity.append(
                        ActivityEntry(
                            action=ACTION_STATUS_CHANGED,
                            performed_by=actor.id,
                            field="status",
                            from_value=key,
                            to_value=plan.target_key,
                        )
                    )
                    task.status = plan.target_key
                    task.rank = rank
                    rank = RankKey.next(rank)
                    self._save_task(tx, task)
                    migrated.append(task.id)
            elif docs and request.confirm_destructive:
                for doc in docs:
                    task = Task.from_dict(doc)
                    refs = list(task.attachments) + [ref for c in task.comments for ref in c.attachments]
                    self._attachments.delete_attachments(tx, refs)
                    tx.delete_one("tasks", {"id": task.id})
                    deleted.append(task.id)
            elif docs:
                raise ConflictError(
                    f"Column '{key}' still holds {len(docs)} task(s); "
                    "provide a target column or confirm deleting them",
                    errors=[{"field": "target_key", "message": "required while the column holds tasks"}],
                )

            board.columns = plan.columns
            self._save_board(tx, board)

        logger.info(
            "Removed column {} from board {} (migrated={}, deleted={})",
            key, board.id, len(migrated), len(deleted),
        )
        self._dispatch([(audience(project, exclude=actor.id),
                         event("board.column_removed", actor, project, board_id=board.id, column=key,
                               target=plan.target_key, migrated=migrated, deleted=deleted))])
        return {"board": board.to_dict(), "migrated": migrated, "deleted": deleted}

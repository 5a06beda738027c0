"""Shared plumbing for the service classes: loaders, rank lookup, fan-out."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from loguru import logger

from ..domain.models import Actor, Board, Project, Task, now_iso
from ..domain.rank import RankKey
from ..errors import NotFoundError
from ..services.attachments import DocumentAttachmentStore
from ..services.notifications import NullNotifier
from ..storage.interfaces import AttachmentStore, DocumentGateway, DocumentTransaction, NotificationSink

Outbox = list[tuple[list[str], dict[str, Any]]]


def audience(project: Project, *extra: Optional[str], exclude: Optional[str] = None) -> list[str]:
    """Project members, managers and *extra* users, minus *exclude*, in first-seen order."""
    out: list[str] = []
    for user_id in [*project.manager, *project.members, *extra]:
        if user_id and user_id != exclude and user_id not in out:
            out.append(user_id)
    return out


def event(event_type: str, actor: Actor, project: Project, **data: Any) -> dict[str, Any]:
    return {
        "type": event_type,
        "organization_id": project.organization_id,
        "project_id": project.id,
        "actor_id": actor.id,
        "data": data,
    }


class ServiceBase:
    def __init__(
        self,
        store: DocumentGateway,
        *,
        attachments: Optional[AttachmentStore] = None,
        notifier: Optional[NotificationSink] = None,
        config: Optional[dict[str, Any]] = None,
    ) -> None:
        self._store = store
        self._attachments = attachments or DocumentAttachmentStore()
        self._notifier = notifier or NullNotifier()
        self._config = config or {}

    # -- loaders -------------------------------------------------------------

    def _load_project(self, tx: DocumentTransaction, actor: Actor, project_id: str) -> Project:
        doc = tx.find_one(
            "projects",
            {"id": project_id, "organization_id": actor.organization_id, "deleted_at": None},
        )
        if doc is None:
            raise NotFoundError(f"Project {project_id} not found")
        return Project.from_dict(doc)

    def _load_active_board(self, tx: DocumentTransaction, project: Project) -> Board:
        doc = tx.find_one("boards", {"project_id": project.id, "is_active": True})
        if doc is None:
            raise NotFoundError(f"Project {project.key} has no active board")
        return Board.from_dict(doc)

    def _load_board(self, tx: DocumentTransaction, actor: Actor, board_id: str) -> tuple[Board, Project]:
        doc = tx.find_one("boards", {"id": board_id, "organization_id": actor.organization_id})
        if doc is None:
            raise NotFoundError(f"Board {board_id} not found")
        board = Board.from_dict(doc)
        try:
            project = self._load_project(tx, actor, board.project_id)
        except NotFoundError:
            raise NotFoundError(f"Board {board_id} not found") from None
        return board, project

    def _load_task(self, tx: DocumentTransaction, actor: Actor, task_id: str) -> tuple[Task, Project]:
        doc = tx.find_one("tasks", {"id": task_id, "organization_id": actor.organization_id})
        if doc is None:
            raise NotFoundError(f"Task {task_id} not found")
        task = Task.from_dict(doc)
        try:
            project = self._load_project(tx, actor, task.project_id)
        except NotFoundError:
            raise NotFoundError(f"Task {task_id} not found") from None
        return task, project

    def _save_task(self, tx: DocumentTransaction, task: Task) -> None:
        task.updated_at = now_iso()
        tx.save("tasks", task.to_dict())

    # -- placement -----------------------------------------------------------

    def _column_end_rank(
        self,
        tx: DocumentTransaction,
        project_id: str,
        status: str,
        exclude_id: Optional[str] = None,
    ) -> str:
        """Rank that appends after the current last task of *status*."""
        criteria: dict[str, Any] = {"project_id": project_id, "status": status}
        if exclude_id:
            criteria["id"] = {"$ne": exclude_id}
        top = tx.find("tasks", criteria, sort=[("rank", -1)], limit=1)
        if not top or not top[0].get("rank"):
            return RankKey.initial()
        return RankKey.next(top[0]["rank"])

    # -- notifications -------------------------------------------------------

    def _dispatch(self, outbox: Iterable[tuple[Sequence[str], dict[str, Any]]]) -> None:
        for user_ids, payload in outbox:
            if not user_ids:
                continue
            try:
                self._notifier.notify(list(user_ids), payload)
            except Exception:
                logger.exception("Notification {} could not be delivered", payload.get("type"))

"""Rewrite a column's ranks as a fresh, evenly spaced chain.

Repeated inserts at the same spot make keys grow; rebalancing restores short
keys without changing the visible order.  Tasks imported without a rank are
placed after the ranked ones in creation order.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from ..domain.access import AccessGuard
from ..domain.columns import ColumnRegistry
from ..domain.models import Actor, Project
from ..domain.rank import RankKey
from ..results import operation
from ..storage.documents import sort_documents
from ..storage.interfaces import DocumentTransaction
from .base import ServiceBase


class RankMaintenance(ServiceBase):
    def _rebalance(self, tx: DocumentTransaction, project: Project, status: str) -> list[dict[str, Any]]:
        docs = tx.find("tasks", {"project_id": project.id, "status": status})
        ranked = sort_documents([d for d in docs if d.get("rank")], [("rank", 1)])
        unranked = sort_documents([d for d in docs if not d.get("rank")], [("created_at", 1)])

        out: list[dict[str, Any]] = []
        rank = None
        for doc in ranked + unranked:
            rank = RankKey.initial() if rank is None else RankKey.next(rank)
            if doc.get("rank") != rank:
                tx.update_one("tasks", {"id": doc["id"]}, {"rank": rank})
            out.append({"id": doc["id"], "issue_key": doc.get("issue_key"), "rank": rank})
        return out

    @operation("rebalance_column")
    def rebalance_column(self, actor: Actor, project_id: str, status: str) -> dict[str, Any]:
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            board = self._load_active_board(tx, project)
            ColumnRegistry.require_status(board.columns, status)
            AccessGuard.require_manager(project, actor.id, "rebalance ranks")
            tasks = self._rebalance(tx, project, status)
        logger.info("Rebalanced {} task(s) in {}/{}", len(tasks), project.key, status)
        return {"status": status, "tasks": tasks}

    @operation("rebalance_board")
    def rebalance_board(self, actor: Actor, project_id: str) -> dict[str, Any]:
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            board = self._load_active_board(tx, project)
            AccessGuard.require_manager(project, actor.id, "rebalance ranks")
            columns = {key: self._rebalance(tx, project, key) for key in board.column_keys()}
        logger.info("Rebalanced board of {} ({} columns)", project.key, len(columns))
        return {"columns": columns}

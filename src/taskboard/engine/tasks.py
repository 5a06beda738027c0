"""Task lifecycle: creation, field updates, column moves, comments, attachments.

Every public method opens exactly one transaction.  Checks run in the order
not-found, invalid input, forbidden, and all of them finish before the first
write, so a refused operation leaves nothing behind.  Notifications go out
only after the transaction has committed.
"""

from __future__ import annotations

import math
from typing import Any, Callable

from loguru import logger

from ..config import get_max_task_attachments, get_pagination_config
from ..domain.access import AccessGuard
from ..domain.activity import (
    ACTION_ASSIGNEE_CHANGED,
    ACTION_ATTACHMENT_ADDED,
    ACTION_ATTACHMENT_REMOVED,
    ACTION_COMMENT_ADDED,
    ACTION_COMMENT_DELETED,
    ACTION_COMMENT_UPDATED,
    ACTION_CREATED,
    ACTION_PRIORITY_CHANGED,
    ACTION_STATUS_CHANGED,
    ActivityEntry,
    TrackedField,
    diff_tracked,
)
from ..domain.columns import ColumnRegistry
from ..domain.issue_keys import IssueKeySequencer
from ..domain.models import PRIORITIES, Actor, Comment, Project, Task, UserProfile, now_iso
from ..domain.rank import RankKey
from ..errors import NotFoundError, ValidationError
from ..results import operation
from ..schemas import (
    AttachmentUpload,
    CommentRequest,
    CreateTaskRequest,
    MoveTaskRequest,
    TaskListQuery,
    UpdateCommentRequest,
    UpdateTaskRequest,
    validate_payload,
)
from ..storage.documents import sort_value
from ..storage.interfaces import DocumentTransaction
from .base import ServiceBase, audience, event

_PRIORITY_WEIGHT = {name: idx for idx, name in enumerate(PRIORITIES)}


def tracked_task_fields(snapshot_user: Callable[[Any], Any]) -> tuple[TrackedField, ...]:
    """Audited task attributes; *snapshot_user* denormalizes assignee ids."""
    return (
        TrackedField("priority", action=ACTION_PRIORITY_CHANGED),
        TrackedField("assignee", action=ACTION_ASSIGNEE_CHANGED, snapshot=snapshot_user),
        TrackedField("title"),
        TrackedField("description"),
        TrackedField("due_date"),
        TrackedField("type"),
    )


def _sort_tasks(docs: list[dict[str, Any]], sort_by: str, order: str) -> list[dict[str, Any]]:
    if sort_by == "priority":
        key: Callable[[dict[str, Any]], Any] = lambda d: _PRIORITY_WEIGHT.get(d.get("priority"), -1)
    else:
        key = lambda d: sort_value(d.get(sort_by))
    return sorted(docs, key=key, reverse=order == "desc")


def _matches_search(doc: dict[str, Any], needle: str) -> bool:
    haystack = " ".join(str(doc.get(name) or "") for name in ("title", "description", "issue_key"))
    return needle in haystack.lower()


class TaskLifecycle(ServiceBase):
    # -- helpers -------------------------------------------------------------

    def _require_assignable(self, project: Project, user_id: str) -> None:
        if not AccessGuard.is_member_or_manager(project, user_id):
            raise ValidationError.from_fields(
                [{"field": "assignee", "message": "must be a project member or manager"}],
                "Assignee must be a member or manager of the project",
            )

    def _require_attachment_room(self, current: int, adding: int, field: str = "attachments") -> None:
        limit = get_max_task_attachments(self._config)
        if current + adding > limit:
            raise ValidationError.from_fields(
                [{"field": field, "message": f"at most {limit} attachments are allowed"}],
                f"Attachment limit of {limit} exceeded",
            )

    def _user_snapshot(self, tx: DocumentTransaction, project: Project) -> Callable[[Any], Any]:
        def snapshot(user_id: Any) -> Any:
            if not user_id:
                return None
            doc = tx.find_one("users", {"id": user_id, "organization_id": project.organization_id})
            if doc is None:
                return {"id": user_id}
            return UserProfile.from_dict(doc).snapshot()

        return snapshot

    # -- create / read -------------------------------------------------------

    @operation("create_task")
    def create_task(self, actor: Actor, project_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(CreateTaskRequest, payload)
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            board = self._load_active_board(tx, project)
            AccessGuard.require_member_or_manager(project, actor.id, "create tasks")
            status = request.status or board.column_keys()[0]
            ColumnRegistry.require_status(board.columns, status)
            if request.assignee:
                self._require_assignable(project, request.assignee)
            self._require_attachment_room(0, len(request.attachments))

            task = Task(
                organization_id=project.organization_id,
                project_id=project.id,
                issue_key=IssueKeySequencer.next(tx, project),
                type=request.type,
                title=request.title,
                description=request.description,
                status=status,
                priority=request.priority,
                assignee=request.assignee or None,
                reporter=actor.id,
                due_date=request.due_date.isoformat() if request.due_date else None,
                rank=self._column_end_rank(tx, project.id, status),
            )
            if request.attachments:
                refs = self._attachments.create_attachments(tx, actor.id, actor.organization_id, request.attachments)
                task.attachments = [ref["id"] for ref in refs]
            task.activity.append(ActivityEntry(action=ACTION_CREATED, performed_by=actor.id))
            tx.save("tasks", task.to_dict())

        logger.info("Created task {} in {} ({})", task.issue_key, status, task.id)
        outbox = [(audience(project, task.assignee, exclude=actor.id),
                   event("task.created", actor, project, task_id=task.id, issue_key=task.issue_key))]
        self._dispatch(outbox)
        return task.to_dict()

    @operation("get_task")
    def get_task_by_id(self, actor: Actor, task_id: str) -> dict[str, Any]:
        with self._store.transaction() as tx:
            task, _ = self._load_task(tx, actor, task_id)
        return task.to_dict()

    @operation("list_tasks")
    def list_tasks_by_project(self, actor: Actor, project_id: str, filters: Any = None) -> dict[str, Any]:
        query = validate_payload(TaskListQuery, filters)
        pagination = get_pagination_config(self._config)
        limit = min(query.limit or pagination["default_limit"], pagination["max_limit"])

        criteria: dict[str, Any] = {}
        for name in ("status", "priority", "type", "assignee", "reporter"):
            value = getattr(query, name)
            if value is not None:
                criteria[name] = value
        if query.my_filter == "assigned_to_me":
            criteria["assignee"] = actor.id
        elif query.my_filter == "reported_by_me":
            criteria["reporter"] = actor.id

        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            criteria["project_id"] = project.id
            docs = tx.find("tasks", criteria)

        if query.my_tasks:
            docs = [d for d in docs if actor.id in (d.get("assignee"), d.get("reporter"))]
        if query.search:
            needle = query.search.lower()
            docs = [d for d in docs if _matches_search(d, needle)]
        docs = _sort_tasks(docs, query.sort_by, query.order)

        total = len(docs)
        total_pages = math.ceil(total / limit) if total else 0
        start = (query.page - 1) * limit
        return {
            "tasks": docs[start:start + limit],
            "pagination": {
                "total_items": total,
                "total_pages": total_pages,
                "current_page": query.page,
                "limit": limit,
                "has_next_page": query.page < total_pages,
                "has_prev_page": query.page > 1,
            },
        }

    # -- update / move / delete ---------------------------------------------

    @operation("update_task")
    def update_task(self, actor: Actor, task_id: str, payload: Any) -> dict[str, Any]:
        changes = validate_payload(UpdateTaskRequest, payload).changes()
        with self._store.transaction() as tx:
            task, project = self._load_task(tx, actor, task_id)
            AccessGuard.require_member_or_assignee(project, task, actor.id, "update this task")
            if changes.get("assignee") and changes["assignee"] != task.assignee:
                self._require_assignable(project, changes["assignee"])

            previous_assignee = task.assignee
            entries = diff_tracked(task, changes, tracked_task_fields(self._user_snapshot(tx, project)), actor.id)
            if entries:
                for entry in entries:
                    setattr(task, entry.field, changes[entry.field])
                    task.activity.append(entry)
                self._save_task(tx, task)

        if not entries:
            return task.to_dict()
        changed = [entry.field for entry in entries]
        logger.info("Updated {} fields {}", task.issue_key, changed)
        outbox = [(audience(project, task.assignee, exclude=actor.id),
                   event("task.updated", actor, project, task_id=task.id, fields=changed))]
        if task.assignee and task.assignee != previous_assignee and task.assignee != actor.id:
            outbox.append(([task.assignee], event("task.assigned", actor, project, task_id=task.id, issue_key=task.issue_key)))
        self._dispatch(outbox)
        return task.to_dict()

    @operation("move_task")
    def move_task(self, actor: Actor, task_id: str, payload: Any) -> dict[str, Any]:
        """Place a task in a column, between two neighbours or at an end.

        ``prevRank``/``nextRank`` name the ranks of the neighbours the task is
        dropped between; with neither, the task goes to the end of the column.
        """
        request = validate_payload(MoveTaskRequest, payload)
        with self._store.transaction() as tx:
            task, project = self._load_task(tx, actor, task_id)
            board = self._load_active_board(tx, project)
            ColumnRegistry.require_status(board.columns, request.status)
            AccessGuard.require_member_or_assignee(project, task, actor.id, "move this task")

            if request.prev_rank and request.next_rank:
                rank = RankKey.between(request.prev_rank, request.next_rank)
            elif request.prev_rank:
                rank = RankKey.next(request.prev_rank)
            elif request.next_rank:
                rank = RankKey.between(None, request.next_rank)
            else:
                rank = self._column_end_rank(tx, project.id, request.status, exclude_id=task.id)

            old_status = task.status
            if old_status != request.status:
                task.activity.append(
                    ActivityEntry(
                        action=ACTION_STATUS_CHANGED,
                        performed_by=actor.id,
                        field="status",
                        from_value=old_status,
                        to_value=request.status,
                    )
                )
            task.status = request.status
            task.rank = rank
            self._save_task(tx, task)

        logger.info("Moved {} {} -> {} at rank {}", task.issue_key, old_status, task.status, rank)
        if old_status != task.status:
            self._dispatch([(audience(project, task.assignee, exclude=actor.id),
                             event("task.moved", actor, project, task_id=task.id, from_status=old_status, to_status=task.status))])
        return task.to_dict()

    @operation("delete_task")
    def delete_task(self, actor: Actor, task_id: str) -> dict[str, Any]:
        with self._store.transaction() as tx:
            task, project = self._load_task(tx, actor, task_id)
            AccessGuard.require_member_or_manager(project, actor.id, "delete tasks")
            refs = list(task.attachments) + [ref for comment in task.comments for ref in comment.attachments]
            self._attachments.delete_attachments(tx, refs)
            tx.delete_one("tasks", {"id": task.id})

        logger.info("Deleted task {} ({})", task.issue_key, task.id)
        self._dispatch([(audience(project, task.assignee, exclude=actor.id),
                         event("task.deleted", actor, project, task_id=task.id, issue_key=task.issue_key))])
        return {"id": task.id, "issue_key": task.issue_key, "deleted": True}

    # -- comments ------------------------------------------------------------

    @operation("add_comment")
    def add_comment(self, actor: Actor, task_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(CommentRequest, payload)
        with self._store.transaction() as tx:
            task, project = self._load_task(tx, actor, task_id)
            AccessGuard.require_member_or_manager(project, actor.id, "comment on tasks")
            self._require_attachment_room(0, len(request.attachments))
            comment = Comment(author=actor.id, message=request.message)
            if request.attachments:
                refs = self._attachments.create_attachments(tx, actor.id, actor.organization_id, request.attachments)
                comment.attachments = [ref["id"] for ref in refs]
            task.comments.append(comment)
            task.activity.append(
                ActivityEntry(action=ACTION_COMMENT_ADDED, performed_by=actor.id, field="comment", to_value=comment.id)
            )
            self._save_task(tx, task)

        self._dispatch([(audience(project, task.assignee, task.reporter, exclude=actor.id),
                         event("comment.added", actor, project, task_id=task.id, comment_id=comment.id))])
        return {"task_id": task.id, "comment": comment.to_dict()}

    @operation("update_comment")
    def update_comment(self, actor: Actor, task_id: str, comment_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(UpdateCommentRequest, payload)
        with self._store.transaction() as tx:
            task, _ = self._load_task(tx, actor, task_id)
            comment = task.find_comment(comment_id)
            if comment is None:
                raise NotFoundError(f"Comment {comment_id} not found")
            AccessGuard.require_comment_author(comment, actor.id, "edit this comment")
            if comment.message != request.message:
                stamp = now_iso()
                comment.message = request.message
                comment.is_edited = True
                comment.edited_at = stamp
                comment.updated_at = stamp
                task.activity.append(
                    ActivityEntry(action=ACTION_COMMENT_UPDATED, performed_by=actor.id, field="comment", to_value=comment.id)
                )
                self._save_task(tx, task)
        return {"task_id": task.id, "comment": comment.to_dict()}

    @operation("delete_comment")
    def delete_comment(self, actor: Actor, task_id: str, comment_id: str) -> dict[str, Any]:
        with self._store.transaction() as tx:
            task, _ = self._load_task(tx, actor, task_id)
            comment = task.find_comment(comment_id)
            if comment is None:
                raise NotFoundError(f"Comment {comment_id} not found")
            AccessGuard.require_comment_author(comment, actor.id, "delete this comment")
            task.comments = [item for item in task.comments if item.id != comment.id]
            self._attachments.delete_attachments(tx, comment.attachments)
            task.activity.append(
                ActivityEntry(action=ACTION_COMMENT_DELETED, performed_by=actor.id, field="comment", from_value=comment.id)
            )
            self._save_task(tx, task)
        return {"task_id": task.id, "comment_id": comment.id, "deleted": True}

    # -- attachments ---------------------------------------------------------

    @operation("add_attachment")
    def add_attachment(self, actor: Actor, task_id: str, files: Any) -> dict[str, Any]:
        if isinstance(files, (list, tuple)):
            files = {"files": list(files)}
        request = validate_payload(AttachmentUpload, files)
        with self._store.transaction() as tx:
            task, project = self._load_task(tx, actor, task_id)
            AccessGuard.require_member_or_manager(project, actor.id, "attach files")
            self._require_attachment_room(len(task.attachments), len(request.files))
            refs = self._attachments.create_attachments(tx, actor.id, actor.organization_id, request.files)
            added = [ref["id"] for ref in refs]
            task.attachments.extend(added)
            task.activity.append(
                ActivityEntry(action=ACTION_ATTACHMENT_ADDED, performed_by=actor.id, field="attachments", to_value=added)
            )
            self._save_task(tx, task)

        self._dispatch([(audience(project, task.assignee, exclude=actor.id),
                         event("attachment.added", actor, project, task_id=task.id, attachments=added))])
        return {"task": task.to_dict(), "attachments": refs}

    @operation("remove_attachment")
    def remove_attachment(self, actor: Actor, task_id: str, attachment_id: str) -> dict[str, Any]:
        with self._store.transaction() as tx:
            task, project = self._load_task(tx, actor, task_id)
            if attachment_id not in task.attachments:
                raise NotFoundError(f"Attachment {attachment_id} not found")
            AccessGuard.require_member_or_manager(project, actor.id, "remove attachments")
            task.attachments = [ref for ref in task.attachments if ref != attachment_id]
            self._attachments.delete_attachments(tx, [attachment_id])
            task.activity.append(
                ActivityEntry(
                    action=ACTION_ATTACHMENT_REMOVED,
                    performed_by=actor.id,
                    field="attachments",
                    from_value=attachment_id,
                )
            )
            self._save_task(tx, task)
        return task.to_dict()

"""Authorization predicates.

The predicates are pure; the ``require_*`` helpers turn a failed predicate
into :class:`~taskboard.errors.ForbiddenError` so a refusal is never a
silent no-op.
"""

from __future__ import annotations

from typing import Optional

from ..errors import ForbiddenError
from .models import Comment, Project, Task


class AccessGuard:
    @staticmethod
    def is_member_or_manager(project: Project, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        return user_id in project.members or user_id in project.manager

    @staticmethod
    def is_manager(project: Project, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in project.manager

    @staticmethod
    def can_mutate_as_assignee(task: Task, user_id: Optional[str]) -> bool:
        return bool(user_id) and task.assignee == user_id

    @staticmethod
    def is_comment_author(comment: Comment, user_id: Optional[str]) -> bool:
        return bool(user_id) and comment.author == user_id

    # -- composed rules ------------------------------------------------------

    @classmethod
    def require_member_or_manager(cls, project: Project, user_id: str, action: str) -> None:
        """Create, delete, comment and attachment mutations."""
        if not cls.is_member_or_manager(project, user_id):
            raise ForbiddenError(f"Only project members or managers can {action}")

    @classmethod
    def require_member_or_assignee(cls, project: Project, task: Task, user_id: str, action: str) -> None:
        """Field updates and status transitions."""
        if cls.is_member_or_manager(project, user_id) or cls.can_mutate_as_assignee(task, user_id):
            return
        raise ForbiddenError(f"Only project members, managers or the assignee can {action}")

    @classmethod
    def require_comment_author(cls, comment: Comment, user_id: str, action: str) -> None:
        if not cls.is_comment_author(comment, user_id):
            raise ForbiddenError(f"Only the comment author can {action}")

    @classmethod
    def require_manager(cls, project: Project, user_id: str, action: str) -> None:
        if not cls.is_manager(project, user_id):
            raise ForbiddenError(f"Only project managers can {action}")

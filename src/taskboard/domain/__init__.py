"""Pure domain layer: models, ranks, columns, issue keys, access rules, audit log."""

from .access import AccessGuard
from .activity import ActivityEntry, ActivityLog, TrackedField
from .columns import ColumnRegistry, default_columns
from .issue_keys import IssueKeySequencer
from .models import Actor, Board, Column, Comment, Project, Task, UserProfile
from .rank import RankKey

__all__ = [
    "AccessGuard",
    "ActivityEntry",
    "ActivityLog",
    "Actor",
    "Board",
    "Column",
    "ColumnRegistry",
    "Comment",
    "IssueKeySequencer",
    "Project",
    "RankKey",
    "Task",
    "TrackedField",
    "UserProfile",
    "default_columns",
]

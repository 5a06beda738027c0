from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from .activity import ActivityEntry, ActivityLog


ProjectType = Literal["software", "business", "service_desk"]
ProjectStatus = Literal["planned", "active", "on_hold", "completed", "archived"]
TaskType = Literal["task", "bug", "story", "epic", "subtask"]
Priority = Literal["lowest", "low", "medium", "high", "highest"]

PROJECT_TYPES: tuple[str, ...] = ("software", "business", "service_desk")
PROJECT_STATUSES: tuple[str, ...] = ("planned", "active", "on_hold", "completed", "archived")
TASK_TYPES: tuple[str, ...] = ("task", "bug", "story", "epic", "subtask")
PRIORITIES: tuple[str, ...] = ("lowest", "low", "medium", "high", "highest")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


def _str_list(value: Any) -> list[str]:
    return [str(item) for item in list(value or []) if item]


@dataclass(frozen=True)
class Actor:
    """Identity supplied by the authentication layer; never verified here."""

    id: str
    organization_id: str
    membership_refs: tuple[str, ...] = ()


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "label": self.label, "order": self.order}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Column":
        return cls(key=str(data.get("key") or ""), label=str(data.get("label") or ""), order=int(data.get("order") or 0))


@dataclass
class Project:
    id: str = field(default_factory=lambda: _id("proj"))
    organization_id: str = ""
    name: str = ""
    key: str = ""
    description: str = ""
    project_type: ProjectType = "software"
    status: ProjectStatus = "active"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    members: list[str] = field(default_factory=list)
    manager: list[str] = field(default_factory=list)
    created_by: str = ""
    deleted_at: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        return cls(
            id=str(data.get("id") or _id("proj")),
            organization_id=str(data.get("organization_id") or ""),
            name=str(data.get("name") or ""),
            key=str(data.get("key") or ""),
            description=str(data.get("description") or ""),
            project_type=data.get("project_type") or "software",
            status=data.get("status") or "active",
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            members=_str_list(data.get("members")),
            manager=_str_list(data.get("manager")),
            created_by=str(data.get("created_by") or ""),
            deleted_at=data.get("deleted_at"),
            created_at=str(data.get("created_at") or now_iso()),
            updated_at=str(data.get("updated_at") or now_iso()),
        )


@dataclass
class Board:
    id: str = field(default_factory=lambda: _id("board"))
    organization_id: str = ""
    project_id: str = ""
    name: str = ""
    columns: tuple[Column, ...] = ()
    created_by: str = ""
    is_active: bool = True
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def column_keys(self) -> list[str]:
        return [column.key for column in sorted(self.columns, key=lambda c: c.order)]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["columns"] = [column.to_dict() for column in sorted(self.columns, key=lambda c: c.order)]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Board":
        columns = tuple(Column.from_dict(item) for item in list(data.get("columns") or []) if isinstance(item, dict))
        return cls(
            id=str(data.get("id") or _id("board")),
            organization_id=str(data.get("organization_id") or ""),
            project_id=str(data.get("project_id") or ""),
            name=str(data.get("name") or ""),
            columns=columns,
            created_by=str(data.get("created_by") or ""),
            is_active=bool(data.get("is_active", True)),
            created_at=str(data.get("created_at") or now_iso()),
            updated_at=str(data.get("updated_at") or now_iso()),
        )


@dataclass
class Comment:
    id: str = field(default_factory=lambda: _id("cmt"))
    author: str = ""
    message: str = ""
    attachments: list[str] = field(default_factory=list)
    is_edited: bool = False
    edited_at: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Comment":
        return cls(
            id=str(data.get("id") or _id("cmt")),
            author=str(data.get("author") or ""),
            message=str(data.get("message") or ""),
            attachments=_str_list(data.get("attachments")),
            is_edited=bool(data.get("is_edited", False)),
            edited_at=data.get("edited_at"),
            created_at=str(data.get("created_at") or now_iso()),
            updated_at=str(data.get("updated_at") or now_iso()),
        )


@dataclass
class Task:
    id: str = field(default_factory=lambda: _id("task"))
    organization_id: str = ""
    project_id: str = ""
    issue_key: str = ""
    type: TaskType = "task"
    title: str = ""
    description: str = ""
    status: str = ""
    priority: Priority = "medium"
    assignee: Optional[str] = None
    reporter: str = ""
    due_date: Optional[str] = None
    rank: Optional[str] = None
    attachments: list[str] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    activity: ActivityLog = field(default_factory=ActivityLog)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def find_comment(self, comment_id: str) -> Optional[Comment]:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "project_id": self.project_id,
            "issue_key": self.issue_key,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "assignee": self.assignee,
            "reporter": self.reporter,
            "due_date": self.due_date,
            "rank": self.rank,
            "attachments": list(self.attachments),
            "comments": [comment.to_dict() for comment in self.comments],
            "activity": [entry.to_dict() for entry in self.activity.read_all()],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        comments = [Comment.from_dict(item) for item in list(data.get("comments") or []) if isinstance(item, dict)]
        entries = [ActivityEntry.from_dict(item) for item in list(data.get("activity") or []) if isinstance(item, dict)]
        return cls(
            id=str(data.get("id") or _id("task")),
            organization_id=str(data.get("organization_id") or ""),
            project_id=str(data.get("project_id") or ""),
            issue_key=str(data.get("issue_key") or ""),
            type=data.get("type") or "task",
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            status=str(data.get("status") or ""),
            priority=data.get("priority") or "medium",
            assignee=data.get("assignee"),
            reporter=str(data.get("reporter") or ""),
            due_date=data.get("due_date"),
            rank=data.get("rank"),
            attachments=_str_list(data.get("attachments")),
            comments=comments,
            activity=ActivityLog(entries),
            created_at=str(data.get("created_at") or now_iso()),
            updated_at=str(data.get("updated_at") or now_iso()),
        )


@dataclass
class UserProfile:
    id: str = field(default_factory=lambda: _id("user"))
    organization_id: str = ""
    username: str = ""
    firstname: str = ""
    lastname: str = ""
    email: str = ""
    avatar: Optional[str] = None

    def snapshot(self) -> dict[str, Any]:
        """Denormalized view kept in the audit trail."""
        return {
            "id": self.id,
            "username": self.username,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "avatar": self.avatar,
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserProfile":
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__ if k in data})


@dataclass
class Attachment:
    """Reference to bytes held by the external attachment store."""

    id: str = field(default_factory=lambda: _id("att"))
    organization_id: str = ""
    uploaded_by: str = ""
    filename: str = ""
    content_type: str = "application/octet-stream"
    size: int = 0
    storage_key: str = ""
    deleted_at: Optional[str] = None
    created_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

"""Request models validated before any persistence call.

Each service operation runs its input through :func:`validate_payload`,
which returns the parsed model or raises
:class:`~taskboard.errors.ValidationError` listing every violated field.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .domain.models import Priority, ProjectStatus, ProjectType, TaskType
from .errors import ValidationError

M = TypeVar("M", bound=BaseModel)

PROJECT_KEY_PATTERN = r"^[A-Z0-9]{2,10}$"
COLUMN_KEY_PATTERN = r"^[A-Za-z0-9-]+$"

TaskSortField = Literal["rank", "created_at", "updated_at", "priority", "due_date", "title", "issue_key"]


def validate_payload(model: type[M], payload: Any) -> M:
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return model.model_validate(payload if payload is not None else {})
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err.get("loc", ())) or "body", "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        raise ValidationError.from_fields(errors) from exc


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid", populate_by_name=True)


def _date_str(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# -- users -----------------------------------------------------------------


class CreateUserRequest(_Request):
    id: Optional[str] = Field(default=None, min_length=1)
    username: str = Field(min_length=1, max_length=50)
    firstname: str = Field(default="", max_length=50)
    lastname: str = Field(default="", max_length=50)
    email: str = Field(default="", max_length=254)
    avatar: Optional[str] = None


# -- projects --------------------------------------------------------------


class _ProjectFields(_Request):
    @field_validator("key", mode="before", check_fields=False)
    @classmethod
    def _normalize_key(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _check_dates(self):
        start = getattr(self, "start_date", None)
        end = getattr(self, "end_date", None)
        if start is not None and end is not None and end < start:
            raise ValueError("end_date must not be before start_date")
        return self


class CreateProjectRequest(_ProjectFields):
    name: str = Field(min_length=3, max_length=100)
    key: str = Field(pattern=PROJECT_KEY_PATTERN)
    description: str = Field(default="", max_length=2000)
    project_type: ProjectType = "software"
    status: ProjectStatus = "active"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    members: list[str] = Field(default_factory=list)
    manager: list[str] = Field(default_factory=list)

    def document_fields(self) -> dict[str, Any]:
        data = self.model_dump()
        data["start_date"] = _date_str(self.start_date)
        data["end_date"] = _date_str(self.end_date)
        return data


class UpdateProjectRequest(_ProjectFields):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    key: Optional[str] = Field(default=None, pattern=PROJECT_KEY_PATTERN)
    description: Optional[str] = Field(default=None, max_length=2000)
    project_type: Optional[ProjectType] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("name", "key", "project_type", "status", mode="before")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may not be null")
        return value

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        for name in ("start_date", "end_date"):
            if name in data:
                data[name] = _date_str(data[name])
        return data


class MemberRequest(_Request):
    user_id: str = Field(min_length=1)
    role: Literal["member", "manager"] = "member"


# -- boards ----------------------------------------------------------------


class ColumnSpec(_Request):
    key: str = Field(pattern=COLUMN_KEY_PATTERN, max_length=50)
    label: Optional[str] = Field(default=None, min_length=1, max_length=50)
    order: int = Field(ge=0)


class CreateBoardRequest(_Request):
    name: str = Field(min_length=1, max_length=100)
    columns: Optional[list[ColumnSpec]] = None


class UpdateBoardRequest(_Request):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    columns: Optional[list[ColumnSpec]] = None


class AddColumnRequest(_Request):
    key: str = Field(pattern=COLUMN_KEY_PATTERN, max_length=50)
    label: Optional[str] = Field(default=None, min_length=1, max_length=50)
    order: Optional[int] = Field(default=None, ge=0)


class RenameColumnRequest(_Request):
    label: str = Field(min_length=1, max_length=50)


class ReorderColumnsRequest(_Request):
    keys: list[str] = Field(min_length=1)


class DeleteColumnRequest(_Request):
    target_key: Optional[str] = Field(default=None, alias="targetColumn", min_length=1)
    confirm_destructive: bool = False


# -- tasks -----------------------------------------------------------------


class AttachmentFile(_Request):
    filename: str = Field(min_length=1, max_length=255)
    content_type: str = Field(default="application/octet-stream", max_length=255)
    size: int = Field(default=0, ge=0)


class AttachmentUpload(_Request):
    files: list[AttachmentFile] = Field(min_length=1)


class CreateTaskRequest(_Request):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(default="", max_length=5000)
    type: TaskType = "task"
    priority: Priority = "medium"
    status: Optional[str] = Field(default=None, min_length=1)
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    attachments: list[AttachmentFile] = Field(default_factory=list)


class UpdateTaskRequest(_Request):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    type: Optional[TaskType] = None
    priority: Optional[Priority] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None

    @field_validator("title", "description", "type", "priority", mode="before")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may not be null")
        return value

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        if "due_date" in data:
            data["due_date"] = _date_str(data["due_date"])
        if "assignee" in data and not data["assignee"]:
            data["assignee"] = None
        return data


class MoveTaskRequest(_Request):
    status: str = Field(min_length=1)
    prev_rank: Optional[str] = Field(default=None, alias="prevRank", min_length=1)
    next_rank: Optional[str] = Field(default=None, alias="nextRank", min_length=1)


class CommentRequest(_Request):
    message: str = Field(min_length=1, max_length=5000)
    attachments: list[AttachmentFile] = Field(default_factory=list)


class UpdateCommentRequest(_Request):
    message: str = Field(min_length=1, max_length=5000)


class TaskListQuery(_Request):
    status: Optional[str] = None
    priority: Optional[Priority] = None
    type: Optional[TaskType] = None
    assignee: Optional[str] = None
    reporter: Optional[str] = None
    my_filter: Optional[Literal["assigned_to_me", "reported_by_me"]] = None
    my_tasks: bool = False
    search: Optional[str] = Field(default=None, max_length=200)
    sort_by: TaskSortField = "rank"
    order: Literal["asc", "desc"] = "asc"
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)

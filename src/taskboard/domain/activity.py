"""Append-only audit trail attached to each task.

The log hands out immutable entries and only grows.  Field-change detection
is driven by :class:`TrackedField` descriptors so that auditing a new field
means adding a descriptor, not another branch in the update path.
"""

from __future__ import annotations

import operator
import uuid
from dataclasses import dataclass, field as dc_field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

ACTION_CREATED = "created"
ACTION_STATUS_CHANGED = "status_changed"
ACTION_ASSIGNEE_CHANGED = "assignee_changed"
ACTION_PRIORITY_CHANGED = "priority_changed"
ACTION_UPDATED = "updated"
ACTION_COMMENT_ADDED = "comment_added"
ACTION_COMMENT_UPDATED = "comment_updated"
ACTION_COMMENT_DELETED = "comment_deleted"
ACTION_ATTACHMENT_ADDED = "attachment_added"
ACTION_ATTACHMENT_REMOVED = "attachment_removed"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ActivityEntry:
    action: str
    performed_by: str
    field: Optional[str] = None
    from_value: Any = None
    to_value: Any = None
    performed_at: str = dc_field(default_factory=_now_iso)
    id: str = dc_field(default_factory=lambda: f"act-{uuid.uuid4().hex[:10]}")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "action": self.action}
        if self.field is not None:
            data["field"] = self.field
            data["from"] = self.from_value
            data["to"] = self.to_value
        data["performed_by"] = self.performed_by
        data["performed_at"] = self.performed_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityEntry":
        return cls(
            id=str(data.get("id") or f"act-{uuid.uuid4().hex[:10]}"),
            action=str(data.get("action") or ""),
            performed_by=str(data.get("performed_by") or ""),
            field=data.get("field"),
            from_value=data.get("from"),
            to_value=data.get("to"),
            performed_at=str(data.get("performed_at") or _now_iso()),
        )


class ActivityLog:
    """Ordered, append-only collection of :class:`ActivityEntry` records."""

    def __init__(self, entries: Iterable[ActivityEntry] = ()) -> None:
        self._entries: list[ActivityEntry] = list(entries)

    def append(self, entry: ActivityEntry) -> ActivityEntry:
        self._entries.append(entry)
        return entry

    def read_all(self) -> tuple[ActivityEntry, ...]:
        return tuple(self._entries)

    def __repr__(self) -> str:
        return f"ActivityLog({len(self._entries)} entries)"


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class TrackedField:
    """Describe how one task attribute is compared and recorded when it changes."""

    field: str
    action: str = ACTION_UPDATED
    equals: Callable[[Any, Any], bool] = operator.eq
    snapshot: Callable[[Any], Any] = _identity


def diff_tracked(
    before: Any,
    after: dict[str, Any],
    fields: Iterable[TrackedField],
    performed_by: str,
) -> list[ActivityEntry]:
    """Return one entry per tracked field whose value in *after* differs from *before*.

    *before* is any object exposing the tracked attributes; *after* holds only
    the fields the caller wants to change.
    """
    entries: list[ActivityEntry] = []
    for tracked in fields:
        if tracked.field not in after:
            continue
        old = getattr(before, tracked.field)
        new = after[tracked.field]
        if tracked.equals(old, new):
            continue
        entries.append(
            ActivityEntry(
                action=tracked.action,
                performed_by=performed_by,
                field=tracked.field,
                from_value=tracked.snapshot(old),
                to_value=tracked.snapshot(new),
            )
        )
    return entries

"""Board column registry: the finite set of statuses a task may occupy.

Every function here is pure.  Mutations return a fresh validated tuple of
:class:`Column` values and never touch task data; removing a column yields a
:class:`ColumnRemovalPlan` that the board service executes against tasks
before the new column list is stored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union

from ..errors import ConflictError, InvalidStatus, NotFoundError, ValidationError
from .models import Column

COLUMN_KEY_RE = re.compile(r"^[A-Za-z0-9-]+$")

ColumnLike = Union[Column, dict[str, Any]]


def default_columns() -> tuple[Column, ...]:
    """Starter columns for a new project board."""
    return (
        Column(key="todo", label="To Do", order=0),
        Column(key="in-progress", label="In Progress", order=1),
        Column(key="done", label="Done", order=2),
    )


@dataclass(frozen=True)
class ColumnRemovalPlan:
    removed_key: str
    target_key: Optional[str]
    columns: tuple[Column, ...]

    @property
    def migrates(self) -> bool:
        return self.target_key is not None


def _raw(column: ColumnLike) -> dict[str, Any]:
    if isinstance(column, Column):
        return column.to_dict()
    if isinstance(column, dict):
        return column
    return {"key": column}


class ColumnRegistry:
    @staticmethod
    def default_columns() -> tuple[Column, ...]:
        return default_columns()

    @staticmethod
    def validate(columns: Optional[Iterable[ColumnLike]]) -> tuple[Column, ...]:
        """Return the columns as a sorted tuple, or raise listing every problem.

        Shape problems (empty list, bad key pattern, blank label, negative or
        non-integer order) raise :class:`ValidationError` with one entry per
        violated field.  A shape-valid list with repeated keys raises
        :class:`ConflictError`.  A missing label defaults to the key.
        """
        items = list(columns or [])
        if not items:
            raise ValidationError.from_fields(
                [{"field": "columns", "message": "at least one column is required"}],
                "A board must have at least one column",
            )

        errors: list[dict[str, Any]] = []
        parsed: list[Column] = []
        for idx, item in enumerate(items):
            raw = _raw(item)
            key = raw.get("key")
            label = raw.get("label")
            order = raw.get("order")
            ok = True
            if not isinstance(key, str) or not COLUMN_KEY_RE.match(key):
                errors.append({"field": f"columns.{idx}.key", "message": "must match [A-Za-z0-9-]+"})
                ok = False
            if label is None:
                label = key
            if not isinstance(label, str) or not label.strip():
                errors.append({"field": f"columns.{idx}.label", "message": "must be a non-empty string"})
                ok = False
            if isinstance(order, bool) or not isinstance(order, int) or order < 0:
                errors.append({"field": f"columns.{idx}.order", "message": "must be a non-negative integer"})
                ok = False
            if ok:
                parsed.append(Column(key=key, label=label.strip(), order=order))
        if errors:
            raise ValidationError.from_fields(errors, "Invalid board columns")

        seen: set[str] = set()
        duplicates: list[str] = []
        for column in parsed:
            if column.key in seen and column.key not in duplicates:
                duplicates.append(column.key)
            seen.add(column.key)
        if duplicates:
            raise ConflictError(
                f"Duplicate column key(s): {', '.join(duplicates)}",
                errors=[{"field": "columns", "message": f"duplicate key '{key}'"} for key in duplicates],
            )
        return tuple(sorted(parsed, key=lambda c: c.order))

    @staticmethod
    def keys(columns: Sequence[Column]) -> list[str]:
        return [column.key for column in sorted(columns, key=lambda c: c.order)]

    @staticmethod
    def require_status(columns: Sequence[Column], status: str) -> str:
        valid = ColumnRegistry.keys(columns)
        if status not in valid:
            raise InvalidStatus(status, valid)
        return status

    @staticmethod
    def _find(columns: Sequence[Column], key: str) -> Column:
        for column in columns:
            if column.key == key:
                return column
        raise NotFoundError(f"Column '{key}' not found")

    @staticmethod
    def add(columns: Sequence[Column], key: str, label: Optional[str] = None, order: Optional[int] = None) -> tuple[Column, ...]:
        if order is None:
            order = max((column.order for column in columns), default=-1) + 1
        return ColumnRegistry.validate([*columns, {"key": key, "label": label, "order": order}])

    @staticmethod
    def rename(columns: Sequence[Column], key: str, label: str) -> tuple[Column, ...]:
        ColumnRegistry._find(columns, key)
        renamed = [
            {"key": column.key, "label": label if column.key == key else column.label, "order": column.order}
            for column in columns
        ]
        return ColumnRegistry.validate(renamed)

    @staticmethod
    def reorder(columns: Sequence[Column], keys: Sequence[str]) -> tuple[Column, ...]:
        """Assign ``order`` from the position of each key in *keys*."""
        current = ColumnRegistry.keys(columns)
        if sorted(keys) != sorted(current) or len(set(keys)) != len(keys):
            raise ValidationError.from_fields(
                [{"field": "keys", "message": f"must be a permutation of {current}"}],
                "Column order must list every existing column exactly once",
            )
        by_key = {column.key: column for column in columns}
        return ColumnRegistry.validate(
            [{"key": key, "label": by_key[key].label, "order": idx} for idx, key in enumerate(keys)]
        )

    @staticmethod
    def remove_with_migration(columns: Sequence[Column], key: str, target_key: Optional[str] = None) -> ColumnRemovalPlan:
        """Plan the removal of *key*, moving its tasks to *target_key* when given."""
        ColumnRegistry._find(columns, key)
        if target_key is not None:
            if target_key == key:
                raise ValidationError.from_fields(
                    [{"field": "target_key", "message": "must differ from the removed column"}]
                )
            ColumnRegistry._find(columns, target_key)
        remaining = [column for column in columns if column.key != key]
        if not remaining:
            raise ValidationError.from_fields(
                [{"field": "columns", "message": "at least one column is required"}],
                "Cannot remove the last column of a board",
            )
        return ColumnRemovalPlan(removed_key=key, target_key=target_key, columns=ColumnRegistry.validate(remaining))

    @staticmethod
    def removed_keys(old: Sequence[Column], new: Sequence[Column]) -> list[str]:
        kept = {column.key for column in new}
        return [column.key for column in old if column.key not in kept]

from __future__ import annotations

import dataclasses

import pytest

from taskboard.domain.columns import ColumnRegistry, default_columns
from taskboard.domain.models import Column
from taskboard.errors import ConflictError, InvalidStatus, NotFoundError, ValidationError


@pytest.fixture
def columns() -> tuple[Column, ...]:
    return default_columns()


class TestValidate:
    def test_default_columns(self, columns: tuple[Column, ...]) -> None:
        assert [(c.key, c.label, c.order) for c in columns] == [
            ("todo", "To Do", 0),
            ("in-progress", "In Progress", 1),
            ("done", "Done", 2),
        ]

    def test_default_columns_are_fresh_immutable_values(self) -> None:
        first = default_columns()
        second = ColumnRegistry.default_columns()
        assert first == second
        assert isinstance(first, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            first[0].label = "Changed"  # type: ignore[misc]

    def test_duplicate_keys_conflict(self) -> None:
        with pytest.raises(ConflictError, match="todo"):
            ColumnRegistry.validate([{"key": "todo", "order": 0}, {"key": "todo", "order": 1}])

    def test_empty_list_is_validation_error(self) -> None:
        with pytest.raises(ValidationError) as excinfo:
            ColumnRegistry.validate([])
        assert excinfo.value.errors[0]["field"] == "columns"

    def test_every_violation_is_listed(self) -> None:
        with pytest.raises(ValidationError) as excinfo:
            ColumnRegistry.validate(
                [
                    {"key": "bad key", "label": "Bad", "order": 0},
                    {"key": "ok", "label": "  ", "order": -1},
                    {"key": "fine", "label": "Fine", "order": True},
                ]
            )
        fields = [err["field"] for err in excinfo.value.errors]
        assert fields == ["columns.0.key", "columns.1.label", "columns.1.order", "columns.2.order"]

    def test_missing_label_defaults_to_key_and_result_is_sorted(self) -> None:
        result = ColumnRegistry.validate([{"key": "done", "order": 5}, {"key": "todo", "label": "To Do", "order": 0}])
        assert [c.key for c in result] == ["todo", "done"]
        assert result[1].label == "done"

    def test_orders_need_not_be_contiguous(self) -> None:
        result = ColumnRegistry.validate([Column("a", "A", 10), Column("b", "B", 3)])
        assert ColumnRegistry.keys(result) == ["b", "a"]


class TestMutations:
    def test_add_appends_after_highest_order(self, columns: tuple[Column, ...]) -> None:
        result = ColumnRegistry.add(columns, "review", "Review")
        assert ColumnRegistry.keys(result) == ["todo", "in-progress", "done", "review"]
        assert result[-1].order == 3

    def test_add_with_explicit_order(self, columns: tuple[Column, ...]) -> None:
        result = ColumnRegistry.add(columns, "review", "Review", order=1)
        assert "review" in ColumnRegistry.keys(result)

    def test_add_duplicate_conflicts(self, columns: tuple[Column, ...]) -> None:
        with pytest.raises(ConflictError):
            ColumnRegistry.add(columns, "done")

    def test_add_does_not_mutate_input(self, columns: tuple[Column, ...]) -> None:
        ColumnRegistry.add(columns, "review")
        assert len(columns) == 3

    def test_rename_changes_label_only(self, columns: tuple[Column, ...]) -> None:
        result = ColumnRegistry.rename(columns, "todo", "Backlog")
        assert result[0] == Column("todo", "Backlog", 0)
        assert ColumnRegistry.keys(result) == ColumnRegistry.keys(columns)

    def test_rename_unknown_column(self, columns: tuple[Column, ...]) -> None:
        with pytest.raises(NotFoundError):
            ColumnRegistry.rename(columns, "missing", "X")

    def test_reorder(self, columns: tuple[Column, ...]) -> None:
        result = ColumnRegistry.reorder(columns, ["done", "todo", "in-progress"])
        assert ColumnRegistry.keys(result) == ["done", "todo", "in-progress"]
        assert [c.order for c in result] == [0, 1, 2]

    def test_reorder_requires_permutation(self, columns: tuple[Column, ...]) -> None:
        with pytest.raises(ValidationError):
            ColumnRegistry.reorder(columns, ["done", "todo"])
        with pytest.raises(ValidationError):
            ColumnRegistry.reorder(columns, ["done", "done", "todo"])


class TestRemoval:
    def test_plan_with_target(self, columns: tuple[Column, ...]) -> None:
        plan = ColumnRegistry.remove_with_migration(columns, "in-progress", "done")
        assert plan.migrates
        assert plan.target_key == "done"
        assert ColumnRegistry.keys(plan.columns) == ["todo", "done"]

    def test_plan_without_target(self, columns: tuple[Column, ...]) -> None:
        plan = ColumnRegistry.remove_with_migration(columns, "todo")
        assert not plan.migrates

    def test_target_must_exist_and_differ(self, columns: tuple[Column, ...]) -> None:
        with pytest.raises(NotFoundError):
            ColumnRegistry.remove_with_migration(columns, "todo", "review")
        with pytest.raises(ValidationError):
            ColumnRegistry.remove_with_migration(columns, "todo", "todo")

    def test_last_column_cannot_be_removed(self) -> None:
        with pytest.raises(ValidationError):
            ColumnRegistry.remove_with_migration((Column("only", "Only", 0),), "only")

    def test_removed_keys(self, columns: tuple[Column, ...]) -> None:
        assert ColumnRegistry.removed_keys(columns, columns[:1]) == ["in-progress", "done"]


class TestRequireStatus:
    def test_accepts_live_key(self, columns: tuple[Column, ...]) -> None:
        assert ColumnRegistry.require_status(columns, "done") == "done"

    def test_rejects_unknown_key(self, columns: tuple[Column, ...]) -> None:
        with pytest.raises(InvalidStatus) as excinfo:
            ColumnRegistry.require_status(columns, "review")
        assert excinfo.value.code == "VALIDATION_ERROR"
        assert excinfo.value.valid == ["todo", "in-progress", "done"]

"""Tests for entity factories and field merging."""

from datetime import UTC, date, datetime

import pytest

from taskboard.core.ids import CounterIdGenerator
from taskboard.domain.factories import (
    create_column,
    create_project,
    create_task,
    merge_task_fields,
    normalize_task_keys,
)
from taskboard.domain.task import Task, TaskPriority


@pytest.mark.unit
class TestCreate:
    """Tests for entity construction."""

    def test_create_task_defaults(self):
        before = datetime.now(UTC)

        task = create_task("todo", id_generator=CounterIdGenerator("t"))

        assert task.id == "t-1"
        assert task.title == "New task"
        assert task.description == ""
        assert task.priority == TaskPriority.MEDIUM
        assert task.progress == 0
        assert task.assignees == ()
        assert task.created_at >= before

    def test_create_task_overrides_drop_bad_dates(self):
        task = create_task(
            "todo",
            {"title": "Plan", "dueDate": "2024-06-01", "startDate": "soon", "assignees": ["a", "b", "a"]},
            id_generator=CounterIdGenerator(),
        )

        assert task.title == "Plan"
        assert task.due_date == date(2024, 6, 1)
        assert task.start_date is None
        assert task.assignees == ("a", "b")

    def test_create_column_and_project(self):
        ids = CounterIdGenerator("x")

        column = create_column("Blocked", position=4, id_generator=ids)
        project = create_project("Side", id_generator=ids)

        assert (column.id, column.title, column.position, column.task_count) == ("x-1", "Blocked", 4, 0)
        assert (project.id, project.name) == ("x-2", "Side")

    def test_tasks_are_immutable(self):
        task = create_task("todo")

        with pytest.raises(ValueError):
            task.title = "changed"


@pytest.mark.unit
class TestMerge:
    """Tests for best-effort merging."""

    def test_normalize_prefers_canonical_key(self):
        assert normalize_task_keys({"columnId": "a", "column_id": "b", "content": "t"}) == {
            "column_id": "b",
            "title": "t",
        }

    def test_merge_reports_dropped_fields(self):
        task = Task(id="t1", column_id="todo", start_date=date(2024, 1, 1))

        merged, dropped = merge_task_fields(
            task, {"start_date": "invalid-date", "progress": "lots", "id": "x", "bogus": 1, "title": "ok"}
        )

        assert merged.title == "ok"
        assert merged.start_date == date(2024, 1, 1)
        assert merged.progress == 0
        assert sorted(dropped) == ["bogus", "id", "progress", "start_date"]

    def test_merge_without_changes_returns_same_task(self):
        task = Task(id="t1", column_id="todo")

        merged, dropped = merge_task_fields(task, {"bogus": 1})

        assert merged is task
        assert dropped == ["bogus"]

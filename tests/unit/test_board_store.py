"""Tests for the board store."""

import logging
from datetime import date

import pytest
from pydantic import ValidationError

from taskboard.core.config import constants
from taskboard.core.ids import CounterIdGenerator
from taskboard.domain.filter import TaskFilter
from taskboard.domain.task import TaskPriority
from taskboard.services.board_store import BoardStore
from taskboard.services.reconciler import reconcile


def assert_column_invariant(store: BoardStore) -> None:
    """Every task points at an existing column and every count matches the task list."""
    state = store.state
    column_ids = state.column_ids()
    assert all(task.column_id in column_ids for task in state.tasks)
    for column in state.columns:
        assert column.task_count == sum(1 for task in state.tasks if task.column_id == column.id)
    for project in state.projects:
        assert project.task_count == sum(1 for task in state.tasks if task.project_id == project.id)


def column_count(store: BoardStore, column_id: str) -> int:
    return sum(1 for task in store.state.tasks if task.column_id == column_id)


@pytest.mark.unit
class TestTaskOperations:
    """Tests for task writes."""

    def test_seeded_board_shape(self, seeded_store):
        assert len(seeded_store.state.tasks) == 10
        assert column_count(seeded_store, "todo") == 3
        assert_column_invariant(seeded_store)

    def test_move_first_task_to_in_progress(self, seeded_store):
        task0 = seeded_store.state.tasks[0]
        in_progress_before = column_count(seeded_store, "in-progress")

        seeded_store.move_task(task0.id, "in-progress")

        assert column_count(seeded_store, "todo") == 2
        assert column_count(seeded_store, "in-progress") == in_progress_before + 1
        assert seeded_store.get_task_by_id(task0.id).column_id == "in-progress"
        assert seeded_store.get_column_by_id("in-progress").task_count == in_progress_before + 1
        assert_column_invariant(seeded_store)

    def test_move_to_unknown_column_is_noop(self, seeded_store):
        before = seeded_store.state.tasks

        result = seeded_store.move_task("seed-01", "missing")

        assert result == before
        assert seeded_store.get_task_by_id("seed-01").column_id == "todo"

    def test_move_task_to_index_and_reorder(self, seeded_store):
        seeded_store.move_task_to_index("seed-10", "todo", 0)
        assert [t.id for t in seeded_store.get_tasks_by_status("todo")] == ["seed-10", "seed-01", "seed-02", "seed-03"]

        seeded_store.reorder_tasks("todo", 0, 3)
        assert [t.id for t in seeded_store.get_tasks_by_status("todo")] == ["seed-01", "seed-02", "seed-03", "seed-10"]
        assert_column_invariant(seeded_store)

    def test_add_task_uses_default_column_for_unknown_column(self, store):
        task = store.add_task("missing", {"title": "Orphan"})

        assert task.column_id == "todo"
        assert task.title == "Orphan"
        assert task.project_id == constants.DEFAULT_PROJECT_ID
        assert store.state.tasks[-1] == task
        assert store.get_column_by_id("todo").task_count == 1

    def test_add_task_defaults(self, store):
        task = store.add_task("review")

        assert task.id == "id-1"
        assert task.title == constants.DEFAULT_TASK_TITLE
        assert task.description == ""
        assert task.priority == TaskPriority.MEDIUM
        assert task.progress == 0
        assert task.due_date is None

    def test_add_task_cannot_override_placement(self, store):
        task = store.add_task("review", {"column_id": "done", "projectId": "elsewhere"})

        assert task.column_id == "review"
        assert task.project_id == constants.DEFAULT_PROJECT_ID

    def test_delete_task(self, seeded_store):
        assert seeded_store.delete_task("seed-01") is True
        assert seeded_store.get_task_by_id("seed-01") is None
        assert seeded_store.get_column_by_id("todo").task_count == 2
        assert seeded_store.delete_task("seed-01") is False


@pytest.mark.unit
class TestUpdateTask:
    """Tests for the best-effort merge of partial updates."""

    def test_invalid_date_dropped_while_title_applies(self, seeded_store):
        before = seeded_store.get_task_by_id("seed-04")

        updated = seeded_store.update_task("seed-04", {"startDate": "invalid-date", "title": "Renamed"})

        assert updated.title == "Renamed"
        assert updated.start_date == before.start_date == date(2024, 1, 20)

    def test_title_update_changes_only_title(self, seeded_store):
        before = seeded_store.state.tasks

        seeded_store.update_task("seed-05", {"title": "New title"})

        after = seeded_store.state.tasks
        assert len(after) == len(before)
        for old, new in zip(before, after, strict=True):
            if old.id == "seed-05":
                assert new.title == "New title"
                assert new.model_dump(exclude={"title"}) == old.model_dump(exclude={"title"})
            else:
                assert new is old

    def test_unknown_task_returns_none(self, seeded_store):
        before = seeded_store.snapshot()

        assert seeded_store.update_task("missing", {"title": "x"}) is None
        assert seeded_store.snapshot() is before

    def test_column_key_wins_over_status(self, seeded_store):
        updated = seeded_store.update_task("seed-01", {"columnId": "review", "status": "active"})

        assert updated.column_id == "review"

    def test_camel_case_and_date_strings(self, seeded_store):
        updated = seeded_store.update_task("seed-03", {"dueDate": "2024-05-01T12:00:00Z", "startDate": "2024-04-01"})

        assert updated.due_date == date(2024, 5, 1)
        assert updated.start_date == date(2024, 4, 1)

    def test_none_clears_date(self, seeded_store):
        updated = seeded_store.update_task("seed-01", {"due_date": None})

        assert updated.due_date is None

    def test_due_before_start_is_accepted(self, seeded_store):
        updated = seeded_store.update_task("seed-04", {"due_date": "2024-01-01"})

        assert updated.due_date == date(2024, 1, 1)
        assert updated.start_date == date(2024, 1, 20)

    def test_unknown_keys_and_id_are_ignored(self, seeded_store):
        updated = seeded_store.update_task("seed-01", {"id": "hijack", "color": "red", "progress": 30})

        assert updated.id == "seed-01"
        assert updated.progress == 30
        assert not hasattr(updated, "color")

    def test_uncoercible_value_dropped(self, seeded_store):
        updated = seeded_store.update_task("seed-01", {"priority": "critical", "description": "still applied"})

        assert updated.priority == TaskPriority.URGENT
        assert updated.description == "still applied"

    def test_unknown_column_reference_dropped(self, seeded_store):
        updated = seeded_store.update_task("seed-01", {"column_id": "missing", "title": "kept"})

        assert updated.column_id == "todo"
        assert updated.title == "kept"
        assert_column_invariant(seeded_store)

    def test_known_column_reference_moves_task(self, seeded_store):
        updated = seeded_store.update_task("seed-01", {"status": "done"})

        assert updated.column_id == "done"
        assert seeded_store.get_column_by_id("done").task_count == 3
        assert_column_invariant(seeded_store)


@pytest.mark.unit
class TestFilters:
    """Tests for filtered reads."""

    def test_search_is_case_insensitive_on_store(self, seeded_store):
        seeded_store.set_filters({"search": "BUG", "priorities": [], "statuses": [], "dateRange": {}})

        titles = [task.title for task in seeded_store.get_filtered_tasks()]
        assert "Bug Fix: Login validation issue" in titles
        assert "Deploy to Production" not in titles

    def test_tasks_by_status_applies_filter(self, seeded_store):
        seeded_store.set_filters(TaskFilter(priorities={TaskPriority.HIGH}))

        assert [task.id for task in seeded_store.get_tasks_by_status("in-progress")] == ["seed-04", "seed-06"]
        assert seeded_store.get_tasks_by_status("todo") == []

    def test_clear_filters(self, seeded_store):
        seeded_store.set_filters({"statuses": ["done"]})
        seeded_store.clear_filters()

        assert seeded_store.state.filters.is_empty()
        assert len(seeded_store.get_filtered_tasks()) == 10

    def test_unknown_priority_in_filter_raises(self, seeded_store):
        with pytest.raises(ValidationError):
            seeded_store.set_filters({"priorities": ["critical"]})

    def test_filtered_tasks_only_include_current_project(self, seeded_store):
        project = seeded_store.add_project("Side project")
        seeded_store.set_current_project(project.id)
        task = seeded_store.add_task("todo", {"title": "Side task"})

        assert seeded_store.get_filtered_tasks() == [task]
        assert task.project_id == project.id


@pytest.mark.unit
class TestColumns:
    """Tests for column operations."""

    def test_delete_column_reassigns_tasks_to_default(self, seeded_store):
        moving = [task.id for task in seeded_store.state.tasks if task.column_id == "in-progress"]
        assert len(moving) == 3

        assert seeded_store.delete_column("in-progress") is True

        assert all(seeded_store.get_task_by_id(task_id).column_id == "todo" for task_id in moving)
        assert len(seeded_store.state.tasks) == 10
        assert "in-progress" not in seeded_store.state.column_ids()
        assert [column.position for column in seeded_store.state.columns] == [0, 1, 2]
        assert_column_invariant(seeded_store)

    def test_default_column_cannot_be_deleted(self, seeded_store):
        assert seeded_store.delete_column("todo") is False
        assert "todo" in seeded_store.state.column_ids()

    def test_delete_unknown_column(self, seeded_store):
        assert seeded_store.delete_column("missing") is False

    def test_add_rename_and_move_column(self, store):
        column = store.add_column("Blocked")
        assert column.position == 4

        renamed = store.rename_column(column.id, "On hold")
        assert renamed.title == "On hold"
        assert store.rename_column("missing", "x") is None

        columns = store.move_column(column.id, 1)
        assert [c.id for c in columns] == ["todo", column.id, "in-progress", "review", "done"]

    def test_moving_default_column_changes_default(self, seeded_store):
        seeded_store.move_column("todo", 3)

        assert seeded_store.state.default_column_id == "in-progress"
        assert seeded_store.delete_column("todo") is True
        assert column_count(seeded_store, "in-progress") == 6
        assert_column_invariant(seeded_store)


@pytest.mark.unit
class TestProjects:
    """Tests for project operations."""

    def test_delete_project_moves_tasks_to_default(self, seeded_store):
        project = seeded_store.add_project("Side")
        seeded_store.set_current_project(project.id)
        seeded_store.add_task("todo", {"title": "Side task"})

        assert seeded_store.delete_project(project.id) is True

        assert seeded_store.state.current_project_id == constants.DEFAULT_PROJECT_ID
        assert all(task.project_id == constants.DEFAULT_PROJECT_ID for task in seeded_store.state.tasks)
        assert seeded_store.get_project_by_id(constants.DEFAULT_PROJECT_ID).task_count == 11
        assert_column_invariant(seeded_store)

    def test_default_project_cannot_be_deleted(self, seeded_store):
        assert seeded_store.delete_project(constants.DEFAULT_PROJECT_ID) is False

    def test_unknown_project_operations(self, seeded_store):
        assert seeded_store.delete_project("missing") is False
        assert seeded_store.set_current_project("missing") is False
        assert seeded_store.rename_project("missing", "x") is None

    def test_rename_project(self, seeded_store):
        renamed = seeded_store.rename_project(constants.DEFAULT_PROJECT_ID, "Team board")

        assert renamed.name == "Team board"
        assert seeded_store.get_project_by_id(constants.DEFAULT_PROJECT_ID).name == "Team board"


@pytest.mark.unit
class TestBoard:
    """Tests for board-wide operations."""

    def test_clear_board_only_touches_current_project(self, seeded_store):
        project = seeded_store.add_project("Side")
        seeded_store.set_current_project(project.id)
        seeded_store.add_task("todo")

        assert seeded_store.clear_board() == 1
        assert len(seeded_store.state.tasks) == 10

    def test_clear_board_logs_structured_fields(self, seeded_store, caplog):
        with caplog.at_level(logging.INFO, logger="taskboard.services.board_store"):
            seeded_store.clear_board()

        record = next(r for r in caplog.records if r.getMessage() == "Board cleared")
        assert (record.project_id, record.removed) == (constants.DEFAULT_PROJECT_ID, 10)

    def test_counter_ids_continue_after_reload(self):
        first = BoardStore(reconcile({}, seed_example_tasks=False), id_generator=CounterIdGenerator())
        saved = first.add_task("todo", {"title": "Saved"})

        reloaded = BoardStore(reconcile(first.to_raw(), seed_example_tasks=False), id_generator=CounterIdGenerator())
        added = reloaded.add_task("todo", {"title": "New"})

        assert saved.id == "id-1"
        assert added.id == "id-2"
        reloaded.delete_task(added.id)
        assert [task.id for task in reloaded.state.tasks] == ["id-1"]

    def test_get_stats(self, seeded_store):
        stats = seeded_store.get_stats(today=date(2024, 2, 7))

        assert stats.total == 10
        assert [(c.column_id, c.task_count) for c in stats.by_column] == [
            ("todo", 3),
            ("in-progress", 3),
            ("review", 2),
            ("done", 2),
        ]
        assert stats.by_priority == {"urgent": 1, "high": 3, "medium": 3, "low": 3}
        assert stats.completed == 2
        # seed-01 (due Feb 5) and seed-07 (due Jan 31); done tasks never count
        assert stats.overdue == 2

    def test_snapshot_and_restore(self, seeded_store):
        snapshot = seeded_store.snapshot()

        seeded_store.delete_task("seed-01")
        seeded_store.restore(snapshot)

        assert seeded_store.get_task_by_id("seed-01") is not None
        assert seeded_store.state == snapshot

    def test_to_raw_leaves_out_counts(self, seeded_store):
        raw = seeded_store.to_raw()

        assert raw["version"] == constants.STATE_SCHEMA_VERSION
        assert len(raw["tasks"]) == 10
        assert all("task_count" not in column for column in raw["columns"])
        assert all("task_count" not in project for project in raw["projects"])
        assert raw["tasks"][0]["due_date"] == "2024-02-05"

    def test_column_invariant_after_mixed_operations(self, seeded_store):
        column = seeded_store.add_column("Blocked")
        seeded_store.move_task("seed-02", column.id, before_task_id="seed-01")
        seeded_store.add_task(column.id)
        seeded_store.update_task("seed-05", {"column_id": column.id})
        seeded_store.delete_column("review")
        seeded_store.reorder_tasks(column.id, 0, 2)
        seeded_store.delete_column(column.id)
        seeded_store.delete_task("seed-09")

        assert_column_invariant(seeded_store)
        assert len(seeded_store.state.tasks) == 10

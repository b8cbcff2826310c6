"""Tests for move and reorder primitives."""

import pytest

from taskboard.domain.column import Column
from taskboard.services import ordering
from taskboard.services.seed_data import default_columns


def _ids(tasks) -> list[str]:
    return [task.id for task in tasks]


@pytest.fixture
def columns() -> list[Column]:
    return [Column.model_validate(column) for column in default_columns()]


@pytest.mark.unit
class TestMoveTask:
    """Tests for anchor-based moves over the global order."""

    def test_cross_column_move_without_anchor_appends(self, sample_tasks):
        result = ordering.move_task(sample_tasks, "a", "in-progress")

        assert _ids(result) == ["b", "c", "d", "e", "a"]
        assert result[-1].column_id == "in-progress"
        assert _ids(ordering.column_slice(result, "in-progress")) == ["c", "e", "a"]

    def test_move_before_anchor(self, sample_tasks):
        result = ordering.move_task(sample_tasks, "a", "in-progress", before_task_id="e")

        assert _ids(result) == ["b", "c", "d", "a", "e"]
        assert _ids(ordering.column_slice(result, "in-progress")) == ["c", "a", "e"]

    def test_unknown_anchor_appends(self, sample_tasks):
        result = ordering.move_task(sample_tasks, "b", "done", before_task_id="missing")

        assert _ids(result) == ["a", "c", "d", "e", "b"]
        assert result[-1].column_id == "done"

    def test_unknown_task_is_noop(self, sample_tasks):
        assert ordering.move_task(sample_tasks, "missing", "done") == tuple(sample_tasks)

    def test_input_is_not_mutated(self, sample_tasks):
        before = list(sample_tasks)

        ordering.move_task(sample_tasks, "a", "done")

        assert sample_tasks == before
        assert sample_tasks[0].column_id == "todo"

    def test_moving_to_own_slot_is_noop_for_every_task(self, sample_tasks):
        original = tuple(sample_tasks)
        for task in sample_tasks:
            column = ordering.column_slice(sample_tasks, task.column_id)
            position = _ids(column).index(task.id)

            assert ordering.move_task(sample_tasks, task.id, task.column_id, before_task_id=task.id) == original
            assert ordering.move_task(sample_tasks, task.id, task.column_id) == original
            assert ordering.move_task_to_index(sample_tasks, task.id, task.column_id, position) == original


@pytest.mark.unit
class TestIndexMoves:
    """Tests for index-based drops and reorders."""

    def test_anchor_for_index_inside_column(self, sample_tasks):
        assert ordering.anchor_for_index(sample_tasks, "a", "in-progress", 0) == "c"
        assert ordering.anchor_for_index(sample_tasks, "a", "in-progress", 1) == "e"

    def test_anchor_for_index_past_end_of_last_column_segment(self, sample_tasks):
        # "e" is the last task of the board, nothing follows it
        assert ordering.anchor_for_index(sample_tasks, "a", "in-progress", 10) is None

    def test_anchor_for_index_past_end_anchors_on_following_task(self, sample_tasks):
        assert ordering.anchor_for_index(sample_tasks, "c", "todo", 10) == "d"
        assert ordering.anchor_for_index(sample_tasks, "d", "todo", 10) == "c"

    def test_anchor_for_index_on_empty_column(self, sample_tasks):
        assert ordering.anchor_for_index(sample_tasks, "a", "review", 0) is None

    def test_move_to_end_of_column_keeps_column_contiguous_order(self, sample_tasks):
        result = ordering.move_task_to_index(sample_tasks, "d", "todo", 10)

        assert _ids(result) == ["a", "b", "d", "c", "e"]
        assert _ids(ordering.column_slice(result, "todo")) == ["a", "b", "d"]

    def test_move_to_index_zero(self, sample_tasks):
        result = ordering.move_task_to_index(sample_tasks, "e", "in-progress", 0)

        assert _ids(ordering.column_slice(result, "in-progress")) == ["e", "c"]

    def test_reorder_within_column_forward(self, sample_tasks):
        result = ordering.reorder_within_column(sample_tasks, "in-progress", 0, 1)

        assert _ids(ordering.column_slice(result, "in-progress")) == ["e", "c"]
        assert len(result) == len(sample_tasks)

    def test_reorder_within_column_backward(self, sample_tasks):
        result = ordering.reorder_within_column(sample_tasks, "todo", 1, 0)

        assert _ids(ordering.column_slice(result, "todo")) == ["b", "a"]

    def test_reorder_same_index_is_noop(self, sample_tasks):
        assert ordering.reorder_within_column(sample_tasks, "todo", 1, 1) == tuple(sample_tasks)

    def test_reorder_out_of_range_is_noop(self, sample_tasks):
        assert ordering.reorder_within_column(sample_tasks, "todo", 5, 0) == tuple(sample_tasks)


@pytest.mark.unit
class TestMoveColumn:
    """Tests for column reordering."""

    def test_move_column_to_front(self, columns):
        result = ordering.move_column(columns, "done", 0)

        assert [column.id for column in result] == ["done", "todo", "in-progress", "review"]
        assert [column.position for column in result] == [0, 1, 2, 3]

    def test_target_index_is_clamped(self, columns):
        result = ordering.move_column(columns, "todo", 99)

        assert [column.id for column in result] == ["in-progress", "review", "done", "todo"]
        assert result[-1].position == 3

    def test_unknown_column_is_noop(self, columns):
        assert ordering.move_column(columns, "missing", 0) == tuple(columns)

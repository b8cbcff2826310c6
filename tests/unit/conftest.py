"""Pytest configuration and fixtures for unit tests."""

from datetime import date

import pytest

from taskboard.core.ids import CounterIdGenerator
from taskboard.domain.task import Task, TaskPriority
from taskboard.services.board_store import BoardStore
from taskboard.services.reconciler import reconcile
from tests.unit.mocks import InMemoryStateStore


@pytest.fixture
def id_generator() -> CounterIdGenerator:
    """Deterministic ids: id-1, id-2, ..."""
    return CounterIdGenerator()


@pytest.fixture
def store(id_generator: CounterIdGenerator) -> BoardStore:
    """Empty board with the default columns and project."""
    return BoardStore(id_generator=id_generator)


@pytest.fixture
def seeded_store(id_generator: CounterIdGenerator) -> BoardStore:
    """Board reconciled from nothing: default columns plus the 10 example tasks."""
    return BoardStore(reconcile({}, id_generator=id_generator, seed_example_tasks=True), id_generator=id_generator)


@pytest.fixture
def in_memory_state_store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def sample_tasks() -> list[Task]:
    """A small, varied task list for filter and ordering tests."""
    return [
        Task(
            id="a",
            title="Fix login bug",
            description="Password field accepts empty input",
            column_id="todo",
            priority=TaskPriority.URGENT,
            due_date=date(2024, 2, 5),
        ),
        Task(
            id="b",
            title="Write docs",
            description="API reference",
            column_id="todo",
            priority=TaskPriority.LOW,
        ),
        Task(
            id="c",
            title="Drag and drop",
            description="Reorder cards",
            column_id="in-progress",
            priority=TaskPriority.HIGH,
            start_date=date(2024, 1, 20),
            due_date=date(2024, 2, 10),
        ),
        Task(
            id="d",
            title="Release",
            description="Deploy the BUGFIX build",
            column_id="done",
            priority=TaskPriority.HIGH,
            due_date=date(2024, 1, 12),
        ),
        Task(
            id="e",
            title="Review schema",
            column_id="in-progress",
            priority=TaskPriority.MEDIUM,
            due_date=date(2024, 3, 1),
        ),
    ]

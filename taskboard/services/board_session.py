"""Async session that keeps a board store and its durable copy in step.

Every write is applied to the in-memory store first so readers see it at
once, then the new raw state is saved. If the save fails the store is
restored to the snapshot taken before the write and ``PersistenceError`` is
raised. Writes are serialized by one lock; reads never wait on it.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from taskboard.core.errors import PersistenceError, StateStoreError
from taskboard.core.ids import IdGenerator
from taskboard.core.logging import span
from taskboard.domain.board import BoardState
from taskboard.domain.column import Column, Project
from taskboard.domain.filter import TaskFilter
from taskboard.domain.task import Task
from taskboard.domain.update_models import validate_column_title, validate_task_edit
from taskboard.models.service_models import BoardStats
from taskboard.services.board_store import BoardStore
from taskboard.services.reconciler import reconcile
from taskboard.services.state_stores import StateStore


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoardSession:
    """A board store bound to a durable state store."""

    def __init__(self, store: BoardStore, state_store: StateStore) -> None:
        self.store = store
        self.state_store = state_store
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        state_store: StateStore,
        *,
        id_generator: IdGenerator | None = None,
        seed_example_tasks: bool | None = None,
    ) -> "BoardSession":
        """Load, reconcile and wrap the board held by ``state_store``.

        When reconciliation changed the loaded state (first run, migration or
        repair) the result is written back. A failure to write it back is
        logged and the session still opens.

        Raises:
            StateStoreError: If the state store cannot be read
        """
        with span("board_session.open"):
            raw = await state_store.load()
            reconcile_kwargs: dict[str, Any] = {"seed_example_tasks": seed_example_tasks}
            if id_generator is not None:
                reconcile_kwargs["id_generator"] = id_generator
            state = reconcile(raw, **reconcile_kwargs)
            session = cls(BoardStore(state, id_generator=id_generator), state_store)

            reconciled = session.store.to_raw()
            if raw != reconciled:
                if await session._save():
                    logger.info("Saved reconciled board state")
                else:
                    logger.warning("Could not save reconciled board state; it will be saved on the next change")
            return session

    @property
    def state(self) -> BoardState:
        return self.store.state

    async def _save(self) -> bool:
        try:
            return await self.state_store.save(self.store.to_raw())
        except StateStoreError as e:
            logger.error("State store raised during save", extra={"error": str(e)})
            return False

    async def apply(self, operation: str, change: Callable[[BoardStore], T]) -> T:
        """Apply ``change`` to the store optimistically, then persist it.

        Args:
            operation: Name used in logs, spans and the error message
            change: Function that performs the write on the store

        Returns:
            Whatever ``change`` returned

        Raises:
            PersistenceError: If the save failed; the store has been rolled back
        """
        async with self._lock:
            with span(f"board_session.{operation}"):
                before = self.store.snapshot()
                result = change(self.store)
                if self.store.snapshot() == before:
                    return result

                if not await self._save():
                    self.store.restore(before)
                    logger.error("Save failed, rolled back change", extra={"operation": operation})
                    raise PersistenceError(operation)
                return result

    # --- reads ---------------------------------------------------------------

    def get_task_by_id(self, task_id: str) -> Task | None:
        return self.store.get_task_by_id(task_id)

    def get_filtered_tasks(self) -> list[Task]:
        return self.store.get_filtered_tasks()

    def get_tasks_by_status(self, column_id: str) -> list[Task]:
        return self.store.get_tasks_by_status(column_id)

    def get_stats(self) -> BoardStats:
        return self.store.get_stats()

    # --- writes --------------------------------------------------------------

    async def add_task(self, column_id: str | None = None, fields: Mapping[str, Any] | None = None) -> Task:
        return await self.apply("add_task", lambda store: store.add_task(column_id, fields))

    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Task | None:
        return await self.apply("update_task", lambda store: store.update_task(task_id, fields))

    async def edit_task(self, task_id: str, payload: Mapping[str, Any]) -> Task | None:
        """Validate a user edit, then apply it.

        Raises:
            EditValidationError: If the edit breaks a business rule
        """
        update = validate_task_edit(self.store.get_task_by_id(task_id), payload)
        return await self.update_task(task_id, update)

    async def delete_task(self, task_id: str) -> bool:
        return await self.apply("delete_task", lambda store: store.delete_task(task_id))

    async def move_task(
        self, task_id: str, target_column_id: str, before_task_id: str | None = None
    ) -> tuple[Task, ...]:
        return await self.apply("move_task", lambda store: store.move_task(task_id, target_column_id, before_task_id))

    async def move_task_to_index(self, task_id: str, column_id: str, index: int) -> tuple[Task, ...]:
        return await self.apply("move_task_to_index", lambda store: store.move_task_to_index(task_id, column_id, index))

    async def reorder_tasks(self, column_id: str, start_index: int, end_index: int) -> tuple[Task, ...]:
        return await self.apply("reorder_tasks", lambda store: store.reorder_tasks(column_id, start_index, end_index))

    async def set_filters(self, filters: TaskFilter | Mapping[str, Any]) -> TaskFilter:
        return await self.apply("set_filters", lambda store: store.set_filters(filters))

    async def clear_filters(self) -> None:
        await self.apply("clear_filters", lambda store: store.clear_filters())

    async def add_column(self, title: str) -> Column:
        title = validate_column_title(title)
        return await self.apply("add_column", lambda store: store.add_column(title))

    async def rename_column(self, column_id: str, title: str) -> Column | None:
        title = validate_column_title(title)
        return await self.apply("rename_column", lambda store: store.rename_column(column_id, title))

    async def delete_column(self, column_id: str) -> bool:
        return await self.apply("delete_column", lambda store: store.delete_column(column_id))

    async def move_column(self, column_id: str, target_index: int) -> tuple[Column, ...]:
        return await self.apply("move_column", lambda store: store.move_column(column_id, target_index))

    async def add_project(self, name: str) -> Project:
        return await self.apply("add_project", lambda store: store.add_project(name))

    async def rename_project(self, project_id: str, name: str) -> Project | None:
        return await self.apply("rename_project", lambda store: store.rename_project(project_id, name))

    async def delete_project(self, project_id: str) -> bool:
        return await self.apply("delete_project", lambda store: store.delete_project(project_id))

    async def set_current_project(self, project_id: str) -> bool:
        return await self.apply("set_current_project", lambda store: store.set_current_project(project_id))

    async def clear_board(self) -> int:
        return await self.apply("clear_board", lambda store: store.clear_board())

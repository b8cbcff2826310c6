"""In-memory state stores for unit testing."""

import copy
from typing import Any

from taskboard.core.errors import StateStoreError


class InMemoryStateStore:
    """State store that keeps the raw document in memory.

    Records every saved document so tests can inspect what was persisted.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._raw = copy.deepcopy(initial)
        self.saved: list[dict[str, Any]] = []

    @property
    def raw(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._raw)

    async def load(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._raw)

    async def save(self, raw: dict[str, Any]) -> bool:
        self._raw = copy.deepcopy(raw)
        self.saved.append(copy.deepcopy(raw))
        return True


class FailingStateStore(InMemoryStateStore):
    """State store whose saves fail once ``fail_saves`` is switched on.

    With ``raise_on_save`` the failure is raised as ``StateStoreError``
    instead of being reported by returning False.
    """

    def __init__(self, initial: dict[str, Any] | None = None, *, raise_on_save: bool = False):
        super().__init__(initial)
        self.fail_saves = False
        self.raise_on_save = raise_on_save
        self.failed_attempts = 0

    async def save(self, raw: dict[str, Any]) -> bool:
        if not self.fail_saves:
            return await super().save(raw)
        self.failed_attempts += 1
        if self.raise_on_save:
            raise StateStoreError("disk full")
        return False

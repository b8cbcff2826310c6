"""Id generators for tasks, columns and projects.

An id generator is any zero-argument callable returning a new string id.
UUIDs are collision-free by construction; counter ids are once the
generator has been advanced past the ids a loaded board already uses.
"""

import uuid
from collections.abc import Callable, Iterable

from taskboard.core.config import settings


IdGenerator = Callable[[], str]


def uuid_id_generator() -> str:
    """Return a random UUID4 as a hex string."""
    return uuid.uuid4().hex


class CounterIdGenerator:
    """Monotonic counter ids such as ``task-1``, ``task-2``.

    Unique within one board once ``advance_past`` has seen the board's
    existing ids; use it for deterministic tests or single-writer embeddings
    that never merge boards.
    """

    def __init__(self, prefix: str = "id", start: int = 1) -> None:
        self._prefix = prefix
        self._next = start

    def __call__(self) -> str:
        value = self._next
        self._next += 1
        return f"{self._prefix}-{value}"

    def advance_past(self, ids: Iterable[str]) -> None:
        """Continue numbering after the highest ``<prefix>-N`` id in ``ids``."""
        marker = f"{self._prefix}-"
        numbers = [int(i[len(marker) :]) for i in ids if i.startswith(marker) and i[len(marker) :].isdigit()]
        if numbers:
            self._next = max(self._next, max(numbers) + 1)


def default_id_generator() -> IdGenerator:
    """Build the id generator selected by ``settings.id_scheme``."""
    if settings.id_scheme == "counter":
        return CounterIdGenerator()
    return uuid_id_generator

"""Task filter models.

A filter is a conjunction of clauses. Empty clauses impose no constraint,
so ``TaskFilter()`` matches every task.
"""

from datetime import date

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

from taskboard.core.dates import parse_calendar_date
from taskboard.domain.task import TaskPriority


class DateRange(BaseModel):
    """Due-date clause of a filter."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start: date | None = Field(default=None, description="Earliest allowed due date")
    end: date | None = Field(default=None, description="Latest allowed due date")
    has_due_date: bool = Field(
        default=False,
        validation_alias=AliasChoices("has_due_date", "hasDueDate"),
        description="Exclude tasks without a due date",
    )

    @field_validator("start", "end", mode="before")
    @classmethod
    def _lenient_date(cls, v: object) -> date | None:
        # Unparsable bounds are treated as unset
        return parse_calendar_date(v)


class TaskFilter(BaseModel):
    """Conjunctive multi-clause predicate over tasks."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    search: str = Field(default="", description="Case-insensitive substring of title or description")
    priorities: frozenset[TaskPriority] = Field(default=frozenset(), description="Allowed priorities (empty = any)")
    statuses: frozenset[str] = Field(default=frozenset(), description="Allowed column IDs (empty = any)")
    date_range: DateRange = Field(
        default_factory=DateRange,
        validation_alias=AliasChoices("date_range", "dateRange"),
        description="Due-date clause",
    )

    @field_validator("search", mode="before")
    @classmethod
    def _none_search(cls, v: object) -> object:
        return "" if v is None else v

    @field_validator("date_range", mode="before")
    @classmethod
    def _none_range(cls, v: object) -> object:
        return {} if v is None else v

    @field_serializer("priorities", "statuses")
    def _sorted(self, v: frozenset[str]) -> list[str]:
        return sorted(str(item) for item in v)

    def is_empty(self) -> bool:
        """Return True if no clause constrains the result."""
        return (
            not self.search
            and not self.priorities
            and not self.statuses
            and self.date_range.start is None
            and self.date_range.end is None
            and not self.date_range.has_due_date
        )

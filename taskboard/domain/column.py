"""Column and project domain models."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class Column(BaseModel):
    """An ordered workflow stage holding zero or more tasks."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Column ID (slug or generated)")
    title: str = Field(..., description="Column title shown in the header")
    position: int = Field(default=0, description="Ordinal position on the board")
    task_count: int = Field(default=0, description="Derived number of tasks in the column")


class Project(BaseModel):
    """A workspace grouping tasks under one board."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Project ID")
    name: str = Field(..., description="Project display name")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), description="Creation timestamp")
    task_count: int = Field(default=0, description="Derived number of tasks in the project")

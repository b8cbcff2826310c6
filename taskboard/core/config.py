"""Configuration management for taskboard."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Durable state backend
    state_backend: Literal["json", "sqlite", "http"] = Field(
        default="json", description="Where the board state is persisted"
    )
    state_file_path: str = Field(default="./data/board.json", description="JSON state file for the json backend")
    sqlite_db_path: str = Field(default="./data/taskboard.db", description="SQLite file for the sqlite backend")
    board_id: str = Field(default="main", description="Key under which the board state is stored")

    # Remote state service (http backend)
    remote_state_url: str | None = Field(default=None, description="Base URL of the remote board state service")
    remote_api_key: str | None = Field(default=None, description="API key for the remote board state service")
    save_max_retries: int = Field(default=3, description="Attempts per remote save before reporting failure")
    save_retry_delay_seconds: float = Field(default=0.5, description="Base delay for exponential save backoff")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Entity defaults
    id_scheme: Literal["uuid", "counter"] = Field(default="uuid", description="Id generator used for new entities")
    seed_example_tasks: bool = Field(
        default=True, description="Install example tasks when a loaded board has no tasks"
    )
    task_title_max_length: int = Field(default=200, description="Maximum task title length at the edit boundary")
    column_title_max_length: int = Field(default=50, description="Maximum column title length at the edit boundary")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Default project (always present, never deletable)
    DEFAULT_PROJECT_ID: str = "default"
    DEFAULT_PROJECT_NAME: str = "My Board"

    # Entity defaults
    DEFAULT_TASK_TITLE: str = "New task"
    DEFAULT_TASK_DESCRIPTION: str = ""
    PROGRESS_MIN: int = 0
    PROGRESS_MAX: int = 100

    # Remote state service
    API_TIMEOUT_SECONDS: int = 10
    HTTP_NOT_FOUND: int = 404

    # Persisted state format
    STATE_SCHEMA_VERSION: int = 2

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()

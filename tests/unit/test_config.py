"""Tests for configuration validation."""

import pytest
from pydantic import ValidationError

from taskboard.core.config import Constants, Settings


def test_require_credential_with_valid_value() -> None:
    """Test require_credential returns value when credential is set."""
    settings = Settings(remote_state_url="https://boards.example.com")

    assert settings.require_credential("remote_state_url", "Remote state service") == "https://boards.example.com"


def test_require_credential_with_none_raises_error() -> None:
    """Test require_credential raises ValueError when credential is None."""
    settings = Settings(remote_state_url=None)

    with pytest.raises(ValueError, match="Remote state service credential not configured"):
        settings.require_credential("remote_state_url", "Remote state service")


def test_require_credential_error_message_includes_field_name() -> None:
    """Test error message includes the environment variable name."""
    settings = Settings(remote_api_key="")

    with pytest.raises(ValueError, match="REMOTE_API_KEY"):
        settings.require_credential("remote_api_key", "Remote state service")


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test settings pick up environment variables case-insensitively."""
    monkeypatch.setenv("STATE_BACKEND", "sqlite")
    monkeypatch.setenv("SEED_EXAMPLE_TASKS", "false")
    monkeypatch.setenv("ID_SCHEME", "counter")

    settings = Settings()

    assert settings.state_backend == "sqlite"
    assert settings.seed_example_tasks is False
    assert settings.id_scheme == "counter"


def test_invalid_backend_rejected() -> None:
    """Test unknown state backends fail validation."""
    with pytest.raises(ValidationError):
        Settings(state_backend="redis")


def test_constants() -> None:
    assert Constants.DEFAULT_PROJECT_ID == "default"
    assert Constants.PROGRESS_MIN == 0
    assert Constants.PROGRESS_MAX == 100

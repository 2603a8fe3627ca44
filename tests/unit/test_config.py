"""Unit tests for configuration management."""

import os
from collections.abc import Generator

import pytest
from pydantic import ValidationError

from services.shared.config import Settings, get_settings


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables before and after test."""
    original_env = dict(os.environ)
    env_vars = [k for k in os.environ if k.upper().startswith("APP_")]
    for var in env_vars:
        del os.environ[var]
    yield
    os.environ.clear()
    os.environ.update(original_env)


def test_settings_defaults(clean_env: None) -> None:
    """Test that settings have correct default values."""
    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.environment == "development"
    assert settings.log_level == "INFO"
    assert settings.service_name == "yield-invoicing"
    assert settings.service_version == "0.1.0"
    assert settings.pb_url == "http://localhost:8090"
    assert settings.pb_admin_email == ""
    assert settings.harvest_base_url == "https://api.harvestapp.com/v2"
    assert settings.harvest_page_size == 100
    assert settings.import_due_days == 30
    assert settings.import_file_marker == "harvest"
    assert settings.import_default_file == "invoices.csv"


def test_settings_from_env_vars(clean_env: None) -> None:
    """Test that settings can be overridden via environment variables."""
    os.environ["APP_ENVIRONMENT"] = "production"
    os.environ["APP_PB_URL"] = "http://pocketbase:8090"
    os.environ["APP_PB_ADMIN_EMAIL"] = "admin@example.com"
    os.environ["APP_IMPORT_DUE_DAYS"] = "14"

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.environment == "production"
    assert settings.pb_url == "http://pocketbase:8090"
    assert settings.pb_admin_email == "admin@example.com"
    assert settings.import_due_days == 14


def test_settings_case_insensitive(clean_env: None) -> None:
    """Test that environment variables are case insensitive."""
    os.environ["app_log_level"] = "DEBUG"

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.log_level == "DEBUG"


def test_harvest_page_size_bounds(clean_env: None) -> None:
    """Harvest rejects page sizes above 2000, so the setting does too."""
    with pytest.raises(ValidationError):
        Settings(harvest_page_size=0, _env_file=None)  # type: ignore[call-arg]
    with pytest.raises(ValidationError):
        Settings(harvest_page_size=2001, _env_file=None)  # type: ignore[call-arg]


def test_get_settings_factory(clean_env: None) -> None:
    """Test that factory function returns Settings instance."""
    settings = get_settings()

    assert isinstance(settings, Settings)
    assert settings.service_name == "yield-invoicing"

"""Shared fixtures for unit tests."""

from datetime import datetime

import pytest

from services.shared.config import Settings
from tests.unit.fakes import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    """Create an empty in-memory record store."""
    return InMemoryStore()


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        pb_url="http://pocketbase.test",
        pb_admin_email="admin@example.com",
        pb_admin_password="secret",
        harvest_account_id="12345",
        harvest_access_token="token-abc",
        harvest_base_url="https://harvest.test/v2",
        harvest_page_size=2,
    )


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for status derivation."""
    return datetime(2024, 6, 1, 12, 0, 0)

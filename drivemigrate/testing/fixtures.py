"""Pytest fixtures for drivemigrate testing.

To use these fixtures, add to your conftest.py:

    pytest_plugins = ["drivemigrate.testing.fixtures"]
"""

import pytest

from drivemigrate.core.settings import MigrationSettings
from drivemigrate.testing.mocks import (
    FakeFileService,
    FakeSearchService,
    InMemoryDatabase,
)
from drivemigrate.testing.utils import TestResources, create_test_settings


@pytest.fixture
def migration_settings() -> MigrationSettings:
    """Provide test settings that do not read the environment."""
    return create_test_settings()


@pytest.fixture
def file_db() -> InMemoryDatabase:
    """Provide an in-memory File-Service database with the legacy unique index."""
    db = InMemoryDatabase("files")
    db["files"].seed_index(
        "name_1_parent_1_ownerID_1", ["name", "parent", "ownerID"], unique=True
    )
    yield db
    db.clear()


@pytest.fixture
def permission_db() -> InMemoryDatabase:
    """Provide an in-memory Permission-Service database."""
    db = InMemoryDatabase("permissions")
    yield db
    db.clear()


@pytest.fixture
def file_service() -> FakeFileService:
    """Provide a File-Service stand-in."""
    return FakeFileService()


@pytest.fixture
def search_service() -> FakeSearchService:
    """Provide a Search-Service stand-in."""
    return FakeSearchService()


@pytest.fixture
def resources(file_db, permission_db, file_service, search_service) -> TestResources:
    """Provide MigrationResources-like handles wired to the other fixtures."""
    res = TestResources()
    res.file_db = file_db
    res.search_file_db = file_db
    res.permission_db = permission_db
    res.file_service = file_service
    res.search_service = search_service
    return res

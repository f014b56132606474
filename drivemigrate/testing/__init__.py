"""Testing utilities for drivemigrate.

This module provides in-memory MongoDB collections, fake remote services
and pytest fixtures so migrations can be exercised without a cluster.

Usage in conftest.py:
    pytest_plugins = ["drivemigrate.testing.fixtures"]

Or build the fakes directly:
    from drivemigrate.testing import InMemoryDatabase, FakeFileService
"""

from drivemigrate.testing.mocks import (
    FakeFileService,
    FakeSearchService,
    InMemoryCollection,
    InMemoryDatabase,
    mock_mongo_database,
)
from drivemigrate.testing.utils import MigrationTestCase, TestResources, create_test_settings

__all__ = [
    "FakeFileService",
    "FakeSearchService",
    "InMemoryCollection",
    "InMemoryDatabase",
    "mock_mongo_database",
    "MigrationTestCase",
    "TestResources",
    "create_test_settings",
]

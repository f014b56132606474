"""Testing utilities for drivemigrate."""

from unittest import IsolatedAsyncioTestCase

from drivemigrate.core.settings import MigrationSettings
from drivemigrate.migrations.base import RuleSelection
from drivemigrate.migrations.runner import MigrationRunner
from drivemigrate.testing.mocks import (
    FakeFileService,
    FakeSearchService,
    InMemoryDatabase,
)


def create_test_settings(**overrides) -> MigrationSettings:
    """Create settings for testing without reading the environment.

    Args:
        **overrides: Settings to override

    Returns:
        MigrationSettings instance configured for testing
    """
    values = {
        "file_mongo_conn_string": "mongodb://localhost:27017/files",
        "permission_mongo_conn_string": "mongodb://localhost:27017/permissions",
        "file_service_url": "http://file-service.test",
        "search_service_url": "http://search-service.test",
    }
    values.update(overrides)
    return MigrationSettings(_env_file=None, **values)


class TestResources:
    """MigrationResources look-alike built from in-memory fakes."""

    __test__ = False

    def __init__(self):
        self.file_db = InMemoryDatabase("files")
        # The search job reads the same store through its own handle
        self.search_file_db = self.file_db
        self.permission_db = InMemoryDatabase("permissions")
        self.file_service = FakeFileService()
        self.search_service = FakeSearchService()

    def clear(self) -> None:
        self.file_db.clear()
        self.permission_db.clear()


class MigrationTestCase(IsolatedAsyncioTestCase):
    """Base test case class for drivemigrate tests.

    This class provides a pre-configured test environment with:
    - In-memory File-Service and Permission-Service databases
    - Fake File-Service and Search-Service clients
    - A runner wired to all of them

    Example:
        >>> class TestCreator(MigrationTestCase):
        ...     async def test_backfill(self):
        ...         self.file_service.add_file("F1", "U1")
        ...         await self.permissions.insert_one({"fileID": "F1"})
        ...         report = await self.run_migration()
        ...         self.assertTrue(report.ok)
    """

    def setUp(self) -> None:
        """Set up test fixtures."""
        super().setUp()
        self.resources = TestResources()
        self.file_service = self.resources.file_service
        self.search_service = self.resources.search_service
        self.files = self.resources.file_db["files"]
        self.permissions = self.resources.permission_db["permissions"]
        # Tests start from the pre-migration index layout
        self.files.seed_index(
            "name_1_parent_1_ownerID_1", ["name", "parent", "ownerID"], unique=True
        )

    def tearDown(self) -> None:
        """Clean up after test."""
        self.resources.clear()
        super().tearDown()

    def build_runner(self, selection: RuleSelection | None = None, **kwargs) -> MigrationRunner:
        return MigrationRunner.from_resources(self.resources, selection=selection, **kwargs)

    async def run_migration(self, selection: RuleSelection | None = None, **kwargs):
        """Run every default rule against the fakes and return the report."""
        return await self.build_runner(selection, **kwargs).run()

"""drivemigrate: one-time migration of File-Service, Permission-Service and Search-Service data."""

__version__ = "0.1.0"

# Core components
from drivemigrate.core.exceptions import (
    MigrationError,
    ConfigurationError,
    StoreConnectionError,
    StoreOperationError,
    IndexMigrationError,
    RemoteServiceError,
    FileLookupError,
    SearchIndexError,
)
from drivemigrate.core.models import (
    FileDocument,
    FileRecord,
    PermissionDocument,
    Role,
    SearchFile,
)
from drivemigrate.core.settings import MigrationSettings, load_settings
from drivemigrate.core.client import MigrationResources, open_resources

# Service clients
from drivemigrate.services import FileServiceClient, SearchServiceClient

# Migration components
from drivemigrate.migrations import (
    MigrationJob,
    MigrationRule,
    MigrationRunner,
    RuleSelection,
    RunReport,
    SubtaskResult,
    FileMigration,
    PermissionMigration,
    SearchResync,
    all_rules,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "MigrationError",
    "ConfigurationError",
    "StoreConnectionError",
    "StoreOperationError",
    "IndexMigrationError",
    "RemoteServiceError",
    "FileLookupError",
    "SearchIndexError",
    "FileDocument",
    "FileRecord",
    "PermissionDocument",
    "Role",
    "SearchFile",
    "MigrationSettings",
    "load_settings",
    "MigrationResources",
    "open_resources",
    # Services
    "FileServiceClient",
    "SearchServiceClient",
    # Migrations
    "MigrationJob",
    "MigrationRule",
    "MigrationRunner",
    "RuleSelection",
    "RunReport",
    "SubtaskResult",
    "FileMigration",
    "PermissionMigration",
    "SearchResync",
    "all_rules",
]

"""Migration system for drivemigrate.

Migrations are named rules grouped into jobs. Each rule changes documents
in place with a filter that makes it idempotent wherever that is possible;
the runner starts every job at once and reports one result per rule.
"""

from drivemigrate.migrations.base import (
    MigrationJob,
    MigrationRule,
    RuleSelection,
    RunReport,
    SubtaskResult,
)
from drivemigrate.migrations.file import FileMigration
from drivemigrate.migrations.operations import (
    BackfillField,
    CollectionOperation,
    RenumberValue,
    ReplaceIndex,
)
from drivemigrate.migrations.permission import PermissionMigration
from drivemigrate.migrations.runner import MigrationRunner, all_rules
from drivemigrate.migrations.search import SearchResync

__all__ = [
    "MigrationJob",
    "MigrationRule",
    "RuleSelection",
    "RunReport",
    "SubtaskResult",
    "CollectionOperation",
    "BackfillField",
    "RenumberValue",
    "ReplaceIndex",
    "FileMigration",
    "PermissionMigration",
    "SearchResync",
    "MigrationRunner",
    "all_rules",
]

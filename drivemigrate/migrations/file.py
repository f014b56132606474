"""File-Service migration: name/parent/owner index and the float flag."""

from typing import ClassVar

from drivemigrate.core.models import FILES_COLLECTION
from drivemigrate.migrations.base import MigrationJob, MigrationRule
from drivemigrate.migrations.operations import BackfillField, ReplaceIndex

NAME_PARENT_OWNER_INDEX = "name_1_parent_1_ownerID_1"

INDEX_RULE = MigrationRule(
    name="file.name-parent-owner-index",
    description=f"replace the unique {NAME_PARENT_OWNER_INDEX} index with a non-unique one",
    rerunnable=False,
)
FLOAT_RULE = MigrationRule(
    name="file.float-backfill",
    description="set float: false on files where it does not exist",
)


class FileMigration(MigrationJob):
    """Migrates the File-Service ``files`` collection.

    Args:
        db: The File-Service database
    """

    name: ClassVar[str] = "file"
    rules: ClassVar[tuple[MigrationRule, ...]] = (INDEX_RULE, FLOAT_RULE)

    def __init__(self, db):
        self.db = db
        self.collection = db[FILES_COLLECTION]

    def handlers(self):
        return {
            INDEX_RULE.name: self.update_name_parent_owner_index,
            FLOAT_RULE.name: self.set_float,
        }

    async def update_name_parent_owner_index(self) -> int:
        """Drop the unique name/parent/owner index and create the non-unique one."""
        operation = ReplaceIndex(
            NAME_PARENT_OWNER_INDEX,
            ["name", "parent", "ownerID"],
            unique=False,
        )
        return await operation.apply(self.collection)

    async def set_float(self) -> int:
        """Set float to false on every file document where it doesn't exist."""
        return await BackfillField("float", False).apply(self.collection)

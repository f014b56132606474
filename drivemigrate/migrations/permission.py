"""Permission-Service migration: role renumbering and creator backfill."""

import logging
from typing import ClassVar, List

from pymongo.errors import PyMongoError

from drivemigrate.core.exceptions import StoreOperationError
from drivemigrate.core.models import (
    LEGACY_READ_ROLE,
    LEGACY_WRITE_ROLE,
    PERMISSIONS_COLLECTION,
    PermissionDocument,
    Role,
)
from drivemigrate.migrations.base import MigrationJob, MigrationRule
from drivemigrate.migrations.operations import RenumberValue, load_snapshot
from drivemigrate.services.files import FileLookup

logger = logging.getLogger(__name__)

READ_ROLE_RULE = MigrationRule(
    name="permission.read-role",
    description=f"renumber the read role from {LEGACY_READ_ROLE} to {int(Role.READ)}",
)
# TODO: confirm with the Permission-Service owners whether write -> 1 was
# meant to ship; it stays off until then.
WRITE_ROLE_RULE = MigrationRule(
    name="permission.write-role",
    description=f"renumber the write role from {LEGACY_WRITE_ROLE} to {int(Role.WRITE)}",
    enabled_by_default=False,
    rerunnable=False,
)
CREATOR_RULE = MigrationRule(
    name="permission.creator-backfill",
    description="set creator to the owner of the permission's file where it does not exist",
)


class PermissionMigration(MigrationJob):
    """Migrates the Permission-Service ``permissions`` collection.

    The creator backfill looks every permission's file up in the
    File-Service and stops at the first lookup that fails; permissions
    after it are left for the next run.

    Args:
        db: The Permission-Service database
        file_service: Client used to look files up by id
    """

    name: ClassVar[str] = "permission"
    rules: ClassVar[tuple[MigrationRule, ...]] = (
        READ_ROLE_RULE,
        WRITE_ROLE_RULE,
        CREATOR_RULE,
    )

    def __init__(self, db, file_service: FileLookup):
        self.db = db
        self.collection = db[PERMISSIONS_COLLECTION]
        self.file_service = file_service

    def handlers(self):
        return {
            READ_ROLE_RULE.name: self.update_read_role,
            WRITE_ROLE_RULE.name: self.update_write_role,
            CREATOR_RULE.name: self.set_creator,
        }

    def lanes(self, enabled: List[MigrationRule]) -> List[List[MigrationRule]]:
        # Write renumbering (2 -> 1) must finish before read renumbering
        # (3 -> 2) starts, or freshly renumbered reads become writes.
        if WRITE_ROLE_RULE not in enabled:
            return super().lanes(enabled)

        logger.warning(
            f"{WRITE_ROLE_RULE.name} is enabled; it is not safe to rerun "
            f"once {READ_ROLE_RULE.name} has been applied"
        )
        role_lane = [WRITE_ROLE_RULE]
        if READ_ROLE_RULE in enabled:
            role_lane.append(READ_ROLE_RULE)
        lanes = [role_lane]
        if CREATOR_RULE in enabled:
            lanes.append([CREATOR_RULE])
        return lanes

    async def update_read_role(self) -> int:
        """Renumber the read role from 3 to 2."""
        operation = RenumberValue("role", old=LEGACY_READ_ROLE, new=int(Role.READ))
        return await operation.apply(self.collection)

    async def update_write_role(self) -> int:
        """Renumber the write role from 2 to 1."""
        operation = RenumberValue("role", old=LEGACY_WRITE_ROLE, new=int(Role.WRITE))
        return await operation.apply(self.collection)

    async def set_creator(self) -> int:
        """Set each permission's creator to the owner of its file.

        Existing creators are never overwritten, and a permission deleted
        between the load and its update is not an error.
        """
        permissions = await load_snapshot(self.collection, PermissionDocument)
        logger.info(f"Loaded {len(permissions)} permission(s) for creator backfill")

        updated = 0
        for permission in permissions:
            file = await self.file_service.get_file_by_id(permission.file_id)

            try:
                previous = await self.collection.find_one_and_update(
                    {"_id": permission.id, "creator": {"$exists": False}},
                    {"$set": {"creator": file.owner_id}},
                )
            except PyMongoError as e:
                raise StoreOperationError(
                    f"failed setting creator for permission {permission.id} "
                    f"with ownerID {file.owner_id}: {e}",
                    operation="find_one_and_update",
                    collection=self.collection.name,
                    original_error=e,
                ) from e

            if previous is not None:
                updated += 1

        return updated

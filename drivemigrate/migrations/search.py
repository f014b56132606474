"""Search-Service resync: push every stored file into the search index."""

import logging
from typing import ClassVar

from drivemigrate.core.models import FILES_COLLECTION, FileDocument, SearchFile
from drivemigrate.migrations.base import MigrationJob, MigrationRule
from drivemigrate.migrations.operations import load_snapshot
from drivemigrate.services.search import SearchIndexer

logger = logging.getLogger(__name__)

RESYNC_RULE = MigrationRule(
    name="search.resync",
    description="create every file of the File-Service store in the Search-Service",
    rerunnable=False,
)


class SearchResync(MigrationJob):
    """Recreates the search index from a snapshot of the ``files`` collection.

    Files are pushed one at a time in cursor order and the first failure
    stops the resync. Rerunning resends files that were already created, so
    the Search-Service has to deduplicate by id.

    The snapshot may be taken before, during or after the float backfill;
    the projection does not depend on that field.

    Args:
        file_db: The File-Service database
        search_service: Client used to create search entries
    """

    name: ClassVar[str] = "search"
    rules: ClassVar[tuple[MigrationRule, ...]] = (RESYNC_RULE,)

    def __init__(self, file_db, search_service: SearchIndexer):
        self.file_db = file_db
        self.collection = file_db[FILES_COLLECTION]
        self.search_service = search_service

    def handlers(self):
        return {RESYNC_RULE.name: self.resync}

    async def resync(self) -> int:
        """Create a search entry for every stored file."""
        files = await load_snapshot(self.collection, FileDocument)
        logger.info(f"Loaded {len(files)} file(s) for search resync")

        created = 0
        for document in files:
            await self.search_service.create_file(SearchFile.from_document(document))
            created += 1
        return created

"""MongoDB and remote service connections for a migration run."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from drivemigrate.core.exceptions import StoreConnectionError
from drivemigrate.core.settings import MigrationSettings
from drivemigrate.services.files import FileServiceClient
from drivemigrate.services.search import SearchServiceClient

logger = logging.getLogger(__name__)


async def connect_to_mongodb(
    conn_string: str,
    server_selection_timeout_ms: int = 30000,
) -> AsyncMongoClient:
    """Open a client and make sure the server answers.

    Args:
        conn_string: The MongoDB connection string
        server_selection_timeout_ms: How long to wait for a reachable server

    Returns:
        A connected AsyncMongoClient

    Raises:
        StoreConnectionError: If the URI is invalid or the ping fails
    """
    try:
        client = AsyncMongoClient(
            conn_string,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
        )
    except PyMongoError as e:
        raise StoreConnectionError(original_error=e, conn_string=conn_string) from e

    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        await client.close()
        raise StoreConnectionError(original_error=e, conn_string=conn_string) from e

    return client


def get_database(client: AsyncMongoClient, conn_string: str):
    """Return the database named in the connection string.

    Raises:
        StoreConnectionError: If the connection string names no database
    """
    try:
        return client.get_default_database()
    except PyMongoError as e:
        raise StoreConnectionError(original_error=e, conn_string=conn_string) from e


@dataclass
class MigrationResources:
    """Handles owned by one migration run.

    Each job gets its own MongoDB client: the file and search jobs both
    read the File-Service store but never share a connection.

    Attributes:
        file_db: File-Service database used by the file job
        search_file_db: File-Service database used by the search job
        permission_db: Permission-Service database
        file_service: File-Service lookup client
        search_service: Search-Service client
    """

    file_db: Any
    search_file_db: Any
    permission_db: Any
    file_service: Any
    search_service: Any
    _closers: list = field(default_factory=list, repr=False)

    async def close(self) -> None:
        """Close every connection in reverse order of opening."""
        while self._closers:
            closer = self._closers.pop()
            await closer()


@asynccontextmanager
async def open_resources(
    settings: MigrationSettings,
) -> AsyncGenerator[MigrationResources, None]:
    """Open every connection a run needs, closing them on exit.

    Any failure here happens before a single rule runs.

    Raises:
        StoreConnectionError: If a store cannot be reached
    """
    closers = []
    try:
        databases = []
        for conn_string in (
            settings.file_mongo_conn_string,
            settings.file_mongo_conn_string,
            settings.permission_mongo_conn_string,
        ):
            client = await connect_to_mongodb(
                conn_string, settings.mongo_server_selection_timeout_ms
            )
            closers.append(client.close)
            databases.append(get_database(client, conn_string))

        file_service = FileServiceClient(
            settings.file_service_url, timeout=settings.remote_timeout
        )
        await file_service.initialize()
        closers.append(file_service.close)

        search_service = SearchServiceClient(
            settings.search_service_url, timeout=settings.remote_timeout
        )
        await search_service.initialize()
        closers.append(search_service.close)
    except BaseException:
        for closer in reversed(closers):
            await closer()
        raise

    logger.info(
        f"Connected to {len(databases)} store handle(s), "
        f"File-Service at {settings.file_service_url}, "
        f"Search-Service at {settings.search_service_url}"
    )

    resources = MigrationResources(
        file_db=databases[0],
        search_file_db=databases[1],
        permission_db=databases[2],
        file_service=file_service,
        search_service=search_service,
        _closers=closers,
    )
    try:
        yield resources
    finally:
        await resources.close()

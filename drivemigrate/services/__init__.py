"""Clients for the services a migration run talks to."""

from drivemigrate.services.base import ServiceClient
from drivemigrate.services.files import FileLookup, FileServiceClient
from drivemigrate.services.search import SearchIndexer, SearchServiceClient

__all__ = [
    "ServiceClient",
    "FileLookup",
    "FileServiceClient",
    "SearchIndexer",
    "SearchServiceClient",
]

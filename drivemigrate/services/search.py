"""Search-Service indexing client."""

import asyncio
from typing import Protocol, runtime_checkable

import aiohttp

from drivemigrate.core.exceptions import SearchIndexError
from drivemigrate.core.models import SearchFile
from drivemigrate.services.base import ServiceClient


@runtime_checkable
class SearchIndexer(Protocol):
    """Anything that can create a file in the search index."""

    async def create_file(self, file: SearchFile) -> None:
        """Create a search entry for a file."""
        ...


class SearchServiceClient(ServiceClient):
    """Pushes file projections to the Search-Service.

    The expected API contract is:
    - POST /files - Create a file entry; the service deduplicates by id
    """

    service_name = "Search-Service"

    async def create_file(self, file: SearchFile) -> None:
        """Create a search entry.

        Args:
            file: The denormalized file projection

        Raises:
            SearchIndexError: If the service rejects the file or the call fails
        """
        session = self._ensure_initialized()

        url = f"{self._base_url}/files"
        try:
            async with session.post(url, json=file.to_payload()) as response:
                error_text = await self._read_error(response)
                if error_text is not None:
                    raise SearchIndexError(
                        file.id,
                        message=f"failed creating file {file.id} in Search-Service: "
                        f"HTTP {response.status}: {error_text}",
                        status=response.status,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SearchIndexError(
                file.id,
                message=f"failed creating file {file.id} in Search-Service: {str(e) or type(e).__name__}",
                original_error=e,
            ) from e

"""File-Service lookup client."""

import asyncio
from typing import Protocol, runtime_checkable

import aiohttp
from pydantic import ValidationError

from drivemigrate.core.exceptions import FileLookupError
from drivemigrate.core.models import FileRecord
from drivemigrate.services.base import ServiceClient


@runtime_checkable
class FileLookup(Protocol):
    """Anything that can fetch a file record by id."""

    async def get_file_by_id(self, file_id: str) -> FileRecord:
        """Fetch a single file."""
        ...


class FileServiceClient(ServiceClient):
    """Fetches files from the File-Service.

    The expected API contract is:
    - GET /files/{id} - Get a file, 404 when it does not exist

    Example:
        ```python
        async with FileServiceClient("http://file-service:8080") as files:
            record = await files.get_file_by_id("5e4f...")
            print(record.owner_id)
        ```
    """

    service_name = "File-Service"

    async def get_file_by_id(self, file_id: str) -> FileRecord:
        """Get a file by its id.

        Args:
            file_id: The file identifier

        Returns:
            The file record

        Raises:
            FileLookupError: If the file does not exist or the call fails
        """
        session = self._ensure_initialized()

        url = f"{self._base_url}/files/{file_id}"
        try:
            async with session.get(url) as response:
                error_text = await self._read_error(response)
                if error_text is not None:
                    raise FileLookupError(
                        file_id,
                        message=f"failed getting file {file_id} from File-Service: "
                        f"HTTP {response.status}: {error_text}",
                        status=response.status,
                    )
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise FileLookupError(
                file_id,
                message=f"failed getting file {file_id} from File-Service: {str(e) or type(e).__name__}",
                original_error=e,
            ) from e

        try:
            return FileRecord.model_validate(data)
        except ValidationError as e:
            raise FileLookupError(
                file_id,
                message=f"unexpected File-Service response for file {file_id}: {e}",
                original_error=e,
            ) from e

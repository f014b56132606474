"""Shared HTTP plumbing for the remote service clients."""

import logging
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)


class ServiceClient:
    """Base class for JSON-over-HTTP service clients.

    Subclasses call ``initialize()`` (or use ``async with``) before issuing
    requests, and ``close()`` when done.

    Args:
        base_url: Base URL of the service
        timeout: Total request timeout in seconds, None for no deadline
    """

    service_name = "service"

    def __init__(self, base_url: str, timeout: float | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        """Get the base URL of the service."""
        return self._base_url

    async def initialize(self) -> None:
        """Create the aiohttp session."""
        if self._session is not None:
            return

        self._session = aiohttp.ClientSession(
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )
        logger.info("%s client initialized: %s", self.service_name, self._base_url)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _ensure_initialized(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                f"{type(self).__name__} not initialized. Call initialize() first."
            )
        return self._session

    async def _read_error(self, response: Any) -> str | None:
        """Return the error body of a failed response, None on success."""
        if response.status < 400:
            return None
        text = await response.text()
        logger.error("%s request failed: HTTP %s: %s", self.service_name, response.status, text)
        return text

"""Workflow file storage access.

Workflow files live in external storage and are referenced by URL.
Downloads are proxied through the API so that access can be checked.
"""

import logging
from typing import Optional

import httpx

from app.config import get_settings
from core.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)


class WorkflowFileStorage:
    """Fetches workflow files from their storage URL."""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout or get_settings().FILE_FETCH_TIMEOUT
        self._transport = transport

    async def fetch(self, file_url: str) -> bytes:
        """Return the file contents.

        Raises:
            UpstreamFailure: On timeout, connection error or non-2xx status
        """
        try:
            async with httpx.AsyncClient(
                follow_redirects=True, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(file_url)
        except httpx.TimeoutException:
            logger.warning(f"Workflow file fetch timed out after {self.timeout}s: {file_url}")
            raise UpstreamFailure("File storage timed out", transient=True)
        except httpx.HTTPError as e:
            logger.warning(f"Workflow file fetch failed: {file_url}: {e}")
            raise UpstreamFailure("Failed to fetch workflow file")

        if response.status_code >= 400:
            logger.warning(f"Workflow file fetch returned {response.status_code}: {file_url}")
            raise UpstreamFailure("Failed to fetch workflow file")

        return response.content


_storage: Optional[WorkflowFileStorage] = None


def get_file_storage() -> WorkflowFileStorage:
    """FastAPI dependency returning the shared file storage client."""
    global _storage
    if _storage is None:
        _storage = WorkflowFileStorage()
    return _storage

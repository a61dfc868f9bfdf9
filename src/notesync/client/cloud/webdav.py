"""WebDAV cloud storage client.

Uses plain HTTP verbs on `<credentials.url>/<filename>`:
- HEAD to check existence
- GET to download
- PUT to upload
"""

from __future__ import annotations

import logging

import httpx

from notesync.client.cloud.base import (
    AccessDeniedError,
    CloudStorageError,
    ConnectionFailedError,
    InvalidParameterError,
)
from notesync.client.models import CloudStorageCredentials

logger = logging.getLogger(__name__)

WEBDAV_STORAGE_ID = "webdav"


class WebdavCloudClient:
    """Async WebDAV client with basic authentication.

    Args:
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    def _url(self, filename: str, credentials: CloudStorageCredentials) -> str:
        if not credentials.url:
            raise InvalidParameterError("WebDAV storage needs a url")
        url = credentials.url.rstrip("/")
        if credentials.secure and not url.startswith("https://"):
            raise InvalidParameterError("Secure WebDAV storage needs an https url")
        return f"{url}/{filename}"

    def _client(self, credentials: CloudStorageCredentials) -> httpx.AsyncClient:
        auth = None
        if credentials.username:
            auth = httpx.BasicAuth(credentials.username, credentials.password or "")
        return httpx.AsyncClient(timeout=self._timeout, auth=auth, transport=self._transport)

    @staticmethod
    def _handle_response(response: httpx.Response) -> httpx.Response:
        """Map HTTP errors to cloud storage exceptions."""
        if response.status_code in (401, 403):
            raise AccessDeniedError(f"Access denied ({response.status_code})")
        if response.status_code == 404:
            raise CloudStorageError("File not found")
        if response.status_code >= 500:
            raise ConnectionFailedError(f"Server error ({response.status_code})")
        if response.status_code >= 400:
            raise CloudStorageError(f"Unexpected response ({response.status_code})")
        return response

    async def _request(
        self,
        method: str,
        filename: str,
        credentials: CloudStorageCredentials,
        content: bytes | None = None,
    ) -> httpx.Response:
        url = self._url(filename, credentials)
        try:
            async with self._client(credentials) as client:
                return await client.request(method, url, content=content)
        except httpx.RequestError as e:
            raise ConnectionFailedError(f"Could not reach {url}: {e}") from e

    async def exists_file(self, filename: str, credentials: CloudStorageCredentials) -> bool:
        response = await self._request("HEAD", filename, credentials)
        if response.status_code == 404:
            return False
        self._handle_response(response)
        return True

    async def download_file(self, filename: str, credentials: CloudStorageCredentials) -> bytes:
        response = self._handle_response(await self._request("GET", filename, credentials))
        logger.info(f"Downloaded {len(response.content)} bytes")
        return response.content

    async def upload_file(
        self, filename: str, content: bytes, credentials: CloudStorageCredentials
    ) -> None:
        self._handle_response(await self._request("PUT", filename, credentials, content=content))
        logger.info(f"Uploaded {len(content)} bytes")

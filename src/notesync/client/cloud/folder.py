"""Cloud storage backed by a local or mounted folder.

Useful with folders synchronized by other tools, and as an in-process store
for tests. The folder comes from `credentials.url`.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from notesync.client.cloud.base import (
    AccessDeniedError,
    ConnectionFailedError,
    InvalidParameterError,
)
from notesync.client.models import CloudStorageCredentials
from notesync.client.storage import atomic_write

logger = logging.getLogger(__name__)

FOLDER_STORAGE_ID = "folder"


class LocalFolderCloudClient:
    """Stores the repository blob as a file in a folder."""

    def _path(self, filename: str, credentials: CloudStorageCredentials) -> Path:
        if not credentials.url:
            raise InvalidParameterError("Folder storage needs a folder path in credentials.url")
        if "/" in filename or "\\" in filename or filename in ("", ".", ".."):
            raise InvalidParameterError(f"Invalid file name: {filename!r}")
        return Path(credentials.url).expanduser() / filename

    async def exists_file(self, filename: str, credentials: CloudStorageCredentials) -> bool:
        path = self._path(filename, credentials)
        if not path.parent.is_dir():
            raise ConnectionFailedError(f"Folder not available: {path.parent}")
        return path.is_file()

    async def download_file(self, filename: str, credentials: CloudStorageCredentials) -> bytes:
        path = self._path(filename, credentials)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except PermissionError as e:
            raise AccessDeniedError(str(e)) from e
        except OSError as e:
            raise ConnectionFailedError(str(e)) from e

    async def upload_file(
        self, filename: str, content: bytes, credentials: CloudStorageCredentials
    ) -> None:
        path = self._path(filename, credentials)
        if not path.parent.is_dir():
            raise ConnectionFailedError(f"Folder not available: {path.parent}")
        try:
            await asyncio.to_thread(atomic_write, path, content)
        except PermissionError as e:
            raise AccessDeniedError(str(e)) from e
        except OSError as e:
            raise ConnectionFailedError(str(e)) from e
        logger.info(f"Stored {len(content)} bytes in {path}")

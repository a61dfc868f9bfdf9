"""Cloud storage clients - interfaces, errors and built-in stores."""

from notesync.client.cloud.base import (
    AccessDeniedError,
    CloudClientFactory,
    CloudStorageClient,
    CloudStorageError,
    ConnectionFailedError,
    InvalidParameterError,
    OAuth2CloudStorageClient,
    RefreshTokenExpiredError,
)
from notesync.client.cloud.folder import FOLDER_STORAGE_ID, LocalFolderCloudClient
from notesync.client.cloud.webdav import WEBDAV_STORAGE_ID, WebdavCloudClient


def default_cloud_client_factory() -> CloudClientFactory:
    """Factory with every built-in cloud storage client registered."""
    factory = CloudClientFactory()
    factory.register(FOLDER_STORAGE_ID, LocalFolderCloudClient)
    factory.register(WEBDAV_STORAGE_ID, WebdavCloudClient)
    return factory


__all__ = [
    # Interfaces
    "CloudClientFactory",
    "CloudStorageClient",
    "OAuth2CloudStorageClient",
    "default_cloud_client_factory",
    # Errors
    "AccessDeniedError",
    "CloudStorageError",
    "ConnectionFailedError",
    "InvalidParameterError",
    "RefreshTokenExpiredError",
    # Clients
    "FOLDER_STORAGE_ID",
    "LocalFolderCloudClient",
    "WEBDAV_STORAGE_ID",
    "WebdavCloudClient",
]

"""Cloud storage interfaces and errors.

The cloud storage is an untrusted file store: it only holds the encrypted
repository blob. Clients are asynchronous because every call is network I/O.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from notesync.client.models import CloudStorageCredentials, CloudStorageToken


class CloudStorageError(Exception):
    """Base exception for cloud storage errors."""


class ConnectionFailedError(CloudStorageError):
    """The cloud storage could not be reached."""


class AccessDeniedError(CloudStorageError):
    """The credentials were rejected."""


class RefreshTokenExpiredError(CloudStorageError):
    """The OAuth2 refresh token is no longer valid, the user must log in again."""


class InvalidParameterError(CloudStorageError):
    """The credentials lack a parameter the client needs."""


@runtime_checkable
class CloudStorageClient(Protocol):
    """A file store holding the encrypted repository."""

    async def exists_file(self, filename: str, credentials: CloudStorageCredentials) -> bool: ...

    async def download_file(self, filename: str, credentials: CloudStorageCredentials) -> bytes: ...

    async def upload_file(
        self, filename: str, content: bytes, credentials: CloudStorageCredentials
    ) -> None: ...


@runtime_checkable
class OAuth2CloudStorageClient(CloudStorageClient, Protocol):
    """A cloud storage which authenticates with OAuth2 (authorization code + PKCE)."""

    def build_authorization_url(self, state: str, code_verifier: str) -> str: ...

    async def fetch_token(
        self, redirect_url: str, state: str, code_verifier: str
    ) -> CloudStorageToken | None: ...

    async def refresh_token(self, token: CloudStorageToken) -> CloudStorageToken: ...


class CloudClientFactory:
    """Creates cloud storage clients by their storage id."""

    def __init__(self) -> None:
        self._factories: dict[str, Callable[[], CloudStorageClient]] = {}

    def register(self, cloud_storage_id: str, factory: Callable[[], CloudStorageClient]) -> None:
        self._factories[cloud_storage_id] = factory

    def get(self, cloud_storage_id: str) -> CloudStorageClient:
        """Create the client for a storage id.

        Raises:
            InvalidParameterError: If no client is registered for the id.
        """
        try:
            factory = self._factories[cloud_storage_id]
        except KeyError:
            raise InvalidParameterError(f"Unknown cloud storage: {cloud_storage_id!r}") from None
        return factory()

    def ids(self) -> list[str]:
        return list(self._factories)

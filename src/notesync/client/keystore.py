"""OS keyring integration for cloud storage passwords.

This module provides:
- CredentialStore: keeps the cloud password in the OS keyring

The keyring is optional: on systems without a usable backend every call
degrades gracefully and the password stays in the settings file.
"""

from __future__ import annotations

import contextlib
import logging

import keyring
from keyring.errors import KeyringError

from notesync.client.models import CloudStorageCredentials

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "notesync"


def keyring_account(credentials: CloudStorageCredentials) -> str:
    """Name under which the password of an account is stored."""
    return f"{credentials.cloud_storage_id}:{credentials.username or ''}@{credentials.url or ''}"


class CredentialStore:
    """Stores cloud storage passwords in the OS keyring.

    Args:
        service: Keyring service name.
    """

    def __init__(self, service: str = KEYRING_SERVICE) -> None:
        self.service = service

    def store_password(self, credentials: CloudStorageCredentials) -> bool:
        """Save the password of the credentials.

        Returns:
            True if the keyring accepted the password.
        """
        if not credentials.password:
            return False
        try:
            keyring.set_password(self.service, keyring_account(credentials), credentials.password)
        except (KeyringError, RuntimeError) as e:
            logger.warning(f"Keyring not available, keeping password in settings: {e}")
            return False
        return True

    def load_password(self, credentials: CloudStorageCredentials) -> str | None:
        """Read the password of the credentials, None if unknown or unavailable."""
        try:
            return keyring.get_password(self.service, keyring_account(credentials))
        except (KeyringError, RuntimeError) as e:
            logger.debug(f"Keyring not available: {e}")
            return None

    def delete_password(self, credentials: CloudStorageCredentials) -> None:
        with contextlib.suppress(KeyringError, RuntimeError):
            keyring.delete_password(self.service, keyring_account(credentials))

"""Safes: independent encryption domains inside a repository.

A safe owns a random key. The key is stored in the repository, encrypted with
the safe password at a high KDF cost because safe passwords are chosen by
humans. Notes inside the safe are encrypted with the raw key.
"""

from __future__ import annotations

import base64
import logging

from notesync.client.models import Note, Safe, utc_now
from notesync.core.config import SyncConfig
from notesync.core.crypto import (
    COMPRESSION_GZIP,
    CostTier,
    Cryptor,
    DecryptionFailedError,
    RandomSource,
)

logger = logging.getLogger(__name__)

SAFE_KEY_SIZE = 32


class SafeKeyService:
    """Creates safes and encrypts the notes they own.

    Args:
        random_source: Provider of keys, nonces and salts.
        config: Application tags and default algorithms.
    """

    def __init__(self, random_source: RandomSource, config: SyncConfig | None = None) -> None:
        self.config = config or SyncConfig()
        self._safe_cryptor = Cryptor(self.config.safe_package_name, random_source)
        self._note_cryptor = Cryptor(self.config.note_package_name, random_source)
        self._random_source = random_source

    def create_safe(self, password: str) -> tuple[Safe, bytes]:
        """Create a safe protected by a password.

        Returns:
            Tuple of (the new safe, its raw key).

        Raises:
            WeakPasswordError: If the password is too short.
        """
        key = self._random_source.get_random_bytes(SAFE_KEY_SIZE)
        safe = Safe(serialized_key=self._encrypt_key(key, password))
        logger.info(f"Created safe {safe.id}")
        return safe, key

    def open_safe(self, safe: Safe, password: str) -> bytes:
        """Decrypt the key of a safe.

        Raises:
            DecryptionFailedError: If the password is wrong or the safe has no key.
        """
        if not safe.serialized_key:
            raise DecryptionFailedError(f"Safe {safe.id} has no key")
        blob = base64.b64decode(safe.serialized_key)
        return self._safe_cryptor.decrypt(blob, password)

    def change_password(self, safe: Safe, old_password: str, new_password: str) -> None:
        """Re-encrypt the safe key with a new password."""
        key = self.open_safe(safe, old_password)
        safe.serialized_key = self._encrypt_key(key, new_password)
        safe.modified_at = utc_now()

    def encrypt_note(self, note: Note, safe: Safe, key: bytes, content: str) -> None:
        """Store `content` encrypted into a note and move the note into the safe."""
        blob = self._note_cryptor.encrypt_with_key(
            content.encode("utf-8"),
            key,
            self.config.default_algorithm,
            compression=COMPRESSION_GZIP,
        )
        note.html_content = base64.b64encode(blob).decode("ascii")
        note.safe_id = safe.id
        note.refresh_modified_at()

    def decrypt_note(self, note: Note, key: bytes) -> str:
        """Decrypt the content of a note inside a safe."""
        blob = base64.b64decode(note.html_content)
        return self._note_cryptor.decrypt_with_key(blob, key).decode("utf-8")

    def _encrypt_key(self, key: bytes, password: str) -> str:
        blob = self._safe_cryptor.encrypt(
            key,
            password,
            CostTier.HIGH,
            self.config.default_algorithm,
            self.config.default_kdf,
        )
        return base64.b64encode(blob).decode("ascii")

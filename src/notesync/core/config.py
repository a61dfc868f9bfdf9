"""Shared configuration for notesync.

This module defines the constants every device must agree on to exchange
repositories: application tags, the repository file name and the default
crypto choices.
"""

from __future__ import annotations

from dataclasses import dataclass

from notesync.core.crypto import (
    DELIMITER,
    PBKDF2,
    REVISION_SEPARATOR,
    XCHACHA20_POLY1305,
)

REPOSITORY_FILE_NAME = "notesync_repository.notesync"
TRANSFER_CODE_HISTORY_LIMIT = 10


@dataclass
class SyncConfig:
    """Configuration shared by the sync machine and the safes.

    Attributes:
        package_name: Tag of envelopes holding the whole repository.
        safe_package_name: Tag of envelopes holding a safe key.
        note_package_name: Tag of envelopes holding the content of a safe note.
        repository_file_name: Name of the blob in the cloud storage.
        transfer_code_history_limit: How many previous transfer codes to keep.
        default_algorithm: Symmetric algorithm used when the settings name none.
        default_kdf: Key derivation used for transfer codes and passwords.
    """

    package_name: str = "NoteSync"
    safe_package_name: str = "NoteSyncSafe"
    note_package_name: str = "NoteSyncNote"
    repository_file_name: str = REPOSITORY_FILE_NAME
    transfer_code_history_limit: int = TRANSFER_CODE_HISTORY_LIMIT
    default_algorithm: str = XCHACHA20_POLY1305
    default_kdf: str = PBKDF2

    def __post_init__(self) -> None:
        """Validate the application tags and limits."""
        for tag in (self.package_name, self.safe_package_name, self.note_package_name):
            if not tag or DELIMITER in tag or REVISION_SEPARATOR in tag:
                raise ValueError(f"Invalid package name: {tag!r}")
        if not self.repository_file_name.strip():
            raise ValueError("repository_file_name must not be empty")
        if self.transfer_code_history_limit < 0:
            raise ValueError("transfer_code_history_limit must not be negative")

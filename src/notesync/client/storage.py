"""Local persistence of the repository and the settings.

This module provides:
- LocalStorage: the protocol the sync machine uses
- JsonFileStorage: JSON files in one directory, each guarded by its own lock

Saving never raises: a failed write is logged and reported as False, the
previous file content stays intact because files are replaced atomically.
A repository file that exists but cannot be read raises StorageError instead
of being replaced by an empty repository.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from notesync.client.keystore import CredentialStore
from notesync.client.models import (
    NoteRepository,
    RepositoryFormatError,
    Settings,
    repository_from_bytes,
    repository_to_bytes,
)

logger = logging.getLogger(__name__)

REPOSITORY_FILE = "repository.json"
SETTINGS_FILE = "settings.json"


class StorageError(Exception):
    """The local repository exists but cannot be loaded."""


class LocalStorage(Protocol):
    """Where a device keeps its repository and settings."""

    def load_repository_or_default(self) -> NoteRepository: ...

    def try_save_repository(self, repository: NoteRepository) -> bool: ...

    def load_settings_or_default(self) -> Settings: ...

    def try_save_settings(self, settings: Settings) -> bool: ...


def atomic_write(path: Path, data: bytes) -> None:
    """Write a file so that readers see either the old or the new content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(temp_name)
        raise


class JsonFileStorage:
    """Stores the repository and the settings as JSON files.

    A default repository is created and saved on the first load, so that its
    id stays stable for the life of the repository.

    The cloud password goes to the keyring when a credential store is given
    and accepts it; otherwise it is written to the settings file.

    Args:
        directory: Directory holding the files.
        credential_store: Optional keyring for the cloud password.
    """

    def __init__(self, directory: Path, credential_store: CredentialStore | None = None) -> None:
        self.directory = Path(directory)
        self.credential_store = credential_store
        self._repository_lock = threading.Lock()
        self._settings_lock = threading.Lock()

    @property
    def repository_path(self) -> Path:
        return self.directory / REPOSITORY_FILE

    @property
    def settings_path(self) -> Path:
        return self.directory / SETTINGS_FILE

    def load_repository_or_default(self) -> NoteRepository:
        with self._repository_lock:
            if self.repository_path.exists():
                try:
                    return repository_from_bytes(self.repository_path.read_bytes())
                except (OSError, RepositoryFormatError) as e:
                    logger.warning(f"Could not load repository {self.repository_path}: {e}")
                    raise StorageError(f"Could not load repository: {e}") from e
            repository = NoteRepository()
            atomic_write(self.repository_path, repository_to_bytes(repository))
            logger.info(f"Created new repository {repository.id}")
            return repository

    def try_save_repository(self, repository: NoteRepository) -> bool:
        with self._repository_lock:
            return self._try_write(self.repository_path, repository_to_bytes(repository))

    def load_settings_or_default(self) -> Settings:
        with self._settings_lock:
            if not self.settings_path.exists():
                return Settings()
            try:
                data = json.loads(self.settings_path.read_text(encoding="utf-8"))
                settings = Settings.from_dict(data)
            except (OSError, json.JSONDecodeError, RepositoryFormatError) as e:
                logger.warning(f"Could not load settings {self.settings_path}, using defaults: {e}")
                return Settings()
        credentials = settings.credentials
        if credentials is not None and credentials.password is None and self.credential_store:
            credentials.password = self.credential_store.load_password(credentials)
        return settings

    def try_save_settings(self, settings: Settings) -> bool:
        include_password = True
        if settings.credentials is not None and self.credential_store is not None:
            include_password = not self.credential_store.store_password(settings.credentials)
        data: dict[str, Any] = settings.to_dict(include_password=include_password)
        payload = json.dumps(data, indent=2).encode("utf-8")
        with self._settings_lock:
            return self._try_write(self.settings_path, payload)

    def _try_write(self, path: Path, payload: bytes) -> bool:
        try:
            atomic_write(path, payload)
            return True
        except OSError as e:
            logger.warning(f"Could not save {path}: {e}")
            return False

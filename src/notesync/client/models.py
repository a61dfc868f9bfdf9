"""Data models of a device: notes, safes, the repository and the settings.

This module provides:
- Note, DeletedNote, Safe, NoteRepository: the synchronized content
- CloudStorageToken, CloudStorageCredentials: access to the cloud storage
- Settings: device settings including the transfer code and its history
- JSON serialization of the repository, which is what gets encrypted

All timestamps are timezone aware (UTC).
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from notesync.core.config import TRANSFER_CODE_HISTORY_LIMIT
from notesync.core.crypto import PBKDF2, XCHACHA20_POLY1305, default_symmetric_registry
from notesync.core.types import AutoSyncMode

logger = logging.getLogger(__name__)

# Highest repository revision this version can read
REPOSITORY_REVISION = 1
SETTINGS_REVISION = 1
DEFAULT_NOTE_COLOR = "#fbf6bb"


class RepositoryFormatError(ValueError):
    """A serialized repository or settings document could not be parsed."""


def utc_now() -> datetime:
    """Current time in UTC, truncated to milliseconds.

    Truncation makes timestamps survive a JSON round-trip unchanged.
    """
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class Note:
    """A single note.

    A note is soft-deleted by moving it to the recycling bin and hard-deleted
    by removing it from the repository and recording a DeletedNote.
    """

    id: str = field(default_factory=new_id)
    html_content: str = ""
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)
    meta_modified_at: datetime | None = None
    in_recycling_bin: bool = False
    background_color: str = DEFAULT_NOTE_COLOR
    safe_id: str | None = None
    is_pinned: bool = False
    tags: list[str] = field(default_factory=list)

    def refresh_modified_at(self) -> None:
        self.modified_at = utc_now()

    def refresh_meta_modified_at(self) -> None:
        self.meta_modified_at = utc_now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "html_content": self.html_content,
            "created_at": _to_iso(self.created_at),
            "modified_at": _to_iso(self.modified_at),
            "meta_modified_at": _to_iso(self.meta_modified_at),
            "in_recycling_bin": self.in_recycling_bin,
            "background_color": self.background_color,
            "safe_id": self.safe_id,
            "is_pinned": self.is_pinned,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Note:
        return cls(
            id=data["id"],
            html_content=data.get("html_content", ""),
            created_at=_from_iso(data.get("created_at")) or _EPOCH,
            modified_at=_from_iso(data.get("modified_at")) or _EPOCH,
            meta_modified_at=_from_iso(data.get("meta_modified_at")),
            in_recycling_bin=bool(data.get("in_recycling_bin", False)),
            background_color=data.get("background_color", DEFAULT_NOTE_COLOR),
            safe_id=data.get("safe_id"),
            is_pinned=bool(data.get("is_pinned", False)),
            tags=list(data.get("tags", [])),
        )


@dataclass
class DeletedNote:
    """Tombstone of a hard-deleted note."""

    id: str
    deleted_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "deleted_at": _to_iso(self.deleted_at)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeletedNote:
        return cls(id=data["id"], deleted_at=_from_iso(data.get("deleted_at")) or _EPOCH)


@dataclass
class Safe:
    """An independent encryption domain inside a repository.

    Notes reference their safe by `safe_id`. The safe key itself is stored
    encrypted with the safe password in `serialized_key`.
    """

    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)
    maintained_at: datetime | None = None
    serialized_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": _to_iso(self.created_at),
            "modified_at": _to_iso(self.modified_at),
            "maintained_at": _to_iso(self.maintained_at),
            "serialized_key": self.serialized_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Safe:
        return cls(
            id=data["id"],
            created_at=_from_iso(data.get("created_at")) or _EPOCH,
            modified_at=_from_iso(data.get("modified_at")) or _EPOCH,
            maintained_at=_from_iso(data.get("maintained_at")),
            serialized_key=data.get("serialized_key"),
        )


@dataclass
class NoteRepository:
    """The whole synchronized content of one user.

    The id is assigned once and never regenerated. Two repositories with the
    same id are versions of the same repository and can be merged silently.
    """

    id: str = field(default_factory=new_id)
    revision: int = REPOSITORY_REVISION
    order_modified_at: datetime = field(default_factory=utc_now)
    notes: list[Note] = field(default_factory=list)
    deleted_notes: list[DeletedNote] = field(default_factory=list)
    safes: list[Safe] = field(default_factory=list)

    def find_note(self, note_id: str) -> Note | None:
        return next((note for note in self.notes if note.id == note_id), None)

    def find_safe(self, safe_id: str | None) -> Safe | None:
        if safe_id is None:
            return None
        return next((safe for safe in self.safes if safe.id == safe_id), None)

    def deleted_note_ids(self) -> set[str]:
        return {deleted.id for deleted in self.deleted_notes}

    def delete_note(self, note_id: str) -> bool:
        """Hard-delete a note and record its tombstone.

        Returns:
            True if the note existed.
        """
        note = self.find_note(note_id)
        if note is None:
            return False
        self.notes.remove(note)
        if note_id not in self.deleted_note_ids():
            self.deleted_notes.append(DeletedNote(id=note_id))
        return True

    def remove_unused_safes(self) -> None:
        """Drop safes which are not referenced by any note."""
        used = {note.safe_id for note in self.notes if note.safe_id is not None}
        self.safes = [safe for safe in self.safes if safe.id in used]

    def modification_fingerprint(self) -> str:
        """Content-derived value to detect modifications.

        Covers everything a merge or a user edit can change, so that two
        repositories with equal fingerprints need not be written again.
        """
        parts: list[str] = [self.id, str(self.revision), _to_iso(self.order_modified_at) or ""]
        for note in self.notes:
            parts.append(note.id)
            parts.append(_to_iso(note.modified_at) or "")
            parts.append(_to_iso(note.meta_modified_at) or "")
            parts.append("1" if note.in_recycling_bin else "0")
        for deleted in self.deleted_notes:
            parts.append(deleted.id)
        for safe in self.safes:
            parts.append(_to_iso(safe.modified_at) or "")
            parts.append(_to_iso(safe.maintained_at) or "")
        return hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()

    def clone(self) -> NoteRepository:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "revision": self.revision,
            "order_modified_at": _to_iso(self.order_modified_at),
            "notes": [note.to_dict() for note in self.notes],
            "deleted_notes": [deleted.to_dict() for deleted in self.deleted_notes],
            "safes": [safe.to_dict() for safe in self.safes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NoteRepository:
        try:
            return cls(
                id=data["id"],
                revision=int(data.get("revision", REPOSITORY_REVISION)),
                order_modified_at=_from_iso(data.get("order_modified_at")) or _EPOCH,
                notes=[Note.from_dict(item) for item in data.get("notes", [])],
                deleted_notes=[DeletedNote.from_dict(item) for item in data.get("deleted_notes", [])],
                safes=[Safe.from_dict(item) for item in data.get("safes", [])],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RepositoryFormatError(f"Invalid repository: {e}") from e


def repository_to_bytes(repository: NoteRepository) -> bytes:
    """Serialize a repository to UTF-8 JSON."""
    return json.dumps(repository.to_dict(), ensure_ascii=False).encode("utf-8")


def _load_json(payload: bytes) -> dict[str, Any]:
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RepositoryFormatError(f"Repository is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise RepositoryFormatError("Repository must be a JSON object")
    return data


def repository_from_bytes(payload: bytes) -> NoteRepository:
    """Deserialize a repository written by repository_to_bytes.

    Raises:
        RepositoryFormatError: If the payload is not a valid repository.
    """
    return NoteRepository.from_dict(_load_json(payload))


def repository_revision_of(payload: bytes) -> int:
    """Read the revision of a serialized repository."""
    data = _load_json(payload)
    try:
        return int(data.get("revision", REPOSITORY_REVISION))
    except (TypeError, ValueError) as e:
        raise RepositoryFormatError(f"Invalid repository revision: {e}") from e


@dataclass
class CloudStorageToken:
    """OAuth2 token of a cloud storage provider."""

    access_token: str | None = None
    refresh_token: str | None = None
    expiry_date: datetime | None = None

    def set_expiry_from_seconds(self, seconds: int | None, now: datetime | None = None) -> None:
        if seconds is None:
            self.expiry_date = None
        else:
            self.expiry_date = (now or utc_now()) + timedelta(seconds=seconds)

    def needs_refresh(self, now: datetime | None = None) -> bool:
        """Check whether the access token should be refreshed before use.

        Without a refresh token nothing can be refreshed. Without an expiry
        date the token is assumed to be expired.
        """
        if self.refresh_token is None:
            return False
        if self.expiry_date is None:
            return True
        return self.expiry_date < (now or utc_now())

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry_date": _to_iso(self.expiry_date),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CloudStorageToken:
        return cls(
            access_token=data.get("access_token"),
            refresh_token=data.get("refresh_token"),
            expiry_date=_from_iso(data.get("expiry_date")),
        )


@dataclass
class CloudStorageCredentials:
    """Everything needed to access one cloud storage account."""

    cloud_storage_id: str
    url: str | None = None
    username: str | None = None
    password: str | None = None
    token: CloudStorageToken | None = None
    secure: bool = True

    def to_dict(self, include_password: bool = True) -> dict[str, Any]:
        return {
            "cloud_storage_id": self.cloud_storage_id,
            "url": self.url,
            "username": self.username,
            "password": self.password if include_password else None,
            "token": self.token.to_dict() if self.token else None,
            "secure": self.secure,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CloudStorageCredentials:
        return cls(
            cloud_storage_id=data["cloud_storage_id"],
            url=data.get("url"),
            username=data.get("username"),
            password=data.get("password"),
            token=CloudStorageToken.from_dict(data["token"]) if data.get("token") else None,
            secure=bool(data.get("secure", True)),
        )


@dataclass
class Settings:
    """Settings of one device.

    Change the transfer code with set_transfer_code(), which maintains the
    history; assigning `transfer_code` directly bypasses it.
    """

    revision: int = SETTINGS_REVISION
    credentials: CloudStorageCredentials | None = None
    transfer_code: str | None = None
    transfer_code_history: list[str] = field(default_factory=list)
    selected_encryption_algorithm: str = XCHACHA20_POLY1305
    selected_kdf: str = PBKDF2
    auto_sync_mode: AutoSyncMode = AutoSyncMode.COST_FREE_INTERNET_ONLY

    @property
    def has_cloud_storage(self) -> bool:
        return self.credentials is not None

    @property
    def has_transfer_code(self) -> bool:
        return bool(self.transfer_code and self.transfer_code.strip())

    def set_transfer_code(
        self, code: str | None, history_limit: int = TRANSFER_CODE_HISTORY_LIMIT
    ) -> None:
        """Replace the current transfer code, keeping the old one in the history.

        The history stays most-recent-first, free of duplicates, free of the
        current code and at most `history_limit` entries long.
        """
        if code == self.transfer_code:
            return
        history = [item for item in self.transfer_code_history if item != code]
        if self.transfer_code:
            history = [item for item in history if item != self.transfer_code]
            history.insert(0, self.transfer_code)
        self.transfer_code = code
        self.transfer_code_history = history[:history_limit]

    def clone(self) -> Settings:
        return copy.deepcopy(self)

    def to_dict(self, include_password: bool = True) -> dict[str, Any]:
        return {
            "revision": self.revision,
            "credentials": (
                self.credentials.to_dict(include_password=include_password)
                if self.credentials
                else None
            ),
            "transfer_code": self.transfer_code,
            "transfer_code_history": list(self.transfer_code_history),
            "selected_encryption_algorithm": self.selected_encryption_algorithm,
            "selected_kdf": self.selected_kdf,
            "auto_sync_mode": self.auto_sync_mode.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        algorithm = data.get("selected_encryption_algorithm", XCHACHA20_POLY1305)
        if algorithm not in default_symmetric_registry():
            # e.g. twofish_gcm from older installations, which cannot be written here
            logger.warning(f"Unsupported encryption algorithm {algorithm!r}, using {XCHACHA20_POLY1305}")
            algorithm = XCHACHA20_POLY1305
        try:
            return cls(
                revision=int(data.get("revision", SETTINGS_REVISION)),
                credentials=(
                    CloudStorageCredentials.from_dict(data["credentials"])
                    if data.get("credentials")
                    else None
                ),
                transfer_code=data.get("transfer_code"),
                transfer_code_history=list(data.get("transfer_code_history", [])),
                selected_encryption_algorithm=algorithm,
                selected_kdf=data.get("selected_kdf", PBKDF2),
                auto_sync_mode=AutoSyncMode(
                    data.get("auto_sync_mode", AutoSyncMode.COST_FREE_INTERNET_ONLY.value)
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RepositoryFormatError(f"Invalid settings: {e}") from e

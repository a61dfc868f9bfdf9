"""User visible texts of the sync stories and the error translation."""

from __future__ import annotations

from typing import Any

from notesync.client.cloud import AccessDeniedError, ConnectionFailedError
from notesync.client.models import RepositoryFormatError
from notesync.client.sync.types import MessageKey, UnsupportedRepositoryRevisionError
from notesync.core.crypto import (
    DecryptionFailedError,
    InvalidCipherFormatError,
    UnknownAlgorithmError,
    UnsupportedRevisionError,
)

TEXTS: dict[MessageKey, str] = {
    MessageKey.SYNC_SUCCESS: "The notes were successfully synchronized.",
    MessageKey.SYNC_REJECT: "The cloud storage did not grant access.",
    MessageKey.SYNC_ERROR_CONNECTION: "Could not connect to the cloud storage.",
    MessageKey.SYNC_ERROR_PRIVILEGES: "Access to the cloud storage was denied, "
    "please check the account.",
    MessageKey.SYNC_ERROR_REPOSITORY: "The repository in the cloud is damaged "
    "or was not written by this application.",
    MessageKey.SYNC_ERROR_REVISION: "The repository in the cloud was written by a newer "
    "version of the application, please update.",
    MessageKey.SYNC_ERROR_TRANSFERCODE: "The transfer code does not match the "
    "repository in the cloud.",
    MessageKey.SYNC_ERROR_GENERIC: "The synchronization failed.",
    MessageKey.TRANSFER_CODE_CREATED: "A new transfer code was created: {code}\n"
    "Keep it safe, other devices need it to read your notes.",
    MessageKey.PUSHPULL_SUCCESS: "The note was synchronized.",
    MessageKey.PUSHPULL_ERROR_NEED_SYNC_FIRST: "Please synchronize all notes first.",
    MessageKey.PUSHPULL_ERROR_NO_CLOUD_NOTE: "The note does not exist in the cloud.",
}


def render(key: MessageKey, **kwargs: Any) -> str:
    """Text of a message key with its placeholders filled in."""
    text = TEXTS.get(key, key.value)
    return text.format(**kwargs) if kwargs else text


def translate_exception(error: BaseException) -> MessageKey:
    """Pick the message shown for an error that ended a run."""
    if isinstance(error, ConnectionFailedError):
        return MessageKey.SYNC_ERROR_CONNECTION
    if isinstance(error, AccessDeniedError):
        return MessageKey.SYNC_ERROR_PRIVILEGES
    if isinstance(
        error, (InvalidCipherFormatError, UnknownAlgorithmError, RepositoryFormatError)
    ):
        return MessageKey.SYNC_ERROR_REPOSITORY
    if isinstance(error, (UnsupportedRevisionError, UnsupportedRepositoryRevisionError)):
        return MessageKey.SYNC_ERROR_REVISION
    if isinstance(error, DecryptionFailedError):
        return MessageKey.SYNC_ERROR_TRANSFERCODE
    return MessageKey.SYNC_ERROR_GENERIC

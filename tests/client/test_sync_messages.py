"""Tests for user visible texts and the error translation."""

import pytest

from notesync.client.cloud import AccessDeniedError, ConnectionFailedError
from notesync.client.models import RepositoryFormatError
from notesync.client.sync import (
    TEXTS,
    MessageKey,
    UnsupportedRepositoryRevisionError,
    render,
    translate_exception,
)
from notesync.core.crypto import (
    DecryptionFailedError,
    InvalidCipherFormatError,
    UnknownAlgorithmError,
    UnsupportedRevisionError,
)


class TestTranslateException:
    """Tests for translate_exception."""

    @pytest.mark.parametrize(
        ("error", "key"),
        [
            (ConnectionFailedError("offline"), MessageKey.SYNC_ERROR_CONNECTION),
            (AccessDeniedError("401"), MessageKey.SYNC_ERROR_PRIVILEGES),
            (InvalidCipherFormatError("bad"), MessageKey.SYNC_ERROR_REPOSITORY),
            (RepositoryFormatError("bad json"), MessageKey.SYNC_ERROR_REPOSITORY),
            (UnknownAlgorithmError("twofish_gcm"), MessageKey.SYNC_ERROR_REPOSITORY),
            (UnsupportedRevisionError(3, 2), MessageKey.SYNC_ERROR_REVISION),
            (UnsupportedRepositoryRevisionError(2, 1), MessageKey.SYNC_ERROR_REVISION),
            (DecryptionFailedError("tag"), MessageKey.SYNC_ERROR_TRANSFERCODE),
            (RuntimeError("boom"), MessageKey.SYNC_ERROR_GENERIC),
        ],
    )
    def test_mapping(self, error: Exception, key: MessageKey) -> None:
        assert translate_exception(error) == key


class TestRender:
    """Tests for render."""

    def test_every_key_has_a_text(self) -> None:
        assert set(TEXTS) == set(MessageKey)

    def test_fills_placeholders(self) -> None:
        text = render(MessageKey.TRANSFER_CODE_CREATED, code="abcd efgh ijkm npqr")
        assert "abcd efgh ijkm npqr" in text

    def test_plain_text(self) -> None:
        assert render(MessageKey.SYNC_SUCCESS) == TEXTS[MessageKey.SYNC_SUCCESS]

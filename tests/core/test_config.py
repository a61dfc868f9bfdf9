"""Tests for core configuration classes."""

from __future__ import annotations

import pytest

from notesync.core.config import REPOSITORY_FILE_NAME, SyncConfig


class TestSyncConfig:
    """Tests for SyncConfig class."""

    def test_defaults(self) -> None:
        """Should agree on the tags every device expects."""
        config = SyncConfig()
        assert config.package_name == "NoteSync"
        assert config.safe_package_name == "NoteSyncSafe"
        assert config.note_package_name == "NoteSyncNote"
        assert config.repository_file_name == REPOSITORY_FILE_NAME
        assert config.transfer_code_history_limit == 10
        assert config.default_algorithm == "xchacha20_poly1305"
        assert config.default_kdf == "pbkdf2"

    def test_custom_values(self) -> None:
        """Should accept custom tags and limits."""
        config = SyncConfig(package_name="OtherNotes", transfer_code_history_limit=3)
        assert config.package_name == "OtherNotes"
        assert config.transfer_code_history_limit == 3

    @pytest.mark.parametrize("package_name", ["", "Note$Sync", "NoteSync v=2"])
    def test_invalid_package_name(self, package_name: str) -> None:
        """Should reject tags that would break the envelope header."""
        with pytest.raises(ValueError, match="package name"):
            SyncConfig(package_name=package_name)

    def test_invalid_safe_package_name(self) -> None:
        """Should validate every tag, not only the repository one."""
        with pytest.raises(ValueError):
            SyncConfig(safe_package_name="Safe$")

    def test_empty_repository_file_name(self) -> None:
        """Should reject a blank repository file name."""
        with pytest.raises(ValueError, match="repository_file_name"):
            SyncConfig(repository_file_name="  ")

    def test_negative_history_limit(self) -> None:
        """Should reject a negative history limit."""
        with pytest.raises(ValueError, match="history"):
            SyncConfig(transfer_code_history_limit=-1)

"""Core module - Shared crypto, configuration and types."""

from notesync.core.config import (
    REPOSITORY_FILE_NAME,
    TRANSFER_CODE_HISTORY_LIMIT,
    SyncConfig,
)
from notesync.core.types import AutoSyncMode, Connectivity, SynchronizationType

__all__ = [
    # Config
    "REPOSITORY_FILE_NAME",
    "SyncConfig",
    "TRANSFER_CODE_HISTORY_LIMIT",
    # Types
    "AutoSyncMode",
    "Connectivity",
    "SynchronizationType",
]

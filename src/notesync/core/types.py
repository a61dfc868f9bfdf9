"""Shared types for notesync.

This module defines enums used by the models, the sync service and the CLI.
"""

from __future__ import annotations

from enum import Enum


class AutoSyncMode(str, Enum):
    """When the app may synchronize without being asked.

    Stored in the settings file, so values are stable strings.
    """

    NEVER = "never"
    COST_FREE_INTERNET_ONLY = "cost_free_internet_only"
    ALWAYS = "always"


class Connectivity(str, Enum):
    """Kind of network connection the device currently has."""

    NONE = "none"
    COST_FREE = "cost_free"
    METERED = "metered"


class SynchronizationType(str, Enum):
    """What triggered a sync run."""

    AT_STARTUP = "at_startup"
    MANUALLY = "manually"
    AT_SHUTDOWN = "at_shutdown"

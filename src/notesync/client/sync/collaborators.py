"""Services the sync steps talk to.

This module provides:
- FeedbackService: toasts, messages and the busy indicator
- NavigationService: opening dialogs and web pages
- Route: names of the dialogs a step can open
- SyncCollaborators: everything a step needs, passed explicitly
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from notesync.client.cloud import CloudClientFactory, default_cloud_client_factory
from notesync.client.merger import RepositoryMerger
from notesync.client.storage import LocalStorage
from notesync.core.config import SyncConfig
from notesync.core.crypto import (
    Cryptor,
    KeyDerivationRegistry,
    OsRandomSource,
    RandomSource,
    SymmetricAlgorithmRegistry,
)

logger = logging.getLogger(__name__)


class Route(str, Enum):
    """Dialogs and pages a step can navigate to."""

    FIRST_TIME_SYNC = "first_time_sync"
    CLOUD_STORAGE_CHOICE = "cloud_storage_choice"
    CLOUD_STORAGE_ACCOUNT = "cloud_storage_account"
    CLOUD_STORAGE_OAUTH_WAITING = "cloud_storage_oauth_waiting"
    TRANSFER_CODE = "transfer_code"
    MERGE_CHOICE = "merge_choice"
    NOTE_REPOSITORY = "note_repository"


class FeedbackService(Protocol):
    """Tells the user what happened."""

    def show_toast(self, text: str) -> None: ...

    async def show_message(self, text: str) -> None: ...

    def set_busy_indicator_visible(self, visible: bool) -> None: ...


class NavigationService(Protocol):
    """Opens dialogs and external pages."""

    def navigate_to(self, route: Route) -> None: ...

    def open_url(self, url: str) -> None: ...


class NullFeedback:
    """Feedback for headless runs: texts only go to the log."""

    def show_toast(self, text: str) -> None:
        logger.debug(f"Toast suppressed: {text}")

    async def show_message(self, text: str) -> None:
        logger.debug(f"Message suppressed: {text}")

    def set_busy_indicator_visible(self, visible: bool) -> None:
        pass


class NullNavigation:
    """Navigation for headless runs."""

    def navigate_to(self, route: Route) -> None:
        logger.debug(f"Navigation to {route.value} suppressed")

    def open_url(self, url: str) -> None:
        logger.debug("Opening a url suppressed")


@dataclass
class SyncCollaborators:
    """Everything the steps depend on.

    Attributes:
        storage: Local repository and settings.
        cloud_clients: Creates the client of the configured cloud storage.
        feedback: User notifications.
        navigation: Dialogs and browser.
        random_source: Randomness for nonces, salts and transfer codes.
        config: Application tags, file name and crypto defaults.
        symmetric_registry: Algorithms available to the Cryptor.
        kdf_registry: Key derivation functions available to the Cryptor.
        merger: Merges local and cloud repository.
    """

    storage: LocalStorage
    cloud_clients: CloudClientFactory = field(default_factory=default_cloud_client_factory)
    feedback: FeedbackService = field(default_factory=NullFeedback)
    navigation: NavigationService = field(default_factory=NullNavigation)
    random_source: RandomSource = field(default_factory=OsRandomSource)
    config: SyncConfig = field(default_factory=SyncConfig)
    symmetric_registry: SymmetricAlgorithmRegistry | None = None
    kdf_registry: KeyDerivationRegistry | None = None
    merger: RepositoryMerger = field(default_factory=RepositoryMerger)

    def make_cryptor(self) -> Cryptor:
        """Cryptor for repository envelopes."""
        return Cryptor(
            self.config.package_name,
            self.random_source,
            symmetric_registry=self.symmetric_registry,
            kdf_registry=self.kdf_registry,
        )

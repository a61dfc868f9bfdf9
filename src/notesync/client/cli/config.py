"""Configuration utilities for the NoteSync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from notesync.client.keystore import CredentialStore
from notesync.client.storage import JsonFileStorage
from notesync.client.sync import FeedbackService, NavigationService, SyncCollaborators

HOME_ENV_VAR = "NOTESYNC_HOME"


def get_config_dir() -> Path:
    """Get the configuration directory for NoteSync.

    Returns:
        Path from $NOTESYNC_HOME, or ~/.notesync.
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".notesync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def is_initialized() -> bool:
    return get_config_file().exists()


def use_keyring() -> bool:
    return load_config().get("use_keyring", "true") == "true"


def get_storage() -> JsonFileStorage:
    """Local storage in the configuration directory."""
    credential_store = CredentialStore() if use_keyring() else None
    return JsonFileStorage(get_config_dir(), credential_store=credential_store)


def build_collaborators(
    feedback: FeedbackService, navigation: NavigationService
) -> SyncCollaborators:
    return SyncCollaborators(storage=get_storage(), feedback=feedback, navigation=navigation)


def configure_logging(verbose: bool) -> None:
    """Route notesync log records to stderr."""
    notesync_logger = logging.getLogger("notesync")
    for handler in notesync_logger.handlers[:]:
        notesync_logger.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    notesync_logger.addHandler(handler)
    notesync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    notesync_logger.propagate = False

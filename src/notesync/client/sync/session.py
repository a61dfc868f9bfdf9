"""State carried from step to step during one synchronization run."""

from __future__ import annotations

from dataclasses import dataclass

from notesync.client.models import CloudStorageCredentials, NoteRepository


@dataclass
class SynchronizationSession:
    """Scratch data of one run, discarded when the run ends.

    Dialogs fill in what the user entered (credentials, a transfer code, an
    OAuth redirect) before resuming the run.
    """

    credentials: CloudStorageCredentials | None = None
    user_entered_transfer_code: str | None = None
    binary_cloud_repository: bytes | None = None
    cloud_repository: NoteRepository | None = None
    oauth_state: str | None = None
    oauth_code_verifier: str | None = None
    oauth_redirect_url: str | None = None

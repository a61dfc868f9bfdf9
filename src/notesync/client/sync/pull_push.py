"""Pull or push a single note without a full synchronization.

The story reuses the steps of the synchronization story but never shows
dialogs: whenever something needs the full story, it asks the user to
synchronize first.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum, auto

from notesync.client.models import Note, NoteRepository
from notesync.client.sync import steps
from notesync.client.sync.collaborators import SyncCollaborators
from notesync.client.sync.machine import SyncStepMachine
from notesync.client.sync.session import SynchronizationSession
from notesync.client.sync.steps import StepFunction
from notesync.client.sync.types import (
    VALID_TRANSITIONS,
    Continue,
    MessageKey,
    StepId,
    StepResult,
    StoryMode,
    SyncError,
    SyncOutcome,
    Terminate,
)

logger = logging.getLogger(__name__)

PULL_PUSH_MODE = StoryMode.TOASTS


class PullPushDirection(Enum):
    PULL_FROM_SERVER = auto()
    PUSH_TO_SERVER = auto()


@dataclass
class PullPushSession(SynchronizationSession):
    note_id: str = ""
    direction: PullPushDirection = PullPushDirection.PULL_FROM_SERVER


def _need_sync_first() -> Terminate:
    return Terminate(success=False, toast=MessageKey.PUSHPULL_ERROR_NEED_SYNC_FIRST)


def copy_note_into(source: Note, target: Note) -> None:
    """Overwrite every field of `target` except its id with those of `source`."""
    for note_field in dataclasses.fields(Note):
        if note_field.name != "id":
            setattr(target, note_field.name, copy.deepcopy(getattr(source, note_field.name)))


def add_safe_to_other_repository_if_missing(
    source: NoteRepository, target: NoteRepository, safe_id: str | None
) -> None:
    """Copy the safe of a moved note, so the target can still open the note."""
    if safe_id is None or target.find_safe(safe_id) is not None:
        return
    safe = source.find_safe(safe_id)
    if safe is not None:
        target.safes.append(copy.deepcopy(safe))


# =============================================================================
# Steps
# =============================================================================


async def pull_push_exists_cloud_repository(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    settings = ctx.storage.load_settings_or_default()
    if not settings.has_cloud_storage or not settings.has_transfer_code:
        return _need_sync_first()

    session.credentials = settings.credentials
    result = await steps.exists_cloud_repository(session, ctx, mode)
    if isinstance(result, Continue) and result.next_step == StepId.DOWNLOAD_CLOUD_REPOSITORY:
        return Continue(StepId.PULL_PUSH_DOWNLOAD)
    return _need_sync_first()


async def pull_push_download(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    await steps.download_cloud_repository(session, ctx, mode)
    return Continue(StepId.PULL_PUSH_DECRYPT)


async def pull_push_decrypt(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    result = await steps.decrypt_cloud_repository(session, ctx, mode)
    if not (isinstance(result, Continue) and result.next_step == StepId.IS_SAME_REPOSITORY):
        return _need_sync_first()

    local = ctx.storage.load_repository_or_default()
    if session.cloud_repository is None or session.cloud_repository.id != local.id:
        return _need_sync_first()
    return Continue(StepId.PULL_PUSH_STORE)


async def pull_push_store(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    if not isinstance(session, PullPushSession):
        raise SyncError("Pull/push needs a PullPushSession")
    cloud = session.cloud_repository
    if cloud is None:
        raise SyncError("Cloud repository was not decrypted")

    local = ctx.storage.load_repository_or_default()
    settings = ctx.storage.load_settings_or_default()
    local_note = local.find_note(session.note_id)
    if local_note is None:
        raise SyncError(f"Note {session.note_id} does not exist locally")

    cloud_note = cloud.find_note(session.note_id)
    if cloud_note is None:
        # Not uploaded yet or deleted for good, both need a full sync
        return Terminate(success=False, toast=MessageKey.PUSHPULL_ERROR_NO_CLOUD_NOTE)

    if cloud_note.modified_at == local_note.modified_at:
        return Terminate(success=True, toast=MessageKey.PUSHPULL_SUCCESS)

    if session.direction == PullPushDirection.PULL_FROM_SERVER:
        copy_note_into(cloud_note, local_note)
        add_safe_to_other_repository_if_missing(cloud, local, cloud_note.safe_id)
        if not ctx.storage.try_save_repository(local):
            raise SyncError("Could not save the repository")
        logger.info(f"Pulled note {session.note_id}")
    else:
        # A pushed note is the newest version, other devices must not overwrite it
        local_note.refresh_modified_at()
        if not ctx.storage.try_save_repository(local):
            raise SyncError("Could not save the repository")

        copy_note_into(local_note, cloud_note)
        add_safe_to_other_repository_if_missing(local, cloud, local_note.safe_id)
        if not settings.transfer_code:
            return _need_sync_first()
        blob = steps.encrypt_repository(ctx, cloud, settings.transfer_code, settings)
        credentials = steps.require_credentials(session)
        client = ctx.cloud_clients.get(credentials.cloud_storage_id)
        await client.upload_file(ctx.config.repository_file_name, blob, credentials)
        logger.info(f"Pushed note {session.note_id}")

    return Terminate(success=True, toast=MessageKey.PUSHPULL_SUCCESS)


PULL_PUSH_STEPS: dict[StepId, StepFunction] = {
    StepId.PULL_PUSH_EXISTS_CLOUD_REPOSITORY: pull_push_exists_cloud_repository,
    StepId.PULL_PUSH_DOWNLOAD: pull_push_download,
    StepId.PULL_PUSH_DECRYPT: pull_push_decrypt,
    StepId.PULL_PUSH_STORE: pull_push_store,
}


class PullPushStory:
    """Synchronizes one note in one direction, reporting only by toasts."""

    def __init__(self, collaborators: SyncCollaborators) -> None:
        self.machine = SyncStepMachine(
            collaborators, steps=PULL_PUSH_STEPS, transitions=VALID_TRANSITIONS
        )

    async def run(self, note_id: str, direction: PullPushDirection) -> SyncOutcome:
        session = PullPushSession(note_id=note_id, direction=direction)
        return await self.machine.run(
            StepId.PULL_PUSH_EXISTS_CLOUD_REPOSITORY, session, PULL_PUSH_MODE
        )

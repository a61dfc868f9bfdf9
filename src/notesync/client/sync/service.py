"""Entry points of synchronization runs.

This module provides:
- SynchronizationService: manual, startup, shutdown and resumed runs, code rotation
- should_synchronize: whether automatic syncs may use the current connection
"""

from __future__ import annotations

import logging

from notesync.client.models import repository_to_bytes
from notesync.client.modification import ModificationDetector
from notesync.client.resolver import TransferCodeResolver, candidate_codes
from notesync.client.sync.collaborators import SyncCollaborators
from notesync.client.sync.machine import SyncStepMachine
from notesync.client.sync.session import SynchronizationSession
from notesync.client.sync.state import SynchronizationState
from notesync.client.sync.steps import encrypt_for_cloud
from notesync.client.sync.types import SILENT_STEPS, StepId, StoryMode, SyncError, SyncOutcome
from notesync.core.types import AutoSyncMode, Connectivity, SynchronizationType

logger = logging.getLogger(__name__)


def should_synchronize(mode: AutoSyncMode, connectivity: Connectivity) -> bool:
    """Decide whether an automatic sync may run."""
    if mode == AutoSyncMode.NEVER or connectivity == Connectivity.NONE:
        return False
    if mode == AutoSyncMode.ALWAYS:
        return True
    return connectivity == Connectivity.COST_FREE


class SynchronizationService:
    """Starts synchronization runs, one at a time.

    A trigger arriving while another run is active is dropped and its
    method returns None.

    Args:
        collaborators: Services for the steps.
        state: Run guard (a fresh one by default).
        machine: Step machine (built from the collaborators by default).
    """

    def __init__(
        self,
        collaborators: SyncCollaborators,
        state: SynchronizationState | None = None,
        machine: SyncStepMachine | None = None,
    ) -> None:
        self.collaborators = collaborators
        self.state = state or SynchronizationState()
        self.machine = machine or SyncStepMachine(collaborators)
        self.modification_detector = ModificationDetector(self._local_fingerprint)

    def _local_fingerprint(self) -> str | None:
        return self.collaborators.storage.load_repository_or_default().modification_fingerprint()

    async def _run(
        self,
        sync_type: SynchronizationType,
        start: StepId,
        session: SynchronizationSession,
        mode: StoryMode,
        allowed_steps: frozenset[StepId] | None = None,
    ) -> SyncOutcome | None:
        if not self.state.try_start(sync_type):
            logger.info(f"Synchronization already running, ignoring {sync_type.value} trigger")
            return None
        try:
            logger.info(f"Synchronization {sync_type.value} started at {start.name}")
            outcome = await self.machine.run(start, session, mode, allowed_steps=allowed_steps)
            if outcome.success and outcome.awaiting is None:
                self.modification_detector.memorize_current_state()
            logger.info(
                f"Synchronization {sync_type.value} finished at {outcome.final_step.name} "
                f"(success={outcome.success})"
            )
            return outcome
        finally:
            self.state.stop()

    async def synchronize_manually(
        self,
        mode: StoryMode = StoryMode.GUI,
        session: SynchronizationSession | None = None,
    ) -> SyncOutcome | None:
        """Full interactive run, as triggered by the user.

        Args:
            mode: Which UI the run may use.
            session: Session to fill, so a dialog can resume the run with it.
        """
        return await self._run(
            SynchronizationType.MANUALLY,
            StepId.IS_CLOUD_SERVICE_SET,
            session if session is not None else SynchronizationSession(),
            mode,
        )

    async def synchronize_at_startup(
        self, connectivity: Connectivity | None = None
    ) -> SyncOutcome | None:
        """Headless run which never asks the user anything.

        It merges with an existing cloud repository, or uploads the local one
        to an empty cloud storage, creating a transfer code if there is none.

        Args:
            connectivity: Current connection; if given, the auto sync setting
                decides whether to run at all.
        """
        if connectivity is not None and not self._auto_sync_allowed(connectivity):
            return None
        return await self._run(
            SynchronizationType.AT_STARTUP,
            StepId.IS_CLOUD_SERVICE_SET,
            SynchronizationSession(),
            StoryMode.SILENT,
            allowed_steps=SILENT_STEPS,
        )

    async def synchronize_at_shutdown(
        self, connectivity: Connectivity | None = None
    ) -> SyncOutcome | None:
        """Headless run, skipped if nothing changed since the last sync."""
        if connectivity is not None and not self._auto_sync_allowed(connectivity):
            return None
        if not self.modification_detector.is_modified():
            logger.info("No changes since the last synchronization, skipping")
            return None
        return await self._run(
            SynchronizationType.AT_SHUTDOWN,
            StepId.IS_CLOUD_SERVICE_SET,
            SynchronizationSession(),
            StoryMode.SILENT,
            allowed_steps=SILENT_STEPS,
        )

    async def resume(
        self,
        step: StepId,
        session: SynchronizationSession,
        mode: StoryMode = StoryMode.GUI,
    ) -> SyncOutcome | None:
        """Continue a run after a dialog was answered.

        The dialog stores the user's input in the session and names the step
        to continue with, e.g. DECRYPT_CLOUD_REPOSITORY after a transfer code
        was entered.
        """
        return await self._run(SynchronizationType.MANUALLY, step, session, mode)

    async def change_transfer_code(self, new_code: str) -> bool:
        """Re-encrypt the cloud repository with a new transfer code.

        The cloud content is re-encrypted as it is, without merging. The new
        code is saved only after the upload succeeded, the old one stays in the
        history.

        Returns:
            False if another run is active.

        Raises:
            SyncError: If the device never synchronized, or none of its codes
                decrypts the cloud repository.
        """
        if not self.state.try_start(SynchronizationType.MANUALLY):
            return False
        try:
            ctx = self.collaborators
            settings = ctx.storage.load_settings_or_default()
            credentials = settings.credentials
            if credentials is None or not settings.has_transfer_code:
                raise SyncError("Synchronize once before changing the transfer code")

            client = ctx.cloud_clients.get(credentials.cloud_storage_id)
            filename = ctx.config.repository_file_name
            if await client.exists_file(filename, credentials):
                blob = await client.download_file(filename, credentials)
                resolver = TransferCodeResolver(ctx.make_cryptor())
                resolved = resolver.try_decrypt(blob, candidate_codes(settings))
                if resolved is None:
                    raise SyncError("No stored transfer code decrypts the cloud repository")
                payload = resolved.plaintext
            else:
                payload = repository_to_bytes(ctx.storage.load_repository_or_default())

            await client.upload_file(
                filename, encrypt_for_cloud(ctx, payload, new_code, settings), credentials
            )
            settings.set_transfer_code(new_code, history_limit=ctx.config.transfer_code_history_limit)
            ctx.storage.try_save_settings(settings)
            logger.info("Transfer code changed")
            return True
        finally:
            self.state.stop()

    def _auto_sync_allowed(self, connectivity: Connectivity) -> bool:
        settings = self.collaborators.storage.load_settings_or_default()
        allowed = should_synchronize(settings.auto_sync_mode, connectivity)
        if not allowed:
            logger.debug(
                f"Auto sync {settings.auto_sync_mode.value} not allowed on {connectivity.value}"
            )
        return allowed

"""Steps of the synchronization story.

Every step is an async function taking the session, the collaborators and
the story mode, and returning Continue or Terminate. Steps raise on errors;
the machine turns exceptions into a single user message.

Persistence happens inside the step that decides it, so a run aborted
halfway leaves everything written so far consistent.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from notesync.client.cloud import (
    CloudStorageClient,
    InvalidParameterError,
    OAuth2CloudStorageClient,
    RefreshTokenExpiredError,
)
from notesync.client.models import (
    REPOSITORY_REVISION,
    CloudStorageCredentials,
    NoteRepository,
    Settings,
    repository_from_bytes,
    repository_revision_of,
    repository_to_bytes,
)
from notesync.client.resolver import TransferCodeResolver
from notesync.client.sync.collaborators import Route, SyncCollaborators
from notesync.client.sync.session import SynchronizationSession
from notesync.client.sync.types import (
    Continue,
    MessageKey,
    StepId,
    StepResult,
    StoryMode,
    SyncError,
    Terminate,
    UnsupportedRepositoryRevisionError,
)
from notesync.client.transfer_code import (
    format_for_display,
    generate_transfer_code,
    is_code_set,
)
from notesync.core.crypto import (
    COMPRESSION_GZIP,
    CostTier,
    DecryptionFailedError,
    generate_random_base62,
)

logger = logging.getLogger(__name__)

StepFunction = Callable[[SynchronizationSession, SyncCollaborators, StoryMode], Awaitable[StepResult]]

OAUTH_STATE_LENGTH = 16
OAUTH_CODE_VERIFIER_LENGTH = 64


# =============================================================================
# Helpers
# =============================================================================


def _show_dialog(step: StepId, route: Route, ctx: SyncCollaborators, mode: StoryMode) -> StepResult:
    """Open a dialog, or end silently if the mode has no dialogs."""
    if StoryMode.DIALOGS not in mode:
        logger.debug(f"{step.name} needs a dialog, stopping")
        return Terminate(success=False)
    ctx.navigation.navigate_to(route)
    return Terminate(success=True, awaiting=step)


def require_credentials(session: SynchronizationSession) -> CloudStorageCredentials:
    if session.credentials is None:
        raise InvalidParameterError("No cloud storage credentials")
    return session.credentials


def _cloud_client(ctx: SyncCollaborators, credentials: CloudStorageCredentials) -> CloudStorageClient:
    return ctx.cloud_clients.get(credentials.cloud_storage_id)


def _save_credentials_if_changed(ctx: SyncCollaborators, credentials: CloudStorageCredentials) -> None:
    settings = ctx.storage.load_settings_or_default()
    if settings.credentials != credentials:
        settings.credentials = credentials
        ctx.storage.try_save_settings(settings)


def encrypt_for_cloud(
    ctx: SyncCollaborators,
    payload: bytes,
    transfer_code: str,
    settings: Settings,
) -> bytes:
    """Encrypt a serialized repository for the cloud with a transfer code.

    Transfer codes have high entropy, so the low KDF cost is enough.
    """
    return ctx.make_cryptor().encrypt(
        payload,
        transfer_code,
        CostTier.LOW,
        settings.selected_encryption_algorithm or ctx.config.default_algorithm,
        settings.selected_kdf or ctx.config.default_kdf,
        compression=COMPRESSION_GZIP,
    )


def encrypt_repository(
    ctx: SyncCollaborators,
    repository: NoteRepository,
    transfer_code: str,
    settings: Settings,
) -> bytes:
    return encrypt_for_cloud(ctx, repository_to_bytes(repository), transfer_code, settings)


# =============================================================================
# Steps
# =============================================================================


async def is_cloud_service_set(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    settings = ctx.storage.load_settings_or_default()
    session.credentials = settings.credentials
    if settings.has_cloud_storage:
        return Continue(StepId.EXISTS_CLOUD_REPOSITORY)
    return Continue(StepId.SHOW_FIRST_TIME_DIALOG)


async def show_first_time_dialog(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    return _show_dialog(StepId.SHOW_FIRST_TIME_DIALOG, Route.FIRST_TIME_SYNC, ctx, mode)


async def show_cloud_storage_choice(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    return _show_dialog(StepId.SHOW_CLOUD_STORAGE_CHOICE, Route.CLOUD_STORAGE_CHOICE, ctx, mode)


async def show_cloud_storage_account(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    """Ask for the account of the chosen cloud storage.

    OAuth2 storages log in through the browser; the redirect resumes the
    story at HANDLE_OAUTH_REDIRECT.
    """
    if mode != StoryMode.GUI:
        return Terminate(success=False)
    if session.credentials is None:
        return _show_dialog(StepId.SHOW_CLOUD_STORAGE_CHOICE, Route.CLOUD_STORAGE_CHOICE, ctx, mode)

    client = _cloud_client(ctx, session.credentials)
    if isinstance(client, OAuth2CloudStorageClient):
        session.oauth_state = generate_random_base62(OAUTH_STATE_LENGTH, ctx.random_source)
        session.oauth_code_verifier = generate_random_base62(
            OAUTH_CODE_VERIFIER_LENGTH, ctx.random_source
        )
        url = client.build_authorization_url(session.oauth_state, session.oauth_code_verifier)
        ctx.navigation.navigate_to(Route.CLOUD_STORAGE_OAUTH_WAITING)
        ctx.navigation.open_url(url)
        return Terminate(success=True, awaiting=StepId.SHOW_CLOUD_STORAGE_ACCOUNT)

    ctx.navigation.navigate_to(Route.CLOUD_STORAGE_ACCOUNT)
    return Terminate(success=True, awaiting=StepId.SHOW_CLOUD_STORAGE_ACCOUNT)


async def handle_oauth_redirect(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    credentials = require_credentials(session)
    if not (session.oauth_redirect_url and session.oauth_state and session.oauth_code_verifier):
        raise InvalidParameterError("OAuth redirect is missing its state")

    client = _cloud_client(ctx, credentials)
    if not isinstance(client, OAuth2CloudStorageClient):
        raise InvalidParameterError(f"{credentials.cloud_storage_id} does not use OAuth2")

    token = await client.fetch_token(
        session.oauth_redirect_url, session.oauth_state, session.oauth_code_verifier
    )
    if token is None:
        logger.info("OAuth2 login was rejected")
        return Continue(StepId.STOP_AND_SHOW_REPOSITORY, toast=MessageKey.SYNC_REJECT)

    credentials.token = token
    _save_credentials_if_changed(ctx, credentials)
    return Continue(StepId.EXISTS_CLOUD_REPOSITORY)


async def exists_cloud_repository(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    credentials = require_credentials(session)
    client = _cloud_client(ctx, credentials)

    if (
        isinstance(client, OAuth2CloudStorageClient)
        and credentials.token is not None
        and credentials.token.needs_refresh()
    ):
        try:
            credentials.token = await client.refresh_token(credentials.token)
        except RefreshTokenExpiredError:
            logger.info("OAuth2 refresh token expired, a new login is required")
            return Continue(StepId.SHOW_CLOUD_STORAGE_ACCOUNT)

    exists = await client.exists_file(ctx.config.repository_file_name, credentials)
    _save_credentials_if_changed(ctx, credentials)

    if exists:
        return Continue(StepId.DOWNLOAD_CLOUD_REPOSITORY)
    return Continue(StepId.STORE_LOCAL_REPOSITORY_TO_CLOUD_AND_QUIT)


async def download_cloud_repository(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    # A resumed run already has the blob
    if session.binary_cloud_repository is None:
        credentials = require_credentials(session)
        client = _cloud_client(ctx, credentials)
        session.binary_cloud_repository = await client.download_file(
            ctx.config.repository_file_name, credentials
        )
    return Continue(StepId.EXISTS_TRANSFER_CODE)


async def exists_transfer_code(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    settings = ctx.storage.load_settings_or_default()
    if settings.has_transfer_code or is_code_set(session.user_entered_transfer_code):
        return Continue(StepId.DECRYPT_CLOUD_REPOSITORY)
    return Continue(StepId.SHOW_TRANSFER_CODE)


async def show_transfer_code(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    return _show_dialog(StepId.SHOW_TRANSFER_CODE, Route.TRANSFER_CODE, ctx, mode)


async def decrypt_cloud_repository(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    """Decrypt the downloaded repository with the user's or the stored codes.

    A code typed in by the user which does not fit ends the run with an
    error. If none of the stored codes fit, the user is asked for a code.
    """
    if session.binary_cloud_repository is None:
        raise SyncError("Cloud repository was not downloaded")

    settings = ctx.storage.load_settings_or_default()
    resolver = TransferCodeResolver(ctx.make_cryptor())
    resolved, adopted = resolver.resolve(
        session.binary_cloud_repository,
        settings,
        user_entered_code=session.user_entered_transfer_code,
        history_limit=ctx.config.transfer_code_history_limit,
    )

    if resolved is None:
        if session.user_entered_transfer_code:
            return Terminate(
                success=False,
                error=DecryptionFailedError("The entered transfer code does not match"),
            )
        return Continue(StepId.SHOW_TRANSFER_CODE)

    if adopted:
        ctx.storage.try_save_settings(settings)

    revision = repository_revision_of(resolved.plaintext)
    if revision > REPOSITORY_REVISION:
        raise UnsupportedRepositoryRevisionError(revision, REPOSITORY_REVISION)

    session.cloud_repository = repository_from_bytes(resolved.plaintext)
    return Continue(StepId.IS_SAME_REPOSITORY)


async def is_same_repository(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    if session.cloud_repository is None:
        raise SyncError("Cloud repository was not decrypted")
    local = ctx.storage.load_repository_or_default()
    if local.id == session.cloud_repository.id:
        return Continue(StepId.STORE_MERGED_REPOSITORY_AND_QUIT)
    logger.info("Local and cloud repository are unrelated")
    return Continue(StepId.SHOW_MERGE_CHOICE)


async def show_merge_choice(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    return _show_dialog(StepId.SHOW_MERGE_CHOICE, Route.MERGE_CHOICE, ctx, mode)


async def store_merged_repository_and_quit(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    """Merge, then write locally and to the cloud only what actually changed."""
    cloud = session.cloud_repository
    if cloud is None:
        raise SyncError("Cloud repository was not decrypted")
    credentials = require_credentials(session)
    local = ctx.storage.load_repository_or_default()
    settings = ctx.storage.load_settings_or_default()

    merged = ctx.merger.merge(local, cloud)
    merged_fingerprint = merged.modification_fingerprint()

    if merged_fingerprint != local.modification_fingerprint():
        if not ctx.storage.try_save_repository(merged):
            raise SyncError("Could not save the merged repository")
        logger.info("Saved merged repository")

    if merged_fingerprint != cloud.modification_fingerprint():
        if not settings.transfer_code:
            raise SyncError("No transfer code to encrypt with")
        blob = encrypt_repository(ctx, merged, settings.transfer_code, settings)
        client = _cloud_client(ctx, credentials)
        await client.upload_file(ctx.config.repository_file_name, blob, credentials)
        logger.info("Uploaded merged repository")

    return Continue(StepId.STOP_AND_SHOW_REPOSITORY, toast=MessageKey.SYNC_SUCCESS)


async def store_local_repository_to_cloud_and_quit(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    """Upload the local repository, creating a transfer code if there is none.

    A new code is only saved after the upload succeeded, so a failed upload
    cannot leave the device with a code nobody else knows.
    """
    credentials = require_credentials(session)
    local = ctx.storage.load_repository_or_default()
    settings = ctx.storage.load_settings_or_default()

    transfer_code = settings.transfer_code
    created = not is_code_set(transfer_code)
    if created or transfer_code is None:
        transfer_code = generate_transfer_code(ctx.random_source)

    blob = encrypt_repository(ctx, local, transfer_code, settings)
    client = _cloud_client(ctx, credentials)
    await client.upload_file(ctx.config.repository_file_name, blob, credentials)
    logger.info("Uploaded local repository")

    if not created:
        return Continue(StepId.STOP_AND_SHOW_REPOSITORY, toast=MessageKey.SYNC_SUCCESS)

    settings.set_transfer_code(
        transfer_code, history_limit=ctx.config.transfer_code_history_limit
    )
    ctx.storage.try_save_settings(settings)
    return Continue(
        StepId.STOP_AND_SHOW_REPOSITORY,
        toast=MessageKey.SYNC_SUCCESS,
        message=MessageKey.TRANSFER_CODE_CREATED,
        message_args={"code": format_for_display(transfer_code)},
    )


async def store_cloud_repository_to_device_and_quit(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    if session.cloud_repository is None:
        raise SyncError("Cloud repository was not decrypted")
    if not ctx.storage.try_save_repository(session.cloud_repository):
        raise SyncError("Could not save the cloud repository")
    logger.info("Replaced local repository with the cloud repository")
    return Continue(StepId.STOP_AND_SHOW_REPOSITORY, toast=MessageKey.SYNC_SUCCESS)


async def stop_and_show_repository(
    session: SynchronizationSession, ctx: SyncCollaborators, mode: StoryMode
) -> StepResult:
    if StoryMode.DIALOGS in mode:
        ctx.navigation.navigate_to(Route.NOTE_REPOSITORY)
    return Terminate(success=True)


SYNC_STEPS: dict[StepId, StepFunction] = {
    StepId.IS_CLOUD_SERVICE_SET: is_cloud_service_set,
    StepId.SHOW_FIRST_TIME_DIALOG: show_first_time_dialog,
    StepId.SHOW_CLOUD_STORAGE_CHOICE: show_cloud_storage_choice,
    StepId.SHOW_CLOUD_STORAGE_ACCOUNT: show_cloud_storage_account,
    StepId.HANDLE_OAUTH_REDIRECT: handle_oauth_redirect,
    StepId.EXISTS_CLOUD_REPOSITORY: exists_cloud_repository,
    StepId.DOWNLOAD_CLOUD_REPOSITORY: download_cloud_repository,
    StepId.EXISTS_TRANSFER_CODE: exists_transfer_code,
    StepId.SHOW_TRANSFER_CODE: show_transfer_code,
    StepId.DECRYPT_CLOUD_REPOSITORY: decrypt_cloud_repository,
    StepId.IS_SAME_REPOSITORY: is_same_repository,
    StepId.SHOW_MERGE_CHOICE: show_merge_choice,
    StepId.STORE_MERGED_REPOSITORY_AND_QUIT: store_merged_repository_and_quit,
    StepId.STORE_LOCAL_REPOSITORY_TO_CLOUD_AND_QUIT: store_local_repository_to_cloud_and_quit,
    StepId.STORE_CLOUD_REPOSITORY_TO_DEVICE_AND_QUIT: store_cloud_repository_to_device_and_quit,
    StepId.STOP_AND_SHOW_REPOSITORY: stop_and_show_repository,
}

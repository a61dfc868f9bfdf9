"""Synchronization commands for the NoteSync CLI.

Commands:
- sync: Synchronize the notes with the cloud storage
- pull-push: Pull or push a single note
"""

from __future__ import annotations

import asyncio
import sys

import click

from notesync.client.cli.config import build_collaborators, get_storage, is_initialized
from notesync.client.notifications import ConsoleFeedback, ConsoleNavigation
from notesync.client.sync import (
    MessageKey,
    PullPushDirection,
    PullPushStory,
    StepId,
    StoryMode,
    SynchronizationService,
    SynchronizationSession,
    SyncOutcome,
    render,
)
from notesync.client.transfer_code import format_for_display, try_sanitize_user_input

# Interactive runs without navigation dialogs: the CLI answers them itself
CLI_MODE = StoryMode.GUI

MERGE_CHOICES = {
    "merge": StepId.STORE_MERGED_REPOSITORY_AND_QUIT,
    "local": StepId.STORE_LOCAL_REPOSITORY_TO_CLOUD_AND_QUIT,
    "cloud": StepId.STORE_CLOUD_REPOSITORY_TO_DEVICE_AND_QUIT,
}


def _require_initialized() -> None:
    if not is_initialized():
        click.echo("Error: NoteSync not initialized. Run 'notesync init' first.", err=True)
        sys.exit(1)


def _ask_transfer_code(preset: str | None) -> str:
    raw = preset if preset is not None else click.prompt("Transfer code")
    code = try_sanitize_user_input(raw)
    if code is None:
        click.echo("Error: This is not a valid transfer code.", err=True)
        sys.exit(1)
    return code


async def _run_interactive(
    service: SynchronizationService,
    transfer_code: str | None,
    merge_choice: str | None,
) -> SyncOutcome | None:
    """Run the story, answering its dialogs on the terminal."""
    session = SynchronizationSession()
    outcome = await service.synchronize_manually(CLI_MODE, session=session)

    while outcome is not None and outcome.awaiting is not None:
        if outcome.awaiting == StepId.SHOW_TRANSFER_CODE:
            click.echo("The cloud repository is protected by a transfer code from another device.")
            session.user_entered_transfer_code = _ask_transfer_code(transfer_code)
            # A preset code is only tried once
            transfer_code = None
            outcome = await service.resume(StepId.DECRYPT_CLOUD_REPOSITORY, session, CLI_MODE)
        elif outcome.awaiting == StepId.SHOW_MERGE_CHOICE:
            click.echo("The cloud holds a different repository than this device.")
            choice = merge_choice or click.prompt(
                "Merge both, keep the local notes or keep the cloud notes?",
                type=click.Choice(list(MERGE_CHOICES)),
                default="merge",
            )
            merge_choice = None
            outcome = await service.resume(MERGE_CHOICES[choice], session, CLI_MODE)
        elif outcome.awaiting in (
            StepId.SHOW_FIRST_TIME_DIALOG,
            StepId.SHOW_CLOUD_STORAGE_CHOICE,
        ):
            click.echo("Error: No cloud storage configured.", err=True)
            click.echo("Run 'notesync cloud set-folder' or 'notesync cloud set-webdav' first.", err=True)
            sys.exit(1)
        else:
            click.echo("Error: The cloud storage login is no longer valid.", err=True)
            click.echo("Configure the cloud storage again with 'notesync cloud'.", err=True)
            sys.exit(1)
    return outcome


@click.command()
@click.option("--silent", is_flag=True, help="Never ask, skip the run if a question would be needed.")
@click.option("--transfer-code", "transfer_code", default=None, help="Transfer code to use if asked.")
@click.option(
    "--merge-choice",
    type=click.Choice(list(MERGE_CHOICES)),
    default=None,
    help="What to do if the cloud holds a different repository.",
)
def sync(silent: bool, transfer_code: str | None, merge_choice: str | None) -> None:
    """Synchronize the notes with the cloud storage.

    The first device creates the cloud repository and shows a new transfer
    code. Other devices ask for this code once.
    """
    _require_initialized()
    collaborators = build_collaborators(ConsoleFeedback(), ConsoleNavigation())
    service = SynchronizationService(collaborators)

    if silent:
        outcome = asyncio.run(service.synchronize_at_startup())
    else:
        outcome = asyncio.run(_run_interactive(service, transfer_code, merge_choice))

    if outcome is None:
        click.echo("Error: A synchronization is already running.", err=True)
        sys.exit(1)
    if outcome.error is not None:
        sys.exit(1)
    if silent and not outcome.success:
        click.echo("Nothing synchronized, run 'notesync sync' without --silent.")
    elif silent and MessageKey.TRANSFER_CODE_CREATED in outcome.message_keys:
        # Silent runs show no messages, but the new code must not go unnoticed
        code = get_storage().load_settings_or_default().transfer_code
        click.echo(render(MessageKey.TRANSFER_CODE_CREATED, code=format_for_display(code)))


@click.command("pull-push")
@click.argument("note_id")
@click.option("--pull", "direction", flag_value="pull", default=True, help="Take the cloud version.")
@click.option("--push", "direction", flag_value="push", help="Send the local version.")
def pull_push(note_id: str, direction: str) -> None:
    """Pull or push a single note without a full synchronization."""
    _require_initialized()
    collaborators = build_collaborators(ConsoleFeedback(), ConsoleNavigation())
    story = PullPushStory(collaborators)
    pull_push_direction = (
        PullPushDirection.PUSH_TO_SERVER if direction == "push" else PullPushDirection.PULL_FROM_SERVER
    )
    outcome = asyncio.run(story.run(note_id, pull_push_direction))
    if not outcome.success:
        sys.exit(1)

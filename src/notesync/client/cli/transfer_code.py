"""Transfer code commands for the NoteSync CLI.

Commands:
- transfer-code show: Show the current transfer code
- transfer-code history: Show previous transfer codes
- transfer-code set: Use a transfer code from another device
- transfer-code new: Re-encrypt the cloud repository with a new code
"""

from __future__ import annotations

import asyncio
import sys

import click

from notesync.client.cli.config import build_collaborators, get_storage, is_initialized
from notesync.client.cloud import CloudStorageError
from notesync.client.notifications import ConsoleFeedback, ConsoleNavigation
from notesync.client.sync import SyncError, SynchronizationService
from notesync.client.transfer_code import (
    format_for_display,
    generate_transfer_code,
    try_sanitize_user_input,
)
from notesync.core.crypto import CryptoError, OsRandomSource


@click.group("transfer-code")
def transfer_code() -> None:
    """Show or change the transfer code."""
    if not is_initialized():
        click.echo("Error: NoteSync not initialized. Run 'notesync init' first.", err=True)
        sys.exit(1)


@transfer_code.command("show")
def show() -> None:
    """Show the current transfer code."""
    settings = get_storage().load_settings_or_default()
    if not settings.has_transfer_code:
        click.echo("No transfer code yet, it is created by the first synchronization.")
        return
    click.echo(format_for_display(settings.transfer_code))


@transfer_code.command("history")
def history() -> None:
    """Show previous transfer codes, most recent first."""
    settings = get_storage().load_settings_or_default()
    if not settings.transfer_code_history:
        click.echo("No previous transfer codes.")
        return
    for code in settings.transfer_code_history:
        click.echo(format_for_display(code))


@transfer_code.command("set")
@click.argument("code")
def set_code(code: str) -> None:
    """Use the transfer code shown on another device."""
    sanitized = try_sanitize_user_input(code)
    if sanitized is None:
        click.echo("Error: This is not a valid transfer code.", err=True)
        sys.exit(1)

    storage = get_storage()
    settings = storage.load_settings_or_default()
    settings.set_transfer_code(sanitized)
    if not storage.try_save_settings(settings):
        click.echo("Error: Could not save the settings.", err=True)
        sys.exit(1)
    click.echo(f"Transfer code set: {format_for_display(sanitized)}")


@transfer_code.command("new")
def new() -> None:
    """Re-encrypt the cloud repository with a new transfer code.

    Other devices will ask for the new code on their next synchronization.
    """
    code = generate_transfer_code(OsRandomSource())
    service = SynchronizationService(build_collaborators(ConsoleFeedback(), ConsoleNavigation()))
    try:
        changed = asyncio.run(service.change_transfer_code(code))
    except (SyncError, CloudStorageError, CryptoError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not changed:
        click.echo("Error: A synchronization is already running.", err=True)
        sys.exit(1)
    click.echo(f"New transfer code: {format_for_display(code)}")
    click.echo("Enter it on your other devices.")

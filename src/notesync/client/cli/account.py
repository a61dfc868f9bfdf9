"""Device setup commands for the NoteSync CLI.

Commands:
- init: Initialize the local repository and settings
- cloud set-folder: Use a local or mounted folder as cloud storage
- cloud set-webdav: Use a WebDAV server as cloud storage
- cloud show: Show the configured cloud storage
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from notesync.client.cli.config import (
    get_config_dir,
    get_storage,
    is_initialized,
    save_config,
)
from notesync.client.cloud import FOLDER_STORAGE_ID, WEBDAV_STORAGE_ID
from notesync.client.models import CloudStorageCredentials
from notesync.client.storage import StorageError
from notesync.core.crypto import default_kdf_registry, default_symmetric_registry


def _require_initialized() -> None:
    if not is_initialized():
        click.echo("Error: NoteSync not initialized. Run 'notesync init' first.", err=True)
        sys.exit(1)


@click.command()
@click.option(
    "--algorithm",
    type=click.Choice(default_symmetric_registry().names()),
    default=None,
    help="Encryption algorithm for the cloud repository.",
)
@click.option(
    "--kdf",
    type=click.Choice(default_kdf_registry().names()),
    default=None,
    help="Key derivation function for the transfer code.",
)
@click.option(
    "--no-keyring",
    is_flag=True,
    help="Keep the cloud password in the settings file instead of the OS keyring.",
)
def init(algorithm: str | None, kdf: str | None, no_keyring: bool) -> None:
    """Initialize NoteSync on this device.

    Creates an empty note repository and the device settings.
    """
    config_dir = get_config_dir()
    if is_initialized():
        click.echo("Error: NoteSync already initialized.", err=True)
        click.echo(f"Configuration exists at: {config_dir}", err=True)
        sys.exit(1)

    save_config({"use_keyring": "false" if no_keyring else "true"})
    storage = get_storage()
    try:
        repository = storage.load_repository_or_default()
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    settings = storage.load_settings_or_default()
    if algorithm:
        settings.selected_encryption_algorithm = algorithm
    if kdf:
        settings.selected_kdf = kdf
    if not storage.try_save_settings(settings):
        click.echo("Error: Could not save the settings.", err=True)
        sys.exit(1)

    click.echo(f"Initialized NoteSync in {config_dir}")
    click.echo(f"Repository: {repository.id}")
    click.echo("\nNext, choose a cloud storage:")
    click.echo("  notesync cloud set-folder <path>")
    click.echo("  notesync cloud set-webdav <url> --username <name>")


def _save_credentials(credentials: CloudStorageCredentials) -> None:
    storage = get_storage()
    settings = storage.load_settings_or_default()
    settings.credentials = credentials
    if not storage.try_save_settings(settings):
        click.echo("Error: Could not save the settings.", err=True)
        sys.exit(1)


@click.group()
def cloud() -> None:
    """Configure the cloud storage."""


@cloud.command("set-folder")
@click.argument("path", type=click.Path(file_okay=False))
def set_folder(path: str) -> None:
    """Store the repository in a folder (e.g. one synchronized by another tool)."""
    _require_initialized()
    folder = Path(path).expanduser().resolve()
    if not folder.is_dir():
        click.echo(f"Error: Folder does not exist: {folder}", err=True)
        sys.exit(1)

    _save_credentials(CloudStorageCredentials(cloud_storage_id=FOLDER_STORAGE_ID, url=str(folder)))
    click.echo(f"Cloud storage: folder {folder}")


@cloud.command("set-webdav")
@click.argument("url")
@click.option("--username", "-u", required=True, help="WebDAV user name.")
@click.option("--password", "-p", default=None, help="WebDAV password (prompted if omitted).")
@click.option("--insecure", is_flag=True, help="Allow plain http.")
def set_webdav(url: str, username: str, password: str | None, insecure: bool) -> None:
    """Store the repository on a WebDAV server."""
    _require_initialized()
    if not insecure and not url.startswith("https://"):
        click.echo("Error: WebDAV url must use https (or pass --insecure).", err=True)
        sys.exit(1)

    if password is None:
        password = click.prompt("WebDAV password", hide_input=True)

    _save_credentials(
        CloudStorageCredentials(
            cloud_storage_id=WEBDAV_STORAGE_ID,
            url=url,
            username=username,
            password=password,
            secure=not insecure,
        )
    )
    click.echo(f"Cloud storage: WebDAV {url} as {username}")


@cloud.command("show")
def show() -> None:
    """Show the configured cloud storage."""
    _require_initialized()
    credentials = get_storage().load_settings_or_default().credentials
    if credentials is None:
        click.echo("No cloud storage configured.")
        return
    click.echo(f"Storage: {credentials.cloud_storage_id}")
    if credentials.url:
        click.echo(f"Location: {credentials.url}")
    if credentials.username:
        click.echo(f"User: {credentials.username}")

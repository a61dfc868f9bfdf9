"""Command-line interface for NoteSync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Initialize NoteSync on this device
- cloud: Configure the cloud storage
- sync: Synchronize the notes with the cloud storage
- pull-push: Pull or push a single note
- transfer-code: Show or change the transfer code
- note: Manage the local notes
- envelope: Inspect encrypted blobs
"""

from __future__ import annotations

import click

from notesync.client.cli.account import cloud, init
from notesync.client.cli.config import (
    configure_logging,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from notesync.client.cli.envelope import envelope
from notesync.client.cli.note import note
from notesync.client.cli.sync import pull_push, sync
from notesync.client.cli.transfer_code import transfer_code


@click.group()
@click.version_option(package_name="notesync")
@click.option("--verbose", "-v", is_flag=True, help="Show debug log output.")
def cli(verbose: bool) -> None:
    """NoteSync - end-to-end encrypted notes synchronized through any cloud storage."""
    configure_logging(verbose)


# Setup commands
cli.add_command(init)
cli.add_command(cloud)

# Sync commands
cli.add_command(sync)
cli.add_command(pull_push)
cli.add_command(transfer_code)

# Content commands
cli.add_command(note)
cli.add_command(envelope)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]

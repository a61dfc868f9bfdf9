"""Envelope inspection command for the NoteSync CLI.

Commands:
- envelope inspect: Print the header of an encrypted blob
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from notesync.core.config import SyncConfig
from notesync.core.crypto import CryptoError, unpack


@click.group()
def envelope() -> None:
    """Work with encrypted blobs."""


@envelope.command("inspect")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--package",
    "package_name",
    default=None,
    help="Application tag the blob must carry (default: the repository tag).",
)
def inspect(file: str, package_name: str | None) -> None:
    """Print the header of an encrypted blob without decrypting it."""
    tag = package_name or SyncConfig().package_name
    blob = Path(file).read_bytes()
    try:
        header, cipher = unpack(blob, tag)
    except CryptoError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Package:     {header.package_name}")
    click.echo(f"Revision:    {header.revision}")
    click.echo(f"Algorithm:   {header.algorithm_name}")
    click.echo(f"Nonce:       {len(header.nonce)} bytes")
    if header.kdf_name:
        click.echo(f"KDF:         {header.kdf_name}")
        click.echo(f"Salt:        {len(header.salt or b'')} bytes")
        click.echo(f"Cost:        {header.cost}")
    else:
        click.echo("KDF:         none (raw key)")
    click.echo(f"Compression: {header.compression or 'none'}")
    click.echo(f"Cipher:      {len(cipher)} bytes")

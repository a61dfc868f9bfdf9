"""Note commands for the NoteSync CLI.

Commands:
- note add: Add a note
- note list: List notes
- note delete: Move a note to the recycling bin or delete it for good
"""

from __future__ import annotations

import sys

import click

from notesync.client.cli.config import get_storage, is_initialized
from notesync.client.models import Note, NoteRepository, utc_now
from notesync.client.storage import JsonFileStorage, StorageError

PREVIEW_LENGTH = 50


def _load() -> tuple[JsonFileStorage, NoteRepository]:
    if not is_initialized():
        click.echo("Error: NoteSync not initialized. Run 'notesync init' first.", err=True)
        sys.exit(1)
    storage = get_storage()
    try:
        return storage, storage.load_repository_or_default()
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _save(storage: JsonFileStorage, repository: NoteRepository) -> None:
    if not storage.try_save_repository(repository):
        click.echo("Error: Could not save the repository.", err=True)
        sys.exit(1)


def _preview(note: Note) -> str:
    if note.safe_id is not None:
        return "(locked)"
    text = " ".join(note.html_content.split())
    return text if len(text) <= PREVIEW_LENGTH else text[: PREVIEW_LENGTH - 3] + "..."


@click.group()
def note() -> None:
    """Manage the local notes."""


@note.command("add")
@click.argument("text")
@click.option("--pin", is_flag=True, help="Pin the note to the top.")
def add(text: str, pin: bool) -> None:
    """Add a note at the top of the list."""
    storage, repository = _load()
    new_note = Note(html_content=text, is_pinned=pin)
    repository.notes.insert(0, new_note)
    repository.order_modified_at = utc_now()
    _save(storage, repository)
    click.echo(new_note.id)


@note.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include notes in the recycling bin.")
def list_notes(show_all: bool) -> None:
    """List the notes in their order."""
    _, repository = _load()
    shown = [n for n in repository.notes if show_all or not n.in_recycling_bin]
    if not shown:
        click.echo("No notes.")
        return
    for item in shown:
        flags = ("P" if item.is_pinned else "-") + ("R" if item.in_recycling_bin else "-")
        click.echo(f"{item.id}  {flags}  {item.modified_at:%Y-%m-%d %H:%M}  {_preview(item)}")


@note.command("delete")
@click.argument("note_id")
@click.option("--permanent", is_flag=True, help="Delete for good instead of using the recycling bin.")
def delete(note_id: str, permanent: bool) -> None:
    """Delete a note."""
    storage, repository = _load()
    found = repository.find_note(note_id)
    if found is None:
        click.echo(f"Error: Note not found: {note_id}", err=True)
        sys.exit(1)

    if permanent:
        repository.delete_note(note_id)
        repository.remove_unused_safes()
        click.echo(f"Deleted note {note_id}")
    else:
        found.in_recycling_bin = True
        found.refresh_modified_at()
        click.echo(f"Moved note {note_id} to the recycling bin")
    _save(storage, repository)

"""Merge a local and a remote repository into one.

Rules:
- Tombstones of both sides are united; for the same id the later deletion wins.
- A tombstoned note is dropped, unless it was created after the deletion
  (the note was imported again).
- A note present on both sides is replaced as a whole by the variant modified
  last (modified_at, then meta_modified_at). Ties keep the local variant.
- The side whose order was modified last dictates the order of the notes,
  notes only known to the other side keep their relative position.
- Pinned notes are moved to the top.
- Safes are united by id, the one modified last wins. Safes no longer used
  by any note are removed.

The merge is commutative on the set of notes and tombstones, and idempotent:
merging the result with one of its inputs again changes nothing.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from notesync.client.models import (
    REPOSITORY_REVISION,
    DeletedNote,
    Note,
    NoteRepository,
    Safe,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", Note, Safe)

_MIN_DATE = datetime.min.replace(tzinfo=timezone.utc)


def outer_join(
    left: Sequence[T], right: Sequence[T], key: Callable[[T], str]
) -> list[tuple[T | None, T | None]]:
    """Pair items of two lists by key, keeping the order of the left side.

    Items which exist only on one side are paired with None and inserted at
    the position where they appear relative to their neighbours.
    """
    left_keys = {key(item) for item in left}
    right_positions = {key(item): index for index, item in enumerate(right)}
    pairs: list[tuple[T | None, T | None]] = []

    def add_right_singles(position: int) -> None:
        while position < len(right) and key(right[position]) not in left_keys:
            pairs.append((None, right[position]))
            position += 1

    # Every right single follows either the start or an item shared with the left
    add_right_singles(0)
    for item in left:
        partner_position = right_positions.get(key(item))
        if partner_position is None:
            pairs.append((item, None))
            continue
        pairs.append((item, right[partner_position]))
        add_right_singles(partner_position + 1)
    return pairs


def choose_last_modified(first: Note, second: Note) -> Note:
    """Pick the more recent note, preferring `first` on a tie."""
    if first.modified_at != second.modified_at:
        return first if first.modified_at > second.modified_at else second
    first_meta = first.meta_modified_at or _MIN_DATE
    second_meta = second.meta_modified_at or _MIN_DATE
    return first if first_meta >= second_meta else second


def bring_pinned_to_top(notes: list[Note]) -> list[Note]:
    """Stable partition with pinned notes first."""
    return [note for note in notes if note.is_pinned] + [
        note for note in notes if not note.is_pinned
    ]


class RepositoryMerger:
    """Merges repositories of the same user into a new repository."""

    def merge(self, local: NoteRepository, remote: NoteRepository) -> NoteRepository:
        """Merge the local repository with the remote repository.

        The inputs are not modified; the result can replace both of them.

        Args:
            local: Repository of this device.
            remote: Repository downloaded from the cloud storage.

        Returns:
            The merged repository, carrying the id of the remote repository.
        """
        deleted_notes = self._merge_deleted_notes(local, remote)
        deleted_at = {deleted.id: deleted.deleted_at for deleted in deleted_notes}
        local_living = self._living_notes(local, deleted_at)
        remote_living = self._living_notes(remote, deleted_at)

        local_has_order = local.order_modified_at > remote.order_modified_at
        if local_has_order:
            notes = self._merge_notes(local_living, remote_living, left_is_local=True)
            order_modified_at = local.order_modified_at
        else:
            notes = self._merge_notes(remote_living, local_living, left_is_local=False)
            order_modified_at = remote.order_modified_at

        result = NoteRepository(
            id=remote.id,
            revision=REPOSITORY_REVISION,
            order_modified_at=order_modified_at,
            notes=bring_pinned_to_top(notes),
            deleted_notes=deleted_notes,
            safes=self._merge_safes(local.safes, remote.safes),
        )
        result.remove_unused_safes()
        logger.debug(
            f"Merged {len(local.notes)} local and {len(remote.notes)} remote notes "
            f"into {len(result.notes)} notes, {len(result.deleted_notes)} tombstones"
        )
        return result

    @staticmethod
    def _merge_deleted_notes(local: NoteRepository, remote: NoteRepository) -> list[DeletedNote]:
        merged: dict[str, DeletedNote] = {}
        for deleted in [*remote.deleted_notes, *local.deleted_notes]:
            existing = merged.get(deleted.id)
            if existing is None or deleted.deleted_at > existing.deleted_at:
                merged[deleted.id] = DeletedNote(id=deleted.id, deleted_at=deleted.deleted_at)
        return sorted(merged.values(), key=lambda deleted: deleted.id)

    @staticmethod
    def _living_notes(repository: NoteRepository, deleted_at: dict[str, datetime]) -> list[Note]:
        living = []
        for note in repository.notes:
            deletion = deleted_at.get(note.id)
            if deletion is None or note.created_at > deletion:
                living.append(note)
        return living

    @staticmethod
    def _merge_notes(left: list[Note], right: list[Note], left_is_local: bool) -> list[Note]:
        merged = []
        for left_note, right_note in outer_join(left, right, key=lambda note: note.id):
            if left_note is None:
                chosen = right_note
            elif right_note is None:
                chosen = left_note
            elif left_is_local:
                chosen = choose_last_modified(left_note, right_note)
            else:
                chosen = choose_last_modified(right_note, left_note)
            merged.append(copy.deepcopy(chosen))
        return merged

    @staticmethod
    def _merge_safes(local: list[Safe], remote: list[Safe]) -> list[Safe]:
        merged = []
        for remote_safe, local_safe in outer_join(remote, local, key=lambda safe: safe.id):
            if remote_safe is None:
                chosen = local_safe
            elif local_safe is None:
                chosen = remote_safe
            elif local_safe.modified_at >= remote_safe.modified_at:
                chosen = local_safe
            else:
                chosen = remote_safe
            merged.append(copy.deepcopy(chosen))
        return merged

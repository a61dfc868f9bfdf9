"""Detect whether something changed since a remembered point in time."""

from __future__ import annotations

from collections.abc import Callable


class ModificationDetector:
    """Compares the current fingerprint with a memorized one.

    Args:
        fingerprint_provider: Returns the current fingerprint, or None if
            there is nothing to compare yet.
    """

    def __init__(self, fingerprint_provider: Callable[[], str | None]) -> None:
        self._fingerprint_provider = fingerprint_provider
        self._memorized: str | None = None

    def memorize_current_state(self) -> None:
        self._memorized = self._fingerprint_provider()

    def forget(self) -> None:
        self._memorized = None

    def is_modified(self) -> bool:
        """True if the fingerprint changed or nothing was memorized yet."""
        if self._memorized is None:
            return True
        return self._fingerprint_provider() != self._memorized

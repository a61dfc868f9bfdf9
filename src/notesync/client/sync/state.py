"""Guard against concurrent synchronization runs."""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from notesync.client.models import utc_now
from notesync.core.types import SynchronizationType

logger = logging.getLogger(__name__)


class SynchronizationState:
    """Tracks whether a run is in progress.

    At most one run can be active at a time; try_start() is atomic.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: SynchronizationType | None = None
        self._last_finished_at: datetime | None = None

    def try_start(self, sync_type: SynchronizationType) -> bool:
        """Mark a run as started.

        Returns:
            False if another run is already active.
        """
        with self._lock:
            if self._current is not None:
                logger.debug(f"Cannot start {sync_type.value}, {self._current.value} is running")
                return False
            self._current = sync_type
            return True

    def stop(self) -> None:
        with self._lock:
            if self._current is not None:
                self._last_finished_at = utc_now()
            self._current = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._current is not None

    @property
    def current_type(self) -> SynchronizationType | None:
        with self._lock:
            return self._current

    @property
    def last_finished_at(self) -> datetime | None:
        with self._lock:
            return self._last_finished_at

"""Sync state tracking and last-sync persistence.

Two pieces live here:

* ``SyncState`` -- in-memory status tracker for one process: current
  status, last error, the pending conflict batch and a bounded history of
  status changes.  It is constructed by the caller and injected into the
  engine; it has no locking because exactly one cycle is allowed to touch
  it at a time (see ``SyncEngine.run_cycle``).
* ``LastSyncStore`` -- the JSON file in the ``.vault_sync/`` directory
  that carries the last successful sync time across restarts.  Writes go
  to a temp file followed by ``os.replace()`` so readers never see
  partial data.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections import deque
from pathlib import Path
from typing import Callable

from vault_sync.sync.models import Conflict, SyncStatus, SyncStatusInfo

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch."""
    return time.time_ns() // 1_000_000


class SyncState:
    """Status, error, pending conflicts and bounded history for sync runs.

    Any status may follow any other; deciding which transitions make sense
    is the engine's job.

    Args:
        clock: Returns the current time in ms; injectable for tests.
    """

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._status = SyncStatus.IDLE
        self._error: str | None = None
        self._conflicts: list[Conflict] = []
        self._history: deque[SyncStatusInfo] = deque(maxlen=HISTORY_LIMIT)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def set_status(
        self,
        status: SyncStatus | str,
        error: str | None = None,
        files_changed: int | None = None,
    ) -> None:
        """Overwrite the current status and error and append to history.

        Once more than ``HISTORY_LIMIT`` entries exist the oldest is
        dropped.
        """
        status = SyncStatus(status)
        self._status = status
        self._error = error
        self._history.append(
            SyncStatusInfo(
                status=status,
                error=error,
                last_sync=self._clock(),
                files_changed=files_changed,
            )
        )
        logger.debug("Sync status -> %s", status.value)

    def get_status(self) -> SyncStatus:
        return self._status

    def get_error(self) -> str | None:
        return self._error

    def is_busy(self) -> bool:
        """True while a cycle is running."""
        return self._status == SyncStatus.SYNCING

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------

    def set_conflicts(self, conflicts: list[Conflict]) -> None:
        """Replace the pending conflict batch wholesale."""
        self._conflicts = list(conflicts)

    def get_conflicts(self) -> list[Conflict]:
        return list(self._conflicts)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_sync_history(self) -> list[SyncStatusInfo]:
        """History entries, oldest first."""
        return list(self._history)

    def get_last_sync_info(self) -> SyncStatusInfo | None:
        """Most recent history entry, or ``None`` if history is empty."""
        if not self._history:
            return None
        return self._history[-1]

    def clear_history(self) -> None:
        """Drop all history entries and the pending conflict batch."""
        self._history.clear()
        self._conflicts = []


class LastSyncStore:
    """Persist the last successful sync time as JSON.

    Args:
        state_dir: Directory holding the state file (typically
            ``.vault_sync/``).
    """

    FILENAME = "last_sync.json"

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir

    @property
    def path(self) -> Path:
        return self._state_dir / self.FILENAME

    def load(self) -> int | None:
        """Return the stored timestamp (ms), or ``None`` if never synced.

        A corrupt file is logged and treated as "never synced".
        """
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable %s: %s", self.path, exc)
            return None
        value = data.get("last_sync_ms") if isinstance(data, dict) else None
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring invalid last_sync_ms in %s: %r", self.path, value
            )
            return None

    def save(self, timestamp_ms: int) -> None:
        """Write *timestamp_ms* atomically, creating ``state_dir`` if needed."""
        self._state_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(
                    {"version": 1, "last_sync_ms": timestamp_ms},
                    fh,
                    indent=2,
                )
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

"""Pydantic models for the vault sync engine.

Defines the core data contracts used across all sync modules:

- ``FileRecord``: One version of one file, from one side.
- ``Conflict``: A path whose local and remote versions diverge.
- ``ConflictPolicy``: Configured preference on divergence.
- ``SyncStatus`` / ``SyncStatusInfo``: Sync state tracking.
- ``ReconcileResult``: Upload / download / conflict classification.
- ``Resolution``: Outcome of resolving one conflict.
- ``CycleOutcome`` / ``SyncErrorKind`` / ``CycleReport``: Result of one
  sync cycle.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

import posixpath
from enum import Enum
from typing import Iterable, Literal

from pydantic import BaseModel, field_validator


class ConflictPolicy(str, Enum):
    """Which side wins when both sides hold diverging versions."""

    LOCAL = "local"
    REMOTE = "remote"
    MANUAL = "manual"


class SyncStatus(str, Enum):
    """Current phase of the sync state machine."""

    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    PAUSED = "paused"


class FileRecord(BaseModel):
    """One version of one file from one side of the sync.

    Attributes:
        path: Normalized unique identifier within the synced tree
            (forward slashes, no leading ``.``-prefixed internal segment).
        name: Display name, normally the basename of ``path``.
        content: Text view of the payload, loaded eagerly.
        mtime: Modification time in milliseconds since epoch.
        size: Optional byte length; a tie-break heuristic only.
        data: Stored bytes, when the source read the file from disk.
            Transfers write these verbatim; records built from text alone
            (merges, tests) leave it ``None``.
    """

    path: str
    name: str
    content: str
    mtime: int
    size: int | None = None
    data: bytes | None = None

    model_config = {"frozen": True}

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not value:
            raise ValueError("path must not be empty")
        first_segment = value.split("/", 1)[0]
        if first_segment.startswith("."):
            raise ValueError(
                f"path '{value}' is inside an internal metadata folder"
            )
        return value

    @classmethod
    def from_content(
        cls, path: str, content: str, mtime: int
    ) -> FileRecord:
        """Build a record deriving ``name`` and ``size`` from the inputs."""
        return cls(
            path=path,
            name=posixpath.basename(path),
            content=content,
            mtime=mtime,
            size=len(content.encode("utf-8")),
        )

    def payload(self) -> bytes:
        """Bytes to store on the other side."""
        if self.data is not None:
            return self.data
        return self.content.encode("utf-8")


Snapshot = dict[str, FileRecord]


def build_snapshot(records: Iterable[FileRecord]) -> Snapshot:
    """Index *records* by path.

    Raises:
        ValueError: If two records share the same path.
    """
    snapshot: Snapshot = {}
    for record in records:
        if record.path in snapshot:
            raise ValueError(
                f"Duplicate path in snapshot: '{record.path}'"
            )
        snapshot[record.path] = record
    return snapshot


class Conflict(BaseModel):
    """Both sides hold a version of ``path`` and they diverge."""

    path: str
    local: FileRecord
    remote: FileRecord

    model_config = {"frozen": True}


class SyncStatusInfo(BaseModel):
    """One entry in the sync history.

    Attributes:
        status: Status that was set.
        error: Error message, when ``status`` is ``error``.
        last_sync: Time the status was set, ms since epoch.
        files_changed: Number of transfers performed, when known.
    """

    status: SyncStatus
    error: str | None = None
    last_sync: int
    files_changed: int | None = None

    model_config = {"frozen": True}


class ReconcileResult(BaseModel):
    """Disjoint classification of the paths of two snapshots."""

    to_upload: list[FileRecord] = []
    to_download: list[FileRecord] = []
    conflicts: list[Conflict] = []

    model_config = {"frozen": True}

    @property
    def has_changes(self) -> bool:
        """True if any transfer or conflict was produced."""
        return bool(self.to_upload or self.to_download or self.conflicts)

    @property
    def total(self) -> int:
        """Number of paths that need attention."""
        return (
            len(self.to_upload)
            + len(self.to_download)
            + len(self.conflicts)
        )


class Resolution(BaseModel):
    """Which version won a conflict and the content to keep."""

    winner: Literal["local", "remote", "merged"]
    content: str

    model_config = {"frozen": True}


class CycleOutcome(str, Enum):
    """How a sync cycle ended."""

    COMPLETED = "completed"
    CONFLICTS = "conflicts"
    BUSY = "busy"
    FAILED = "failed"


class SyncErrorKind(str, Enum):
    """Where in the cycle a failure happened."""

    AUTHENTICATION = "authentication"
    LISTING = "listing"
    TRANSFER = "transfer"


class CycleReport(BaseModel):
    """Aggregate result of one sync cycle.

    Attributes:
        outcome: How the cycle ended.
        policy: Conflict policy in effect.
        started_at: Cycle start, ms since epoch.
        completed_at: Cycle end, ms since epoch.
        uploaded: Paths uploaded, in order.
        downloaded: Paths downloaded, in order.
        resolved: Conflict paths resolved automatically.
        conflicts: Conflicts left for manual review.
        error_kind: Failure category when ``outcome`` is ``failed``.
        error: Failure message when ``outcome`` is ``failed``.
    """

    outcome: CycleOutcome
    policy: ConflictPolicy
    started_at: int
    completed_at: int | None = None
    uploaded: list[str] = []
    downloaded: list[str] = []
    resolved: list[str] = []
    conflicts: list[Conflict] = []
    error_kind: SyncErrorKind | None = None
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        """True unless the cycle failed."""
        return self.outcome != CycleOutcome.FAILED

    @property
    def files_changed(self) -> int:
        """Total number of transfers performed."""
        return len(self.uploaded) + len(self.downloaded) + len(self.resolved)

    def summary(self) -> str:
        """Format a human-readable summary of the cycle.

        Returns:
            Multi-line summary string with counts by action.
        """
        lines = [
            f"Sync cycle {self.outcome.value} (policy: {self.policy.value})",
            f"  Uploaded:   {len(self.uploaded)}",
            f"  Downloaded: {len(self.downloaded)}",
            f"  Resolved:   {len(self.resolved)}",
            f"  Conflicts:  {len(self.conflicts)}",
        ]
        if self.error:
            kind = self.error_kind.value if self.error_kind else "unknown"
            lines.append(f"  Error ({kind}): {self.error}")
        return "\n".join(lines)

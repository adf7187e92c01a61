"""Two-way vault reconciliation engine.

Public API for reconciling a local file tree with a remote file store.

Architecture
------------
Every cycle compares two complete snapshots (path -> ``FileRecord``) and
classifies each path as upload, download or conflict according to the
configured ``ConflictPolicy``.  Modification times are authoritative;
there is no archive of previous syncs, so the side named by the policy
always wins on divergence.

Modules:

- ``models``      -- ``FileRecord``, ``Conflict``, ``CycleReport`` and the
  enums shared by all modules.
- ``reconciler``  -- ``classify_for_sync``: pure snapshot comparison.
- ``resolver``    -- ``ConflictResolver``: timestamp / size / merge-marker
  resolution and strict conflict detection.
- ``state``       -- ``SyncState`` (in-memory status tracker) and
  ``LastSyncStore`` (persisted last-sync time).
- ``engine``      -- ``SyncEngine``: orchestrates one cycle.
- ``interfaces``  -- protocols the storage collaborators implement.
- ``sources``     -- folder-backed collaborators.
- ``errors``      -- exception taxonomy.
- ``reporter``    -- human-readable and JSON report formatting.

Usage example
-------------
::

    from pathlib import Path
    from vault_sync.config import SyncSettings
    from vault_sync.sync import (
        FolderRemote, LocalFolderSource, SyncEngine, SyncState,
        format_cycle_report,
    )

    local_root, remote_root = Path("~/notes"), Path("/mnt/drive/notes")
    remote = FolderRemote(remote_root, local_root)
    engine = SyncEngine(
        local=LocalFolderSource(local_root),
        remote=remote,
        transfer=remote,
        state=SyncState(),
        settings=SyncSettings(policy="remote"),
    )
    report = await engine.run_cycle()
    print(format_cycle_report(report))
"""

from .engine import SyncEngine
from .errors import AuthenticationError, ListingError, SyncError, TransferError
from .models import (
    Conflict,
    ConflictPolicy,
    CycleOutcome,
    CycleReport,
    FileRecord,
    ReconcileResult,
    Resolution,
    Snapshot,
    SyncErrorKind,
    SyncStatus,
    SyncStatusInfo,
    build_snapshot,
)
from .reconciler import classify_for_sync, reconcile
from .reporter import (
    format_conflict_diff,
    format_cycle_report,
    format_status,
    report_to_json,
)
from .resolver import ConflictResolver, ResolutionStrategy
from .sources import FolderRemote, LocalFolderSource
from .state import LastSyncStore, SyncState

__all__ = [
    "AuthenticationError",
    "Conflict",
    "ConflictPolicy",
    "ConflictResolver",
    "CycleOutcome",
    "CycleReport",
    "FileRecord",
    "FolderRemote",
    "LastSyncStore",
    "ListingError",
    "LocalFolderSource",
    "ReconcileResult",
    "Resolution",
    "ResolutionStrategy",
    "Snapshot",
    "SyncEngine",
    "SyncError",
    "SyncErrorKind",
    "SyncState",
    "SyncStatus",
    "SyncStatusInfo",
    "TransferError",
    "build_snapshot",
    "classify_for_sync",
    "format_conflict_diff",
    "format_cycle_report",
    "format_status",
    "reconcile",
    "report_to_json",
]

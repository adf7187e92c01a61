"""Core sync engine that drives one reconciliation cycle.

The ``SyncEngine`` ties together the snapshot providers, the reconciler,
the conflict resolver, the transfer executor and ``SyncState``.  One call
to ``run_cycle()``:

1. Refuses to start if another cycle is in progress.
2. Snapshots the local tree, then the remote store.
3. Classifies every path (upload / download / conflict).
4. Under the ``manual`` policy with conflicts: publishes them and stops,
   transferring nothing.
5. Uploads, then downloads, one awaited call at a time unless
   ``max_parallel_transfers`` says otherwise.
6. Resolves conflicts automatically under ``local`` / ``remote``.
7. Marks the state idle and persists the last-sync time.

Any failure marks the state ``error`` and ends the cycle.  Transfers that
already happened are not rolled back and nothing is retried; the next
trigger simply runs another cycle.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from vault_sync.core.async_utils import run_bounded
from vault_sync.sync.errors import AuthenticationError, SyncError, TransferError
from vault_sync.sync.interfaces import (
    LastSyncRecorder,
    LocalSource,
    RemoteSource,
    TransferExecutor,
)
from vault_sync.sync.models import (
    Conflict,
    ConflictPolicy,
    CycleOutcome,
    CycleReport,
    FileRecord,
    SyncErrorKind,
    SyncStatus,
)
from vault_sync.sync.reconciler import classify_for_sync
from vault_sync.sync.resolver import ConflictResolver, ResolutionStrategy
from vault_sync.sync.state import SyncState, now_ms

if TYPE_CHECKING:
    from vault_sync.config import SyncSettings

logger = logging.getLogger(__name__)


class SyncEngine:
    """Orchestrate reconciliation cycles between a local and remote side.

    Args:
        local: Snapshot provider for the local tree.
        remote: Snapshot provider for the remote store.
        transfer: Executor for uploads, downloads, deletes and renames.
        state: Shared status tracker; owned by the caller.
        settings: Sync settings, read once per cycle.
        last_sync_store: Optional persistence for the last-sync time.
        resolver: Conflict resolver; a default one is created if omitted.
        clock: Returns the current time in ms; injectable for tests.
    """

    def __init__(
        self,
        local: LocalSource,
        remote: RemoteSource,
        transfer: TransferExecutor,
        state: SyncState,
        settings: SyncSettings,
        last_sync_store: LastSyncRecorder | None = None,
        resolver: ConflictResolver | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.local = local
        self.remote = remote
        self.transfer = transfer
        self.state = state
        self.settings = settings
        self.last_sync_store = last_sync_store
        self.resolver = resolver or ConflictResolver()
        self._clock = clock

    @property
    def last_sync_time(self) -> int | None:
        """Last successful cycle time in ms, if persisted."""
        if self.last_sync_store is None:
            return None
        return self.last_sync_store.load()

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleReport:
        """Execute one full sync cycle.

        Never raises for collaborator failures: they are recorded in
        ``SyncState`` and returned as a ``failed`` report.

        Returns:
            A ``CycleReport`` describing what was done.
        """
        policy = ConflictPolicy(self.settings.policy)
        started_at = self._clock()

        if self.state.is_busy():
            logger.warning("Sync already in progress, skipping trigger")
            return CycleReport(
                outcome=CycleOutcome.BUSY,
                policy=policy,
                started_at=started_at,
                completed_at=started_at,
            )

        self.state.set_status(SyncStatus.SYNCING)
        logger.info("Starting sync cycle (policy=%s)", policy.value)

        try:
            local_snapshot = await self.local.list_all()
            remote_snapshot = await self.remote.list_all()
        except asyncio.CancelledError:
            self.state.set_status(SyncStatus.ERROR, "sync cycle cancelled")
            raise
        except AuthenticationError as exc:
            return self._fail(
                SyncErrorKind.AUTHENTICATION, exc, policy, started_at
            )
        except Exception as exc:
            return self._fail(SyncErrorKind.LISTING, exc, policy, started_at)

        result = classify_for_sync(
            local_snapshot,
            remote_snapshot,
            policy,
            content_aware=self.settings.content_aware,
        )
        logger.info(
            "Classified %d paths: %d upload, %d download, %d conflicts",
            len(local_snapshot.keys() | remote_snapshot.keys()),
            len(result.to_upload),
            len(result.to_download),
            len(result.conflicts),
        )

        if result.conflicts and policy == ConflictPolicy.MANUAL:
            logger.warning(
                "Found %d conflicts, waiting for manual review",
                len(result.conflicts),
            )
            self.state.set_conflicts(result.conflicts)
            self.state.set_status(SyncStatus.IDLE, files_changed=0)
            return CycleReport(
                outcome=CycleOutcome.CONFLICTS,
                policy=policy,
                started_at=started_at,
                completed_at=self._clock(),
                conflicts=result.conflicts,
            )

        uploaded: list[str] = []
        downloaded: list[str] = []
        resolved: list[str] = []
        try:
            await self._transfer_all(
                "upload", self.transfer.upload, result.to_upload, uploaded
            )
            await self._transfer_all(
                "download",
                self.transfer.download,
                result.to_download,
                downloaded,
            )
            if result.conflicts:
                await self._resolve_by_policy(
                    result.conflicts, policy, resolved
                )
        except asyncio.CancelledError:
            self.state.set_status(SyncStatus.ERROR, "sync cycle cancelled")
            raise
        except AuthenticationError as exc:
            return self._fail(
                SyncErrorKind.AUTHENTICATION,
                exc,
                policy,
                started_at,
                uploaded,
                downloaded,
                resolved,
            )
        except Exception as exc:
            return self._fail(
                SyncErrorKind.TRANSFER,
                exc,
                policy,
                started_at,
                uploaded,
                downloaded,
                resolved,
            )

        completed_at = self._clock()
        report = CycleReport(
            outcome=CycleOutcome.COMPLETED,
            policy=policy,
            started_at=started_at,
            completed_at=completed_at,
            uploaded=uploaded,
            downloaded=downloaded,
            resolved=resolved,
        )
        self.state.set_conflicts([])
        self.state.set_status(
            SyncStatus.IDLE, files_changed=report.files_changed
        )
        self._record_last_sync(completed_at)
        logger.info(
            "Sync completed: %d uploaded, %d downloaded, %d resolved",
            len(uploaded),
            len(downloaded),
            len(resolved),
        )
        return report

    # ------------------------------------------------------------------
    # Manual resolution
    # ------------------------------------------------------------------

    async def apply_resolution(
        self, strategy: ResolutionStrategy | str
    ) -> CycleReport:
        """Resolve the pending conflicts in ``SyncState`` with *strategy*.

        A local winner is uploaded, a remote winner downloaded.  A merged
        artifact is written locally and uploaded, so both sides hold the
        marker file until someone edits it down.  Conflicts not reached
        because of a failure stay pending.

        Raises:
            ValueError: If *strategy* is not a known strategy.
        """
        strategy = ResolutionStrategy.parse(strategy)
        policy = ConflictPolicy(self.settings.policy)
        started_at = self._clock()

        if self.state.is_busy():
            logger.warning("Sync already in progress, not resolving")
            return CycleReport(
                outcome=CycleOutcome.BUSY,
                policy=policy,
                started_at=started_at,
                completed_at=started_at,
            )

        pending = self.state.get_conflicts()
        if not pending:
            return CycleReport(
                outcome=CycleOutcome.COMPLETED,
                policy=policy,
                started_at=started_at,
                completed_at=started_at,
            )

        self.state.set_status(SyncStatus.SYNCING)
        resolved: list[str] = []
        for index, conflict in enumerate(pending):
            try:
                await self._apply_one(conflict, strategy)
            except asyncio.CancelledError:
                self.state.set_conflicts(pending[index:])
                self.state.set_status(
                    SyncStatus.ERROR, "conflict resolution cancelled"
                )
                raise
            except Exception as exc:
                self.state.set_conflicts(pending[index:])
                kind = (
                    SyncErrorKind.AUTHENTICATION
                    if isinstance(exc, AuthenticationError)
                    else SyncErrorKind.TRANSFER
                )
                return self._fail(
                    kind,
                    exc,
                    policy,
                    started_at,
                    resolved=resolved,
                    conflicts=pending[index:],
                )
            resolved.append(conflict.path)

        self.state.set_conflicts([])
        self.state.set_status(SyncStatus.IDLE, files_changed=len(resolved))
        logger.info(
            "Resolved %d conflicts by %s", len(resolved), strategy.value
        )
        return CycleReport(
            outcome=CycleOutcome.COMPLETED,
            policy=policy,
            started_at=started_at,
            completed_at=self._clock(),
            resolved=resolved,
        )

    # ------------------------------------------------------------------
    # Single-file operations
    # ------------------------------------------------------------------

    async def push_file(self, record: FileRecord) -> None:
        """Upload one file outside of a cycle (e.g. on a local save)."""
        await self._call_transfer("upload", record.path, self.transfer.upload(record))

    async def delete_remote(self, path: str) -> None:
        """Remove one file from the remote store."""
        await self._call_transfer("delete", path, self.transfer.delete(path))

    async def rename_remote(self, old_path: str, new_path: str) -> None:
        """Rename one file on the remote store."""
        await self._call_transfer(
            "rename", old_path, self.transfer.rename(old_path, new_path)
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _transfer_all(
        self,
        operation: str,
        func: Callable[[FileRecord], Awaitable[None]],
        records: list[FileRecord],
        done: list[str],
    ) -> None:
        """Apply *func* to every record, appending paths to *done*."""
        factories = [
            functools.partial(self._transfer_one, operation, func, record, done)
            for record in records
        ]
        await run_bounded(factories, self.settings.max_parallel_transfers)

    async def _transfer_one(
        self,
        operation: str,
        func: Callable[[FileRecord], Awaitable[None]],
        record: FileRecord,
        done: list[str],
    ) -> None:
        await self._call_transfer(operation, record.path, func(record))
        done.append(record.path)
        logger.info("%s: %s", operation.capitalize(), record.path)

    async def _call_transfer(
        self, operation: str, path: str, call: Awaitable[None]
    ) -> None:
        """Await *call*, wrapping unexpected failures in ``TransferError``."""
        try:
            await call
        except SyncError:
            raise
        except Exception as exc:
            raise TransferError(operation, path, str(exc)) from exc

    async def _resolve_by_policy(
        self,
        conflicts: list[Conflict],
        policy: ConflictPolicy,
        resolved: list[str],
    ) -> None:
        """Settle conflicts in favour of the side named by *policy*."""
        for conflict in conflicts:
            if policy == ConflictPolicy.LOCAL:
                await self._call_transfer(
                    "upload", conflict.path, self.transfer.upload(conflict.local)
                )
            elif policy == ConflictPolicy.REMOTE:
                await self._call_transfer(
                    "download",
                    conflict.path,
                    self.transfer.download(conflict.remote),
                )
            else:
                continue
            resolved.append(conflict.path)

    async def _apply_one(
        self, conflict: Conflict, strategy: ResolutionStrategy
    ) -> None:
        resolution = self.resolver.resolve(conflict, strategy)
        if resolution.winner == "local":
            await self._call_transfer(
                "upload", conflict.path, self.transfer.upload(conflict.local)
            )
        elif resolution.winner == "remote":
            await self._call_transfer(
                "download",
                conflict.path,
                self.transfer.download(conflict.remote),
            )
        else:
            merged = FileRecord.from_content(
                conflict.path, resolution.content, self._clock()
            )
            await self._call_transfer(
                "download", conflict.path, self.transfer.download(merged)
            )
            await self._call_transfer(
                "upload", conflict.path, self.transfer.upload(merged)
            )

    def _record_last_sync(self, timestamp_ms: int) -> None:
        if self.last_sync_store is None:
            return
        try:
            self.last_sync_store.save(timestamp_ms)
        except OSError:
            logger.exception("Could not persist last sync time")

    def _fail(
        self,
        kind: SyncErrorKind,
        exc: Exception,
        policy: ConflictPolicy,
        started_at: int,
        uploaded: list[str] | None = None,
        downloaded: list[str] | None = None,
        resolved: list[str] | None = None,
        conflicts: list[Conflict] | None = None,
    ) -> CycleReport:
        """Record a failure in ``SyncState`` and build the report."""
        message = str(exc) or type(exc).__name__
        logger.error("Sync failed (%s): %s", kind.value, message)
        self.state.set_status(SyncStatus.ERROR, message)
        return CycleReport(
            outcome=CycleOutcome.FAILED,
            policy=policy,
            started_at=started_at,
            completed_at=self._clock(),
            uploaded=uploaded or [],
            downloaded=downloaded or [],
            resolved=resolved or [],
            conflicts=conflicts or [],
            error_kind=kind,
            error=message,
        )

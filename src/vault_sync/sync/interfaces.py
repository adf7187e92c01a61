"""Capability protocols for the collaborators a sync cycle depends on.

The engine only ever talks to these; concrete storage backends (a cloud
drive client, the folder-backed store in ``sources.py``, test fakes)
implement them.  Every method is a coroutine.

Implementations should raise ``AuthenticationError`` when credentials
are missing or rejected, ``ListingError`` when a snapshot cannot be
completed and ``TransferError`` for a failed transfer.  Any other
exception is still handled by the engine, classified by the phase it
happened in.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from vault_sync.sync.models import FileRecord, Snapshot


@runtime_checkable
class LocalSource(Protocol):
    """Produces a full snapshot of the local tree."""

    async def list_all(self) -> Snapshot:
        """Walk the whole tree, skipping internal configuration folders."""
        ...  # pragma: no cover


@runtime_checkable
class RemoteSource(Protocol):
    """Produces a full snapshot of the remote store."""

    async def list_all(self) -> Snapshot:
        """List every remote file with its content materialised."""
        ...  # pragma: no cover


@runtime_checkable
class TransferExecutor(Protocol):
    """Applies transfers between the two sides."""

    async def upload(self, record: FileRecord) -> None:
        """Create or replace ``record.path`` on the remote side."""
        ...  # pragma: no cover

    async def download(self, record: FileRecord) -> None:
        """Create or replace ``record.path`` on the local side."""
        ...  # pragma: no cover

    async def delete(self, path: str) -> None:
        """Remove *path* from the remote side; missing paths are a no-op."""
        ...  # pragma: no cover

    async def rename(self, old_path: str, new_path: str) -> None:
        """Rename *old_path* to *new_path* on the remote side."""
        ...  # pragma: no cover


@runtime_checkable
class LastSyncRecorder(Protocol):
    """Persists the time of the last successful cycle."""

    def load(self) -> int | None:
        ...  # pragma: no cover

    def save(self, timestamp_ms: int) -> None:
        ...  # pragma: no cover

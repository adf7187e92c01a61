"""Folder-backed implementations of the sync collaborator protocols.

- ``LocalFolderSource``: snapshots a local vault directory.
- ``FolderRemote``: treats a second directory (a mounted network share,
  a cloud-drive mirror, a USB stick) as the remote store.  It is both a
  ``RemoteSource`` and a ``TransferExecutor``; downloads write into the
  local vault.

Paths are POSIX-style and relative to the respective root.  Files are
copied as raw bytes, so attachments and non-UTF-8 notes arrive unchanged;
the decoded ``content`` is only a text view.  Written files get the
record's ``mtime`` so that an unchanged pair compares equal on the
next cycle.  Blocking filesystem work runs in a thread via ``run_sync``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterable

from vault_sync.core.async_utils import run_sync
from vault_sync.file_handler import (
    get_mtime_ms,
    read_file,
    write_file,
)
from vault_sync.sync.errors import ListingError, TransferError
from vault_sync.sync.models import FileRecord, Snapshot, build_snapshot

logger = logging.getLogger(__name__)


def _walk(root: Path, exclude: Iterable[str]) -> list[FileRecord]:
    """Return a record for every regular file under *root*.

    Any directory or file whose name starts with ``.`` is skipped, as is
    every top-level entry named in *exclude*.
    """
    excluded = set(exclude)
    records: list[FileRecord] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root)
        dirnames[:] = sorted(
            d
            for d in dirnames
            if not d.startswith(".")
            and not (rel_dir == Path(".") and d in excluded)
        )
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            if rel_dir == Path(".") and filename in excluded:
                continue
            abs_path = current / filename
            rel_path = PurePosixPath(*(rel_dir / filename).parts).as_posix()
            data, content = read_file(abs_path)
            records.append(
                FileRecord(
                    path=rel_path,
                    name=filename,
                    content=content,
                    mtime=get_mtime_ms(abs_path),
                    size=len(data),
                    data=data,
                )
            )
    return records


def _resolve_inside(root: Path, rel_path: str) -> Path:
    """Join *rel_path* onto *root*, refusing paths that escape it."""
    target = (root / rel_path).resolve()
    if not target.is_relative_to(root.resolve()):
        raise ValueError(f"Path escapes sync root: {rel_path}")
    return target


class LocalFolderSource:
    """Snapshot provider for a local directory.

    Args:
        root: Vault directory.
        exclude: Top-level folder names never synced (in addition to
            anything starting with ``.``).
    """

    def __init__(
        self, root: Path, exclude: Iterable[str] = (".obsidian", ".vault_sync")
    ) -> None:
        self.root = root
        self.exclude = tuple(exclude)

    async def list_all(self) -> Snapshot:
        if not self.root.is_dir():
            raise ListingError(f"Local folder not found: {self.root}")
        try:
            records = await run_sync(_walk, self.root, self.exclude)
        except OSError as exc:
            raise ListingError(
                f"Could not scan local folder {self.root}: {exc}"
            ) from exc
        logger.debug("Scanned %d local files in %s", len(records), self.root)
        return build_snapshot(records)


class FolderRemote:
    """Directory-backed remote store.

    Args:
        remote_root: Directory acting as the remote store.
        local_root: Local vault directory that downloads write into.
    """

    def __init__(self, remote_root: Path, local_root: Path) -> None:
        self.remote_root = remote_root
        self.local_root = local_root

    async def list_all(self) -> Snapshot:
        if not self.remote_root.is_dir():
            raise ListingError(
                f"Remote folder not reachable: {self.remote_root}"
            )
        try:
            records = await run_sync(_walk, self.remote_root, ())
        except OSError as exc:
            raise ListingError(
                f"Could not list remote folder {self.remote_root}: {exc}"
            ) from exc
        logger.debug(
            "Listed %d remote files in %s", len(records), self.remote_root
        )
        return build_snapshot(records)

    async def upload(self, record: FileRecord) -> None:
        await self._write(self.remote_root, record, "upload")

    async def download(self, record: FileRecord) -> None:
        await self._write(self.local_root, record, "download")

    async def delete(self, path: str) -> None:
        try:
            target = _resolve_inside(self.remote_root, path)
            if not target.exists():
                logger.debug("Nothing to delete at %s", path)
                return
            await run_sync(target.unlink)
        except (OSError, ValueError) as exc:
            raise TransferError("delete", path, str(exc)) from exc
        logger.info("Deleted remote file: %s", path)

    async def rename(self, old_path: str, new_path: str) -> None:
        try:
            source = _resolve_inside(self.remote_root, old_path)
            target = _resolve_inside(self.remote_root, new_path)
            if not source.exists():
                logger.debug("Nothing to rename at %s", old_path)
                return
            target.parent.mkdir(parents=True, exist_ok=True)
            await run_sync(os.replace, source, target)
        except (OSError, ValueError) as exc:
            raise TransferError("rename", old_path, str(exc)) from exc
        logger.info("Renamed remote file: %s -> %s", old_path, new_path)

    async def _write(
        self, root: Path, record: FileRecord, operation: str
    ) -> None:
        try:
            target = _resolve_inside(root, record.path)
            await run_sync(
                write_file, target, record.payload(), "utf-8", record.mtime
            )
        except (OSError, ValueError) as exc:
            raise TransferError(operation, record.path, str(exc)) from exc
        logger.debug("%s %s (mtime=%d)", operation, record.path, record.mtime)

"""Conflict resolution strategies for the sync engine.

Provides the resolution policies a caller can apply to a ``Conflict``:

- ``resolve_by_timestamp``: newer ``mtime`` wins; ties go to local.
- ``resolve_by_size``: larger ``size`` wins; ties go to remote.  This is
  a heuristic proxy for "more complete content", not a correctness
  guarantee: it will happily pick a truncated-then-padded or otherwise
  corrupted larger file over a correct smaller one.
- ``merge_content``: both versions embedded between markers for a human
  to edit down.  Never applied unless a caller explicitly selects it.

Plus conflict *detection* independent of the cycle classification:
``detect_true_conflicts`` requires differing mtimes AND differing content,
which is stricter than ``classify_for_sync``.  The two are kept apart on
purpose since they serve different callers.

None of these perform I/O.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from enum import Enum

from vault_sync.sync.models import Conflict, FileRecord, Resolution, Snapshot

logger = logging.getLogger(__name__)

CONFLICT_HEADER = "<!-- CONFLICT DETECTED on {timestamp} -->"
LOCAL_START = "<!-- LOCAL VERSION -->"
LOCAL_END = "<!-- END LOCAL VERSION -->"
REMOTE_START = "<!-- REMOTE VERSION -->"
REMOTE_END = "<!-- END REMOTE VERSION -->"
RESOLVE_HINT = (
    "<!-- Please resolve this conflict manually and delete the markers -->"
)

_MERGED_PATTERN = re.compile(
    r"<!-- CONFLICT DETECTED on (?P<timestamp>[^ ]+) -->\n"
    + re.escape(LOCAL_START)
    + r"\n(?P<local>.*?)\n"
    + re.escape(LOCAL_END)
    + r"\n\n"
    + re.escape(REMOTE_START)
    + r"\n(?P<remote>.*?)\n"
    + re.escape(REMOTE_END),
    re.DOTALL,
)


class ResolutionStrategy(str, Enum):
    """Named ways of settling a conflict."""

    TIMESTAMP = "timestamp"
    SIZE = "size"
    LOCAL = "local"
    REMOTE = "remote"
    MERGE = "merge"

    @classmethod
    def parse(cls, value: ResolutionStrategy | str) -> ResolutionStrategy:
        """Convert *value*, naming the valid strategies when it is unknown."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown resolution strategy: '{value}'. Valid "
                f"strategies: {sorted(s.value for s in cls)}"
            ) from None


def has_conflict_markers(text: str) -> bool:
    """Return ``True`` if *text* contains a merged-conflict artifact."""
    return _MERGED_PATTERN.search(text) is not None


def split_merged_content(text: str) -> tuple[str, str]:
    """Recover the two versions embedded by ``merge_content``.

    Args:
        text: A merged artifact, possibly surrounded by other text.

    Returns:
        ``(local_content, remote_content)``.

    Raises:
        ValueError: If *text* does not contain a complete artifact.
    """
    match = _MERGED_PATTERN.search(text)
    if match is None:
        raise ValueError("No conflict markers found")
    return match.group("local"), match.group("remote")


class ConflictResolver:
    """Stateless collection of conflict detection and resolution policies."""

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_by_timestamp(
        self, local: FileRecord, remote: FileRecord
    ) -> Resolution:
        """Pick the side with the strictly newer ``mtime``.

        Equal mtimes resolve to local.
        """
        if remote.mtime > local.mtime:
            return Resolution(winner="remote", content=remote.content)
        return Resolution(winner="local", content=local.content)

    def resolve_by_size(
        self, local: FileRecord, remote: FileRecord
    ) -> Resolution:
        """Pick the side with the strictly larger ``size``.

        Equal sizes resolve to remote.  A missing ``size`` counts as the
        UTF-8 length of the content.
        """
        if _size_of(local) > _size_of(remote):
            return Resolution(winner="local", content=local.content)
        return Resolution(winner="remote", content=remote.content)

    def merge_content(
        self,
        local: str,
        remote: str,
        timestamp: datetime | None = None,
    ) -> str:
        """Embed both versions between markers for manual editing.

        Args:
            local: Local file content.
            remote: Remote file content.
            timestamp: Resolution time; defaults to now (UTC).

        Returns:
            The merged artifact text.
        """
        stamp = (timestamp or datetime.now(timezone.utc)).isoformat()
        return (
            CONFLICT_HEADER.format(timestamp=stamp)
            + "\n"
            + LOCAL_START
            + "\n"
            + local
            + "\n"
            + LOCAL_END
            + "\n\n"
            + REMOTE_START
            + "\n"
            + remote
            + "\n"
            + REMOTE_END
            + "\n\n"
            + RESOLVE_HINT
            + "\n"
        )

    def resolve(
        self, conflict: Conflict, strategy: ResolutionStrategy | str
    ) -> Resolution:
        """Resolve *conflict* with the named strategy.

        Raises:
            ValueError: If the strategy string is not recognised.
        """
        strategy = ResolutionStrategy.parse(strategy)

        if strategy == ResolutionStrategy.TIMESTAMP:
            resolution = self.resolve_by_timestamp(
                conflict.local, conflict.remote
            )
        elif strategy == ResolutionStrategy.SIZE:
            resolution = self.resolve_by_size(
                conflict.local, conflict.remote
            )
        elif strategy == ResolutionStrategy.LOCAL:
            resolution = Resolution(
                winner="local", content=conflict.local.content
            )
        elif strategy == ResolutionStrategy.REMOTE:
            resolution = Resolution(
                winner="remote", content=conflict.remote.content
            )
        else:
            resolution = Resolution(
                winner="merged",
                content=self.merge_content(
                    conflict.local.content, conflict.remote.content
                ),
            )

        logger.info(
            "Resolved %s by %s -> %s",
            conflict.path,
            strategy.value,
            resolution.winner,
        )
        return resolution

    # ------------------------------------------------------------------
    # Detection and reporting
    # ------------------------------------------------------------------

    def detect_true_conflicts(
        self, local_files: Snapshot, remote_files: Snapshot
    ) -> list[Conflict]:
        """Find paths present on both sides with different mtimes AND content.

        Returned in path order.
        """
        conflicts: list[Conflict] = []
        for path in sorted(local_files):
            remote_file = remote_files.get(path)
            if remote_file is None:
                continue
            local_file = local_files[path]
            if (
                local_file.mtime != remote_file.mtime
                and local_file.payload() != remote_file.payload()
            ):
                conflicts.append(
                    Conflict(path=path, local=local_file, remote=remote_file)
                )
        return conflicts

    detect_conflicts = detect_true_conflicts

    def get_conflict_summary(self, conflict: Conflict) -> str:
        """Three-line, human-readable description of a conflict."""
        local_date = _format_local_time(conflict.local.mtime)
        remote_date = _format_local_time(conflict.remote.mtime)
        return (
            f"Conflict in {conflict.path}:\n"
            f"Local modified: {local_date}\n"
            f"Remote modified: {remote_date}"
        )


def _size_of(record: FileRecord) -> int:
    if record.size is not None:
        return record.size
    return len(record.payload())


def _format_local_time(mtime_ms: int) -> str:
    dt = datetime.fromtimestamp(mtime_ms / 1000, tz=timezone.utc).astimezone()
    return dt.strftime("%Y-%m-%d %H:%M:%S")

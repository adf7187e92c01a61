"""Snapshot comparison for one sync cycle.

``classify_for_sync`` takes the local and remote snapshots plus the
configured ``ConflictPolicy`` and sorts every path into exactly one of
*no action*, *upload*, *download* or *conflict*:

============================  =========  ==========  ==========
Situation                     local      remote      manual
============================  =========  ==========  ==========
only local                    upload     upload      upload
only remote                   download   download    download
local newer                   upload     --          conflict
remote newer                  --         download    conflict
equal mtimes                  --         --          --
============================  =========  ==========  ==========

The side named by the policy always wins on divergence, even when its
copy is the older one.  Equal mtimes mean "in sync" and content is never
compared, unless ``content_aware`` is set, in which case divergent mtimes
with identical content are also treated as in sync.

The function is pure: it performs no I/O and never raises for
well-formed snapshots.
"""

from __future__ import annotations

import logging

from vault_sync.sync.models import (
    Conflict,
    ConflictPolicy,
    FileRecord,
    ReconcileResult,
    Snapshot,
)

logger = logging.getLogger(__name__)


def classify_for_sync(
    local: Snapshot,
    remote: Snapshot,
    policy: ConflictPolicy | str,
    *,
    content_aware: bool = False,
) -> ReconcileResult:
    """Classify every path of two snapshots for one sync cycle.

    Args:
        local: Mapping of path to local ``FileRecord``.
        remote: Mapping of path to remote ``FileRecord``.
        policy: ``"local"``, ``"remote"`` or ``"manual"``.
        content_aware: Treat divergent mtimes with equal content as in
            sync.

    Returns:
        A ``ReconcileResult`` whose three lists are disjoint by path and
        ordered by path.
    """
    policy = ConflictPolicy(policy)
    to_upload: list[FileRecord] = []
    to_download: list[FileRecord] = []
    conflicts: list[Conflict] = []

    for path in sorted(local.keys() | remote.keys()):
        local_file = local.get(path)
        remote_file = remote.get(path)

        if remote_file is None:
            to_upload.append(local_file)  # type: ignore[arg-type]
            continue
        if local_file is None:
            to_download.append(remote_file)
            continue

        if local_file.mtime == remote_file.mtime:
            continue
        if content_aware and local_file.payload() == remote_file.payload():
            logger.debug(
                "Skipping %s: mtimes differ but content is identical",
                path,
            )
            continue

        local_newer = local_file.mtime > remote_file.mtime
        if policy == ConflictPolicy.MANUAL:
            conflicts.append(
                Conflict(path=path, local=local_file, remote=remote_file)
            )
        elif policy == ConflictPolicy.LOCAL and local_newer:
            to_upload.append(local_file)
        elif policy == ConflictPolicy.REMOTE and not local_newer:
            to_download.append(remote_file)

    result = ReconcileResult(
        to_upload=to_upload,
        to_download=to_download,
        conflicts=conflicts,
    )
    logger.debug(
        "Reconciled %d local / %d remote paths (policy=%s): "
        "%d upload, %d download, %d conflicts",
        len(local),
        len(remote),
        policy.value,
        len(to_upload),
        len(to_download),
        len(conflicts),
    )
    return result


reconcile = classify_for_sync

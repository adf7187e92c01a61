"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_cycle_report`` -- full post-cycle summary.
- ``format_status`` -- one-glance status (state, last sync, auto-sync).
- ``format_conflict_diff`` -- unified diff for manual conflict review.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

import difflib
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Conflict, CycleReport
    from .state import SyncState

from .models import CycleOutcome
from .resolver import ConflictResolver


def _format_ms(timestamp_ms: int | None) -> str:
    if not timestamp_ms:
        return "Never"
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_cycle_report(report: CycleReport) -> str:
    """Format a cycle report as human-readable text.

    Sections are only included when they contain at least one path.

    Args:
        report: The finished cycle report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    if report.outcome == CycleOutcome.BUSY:
        return "Sync already in progress -- nothing done."

    lines.append(
        f"Sync {report.outcome.value} (policy: {report.policy.value})"
    )
    lines.append(f"Started: {_format_ms(report.started_at)}")
    if report.completed_at:
        lines.append(f"Completed: {_format_ms(report.completed_at)}")
    lines.append("")

    lines.append(
        f"{report.files_changed} files changed: "
        f"{len(report.uploaded)} uploaded, "
        f"{len(report.downloaded)} downloaded, "
        f"{len(report.resolved)} resolved, "
        f"{len(report.conflicts)} conflicts"
    )
    lines.append("")

    if report.uploaded:
        lines.append("Uploaded:")
        lines.extend(f"  {path}" for path in report.uploaded)
        lines.append("")

    if report.downloaded:
        lines.append("Downloaded:")
        lines.extend(f"  {path}" for path in report.downloaded)
        lines.append("")

    if report.resolved:
        lines.append("Resolved:")
        lines.extend(f"  {path}" for path in report.resolved)
        lines.append("")

    if report.conflicts:
        lines.append("Conflicts (review required):")
        resolver = ConflictResolver()
        for conflict in report.conflicts:
            for i, line in enumerate(
                resolver.get_conflict_summary(conflict).splitlines()
            ):
                lines.append(("  " if i == 0 else "    ") + line)
        lines.append("")

    if report.error:
        kind = report.error_kind.value if report.error_kind else "unknown"
        lines.append(f"Error ({kind}): {report.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_status(
    state: SyncState, last_sync_ms: int | None, auto_sync: bool
) -> str:
    """Short status block: current state, last sync and auto-sync setting."""
    lines = [
        f"Sync Status: {state.get_status().value}",
        f"Last sync: {_format_ms(last_sync_ms)}",
        f"Auto-sync: {'Enabled' if auto_sync else 'Disabled'}",
    ]
    error = state.get_error()
    if error:
        lines.append(f"Last error: {error}")
    pending = state.get_conflicts()
    if pending:
        lines.append(f"Pending conflicts: {len(pending)}")
    return "\n".join(lines)


# ------------------------------------------------------------------
# Conflict diff
# ------------------------------------------------------------------


def format_conflict_diff(conflict: Conflict) -> str:
    """Format a single conflict for manual review.

    Shows the conflict summary followed by a unified diff from the local
    to the remote content.
    """
    lines: list[str] = [ConflictResolver().get_conflict_summary(conflict)]
    lines.append("")

    diff = difflib.unified_diff(
        conflict.local.content.splitlines(keepends=True),
        conflict.remote.content.splitlines(keepends=True),
        fromfile=f"local: {conflict.path}",
        tofile=f"remote: {conflict.path}",
    )
    diff_text = "".join(diff)
    if diff_text:
        lines.append(diff_text.rstrip())
    else:
        lines.append("(no textual differences)")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: CycleReport) -> dict:
    """Convert a cycle report to a structured dict for JSON serialisation.

    Conflict entries carry paths and mtimes only, never file content.
    """
    return {
        "outcome": report.outcome.value,
        "policy": report.policy.value,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "uploaded": len(report.uploaded),
            "downloaded": len(report.downloaded),
            "resolved": len(report.resolved),
            "conflicts": len(report.conflicts),
            "files_changed": report.files_changed,
        },
        "uploaded": list(report.uploaded),
        "downloaded": list(report.downloaded),
        "resolved": list(report.resolved),
        "conflicts": [
            {
                "path": c.path,
                "local_mtime": c.local.mtime,
                "remote_mtime": c.remote.mtime,
            }
            for c in report.conflicts
        ],
        "error_kind": report.error_kind.value if report.error_kind else None,
        "error": report.error,
    }

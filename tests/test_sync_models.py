"""Tests for the sync data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vault_sync.sync.models import (
    Conflict,
    ConflictPolicy,
    CycleOutcome,
    CycleReport,
    FileRecord,
    ReconcileResult,
    SyncErrorKind,
    build_snapshot,
)

# ---------------------------------------------------------------------------
# FileRecord
# ---------------------------------------------------------------------------


class TestFileRecord:
    """Tests for FileRecord validation and construction."""

    def test_from_content_derives_name_and_size(self):
        """name is the basename and size the UTF-8 byte length."""
        record = FileRecord.from_content("notes/café.md", "héllo", 10)
        assert record.name == "café.md"
        assert record.size == len("héllo".encode("utf-8"))
        assert record.mtime == 10

    def test_size_is_optional(self):
        record = FileRecord(path="a.md", name="a.md", content="", mtime=1)
        assert record.size is None

    def test_empty_path_rejected(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            FileRecord(path="", name="", content="", mtime=1)

    def test_internal_folder_rejected(self):
        """Paths under a dot-prefixed top-level folder are refused."""
        with pytest.raises(ValidationError, match="internal metadata"):
            FileRecord(
                path=".obsidian/workspace.json",
                name="workspace.json",
                content="{}",
                mtime=1,
            )

    def test_nested_dot_segment_allowed(self):
        """Only the first segment is checked."""
        record = FileRecord.from_content("notes/.draft.md", "x", 1)
        assert record.path == "notes/.draft.md"

    def test_frozen(self):
        record = FileRecord.from_content("a.md", "x", 1)
        with pytest.raises(ValidationError):
            record.mtime = 2


class TestBuildSnapshot:
    """Tests for build_snapshot()."""

    def test_indexes_by_path(self):
        a = FileRecord.from_content("a.md", "a", 1)
        b = FileRecord.from_content("dir/b.md", "b", 2)
        assert build_snapshot([a, b]) == {"a.md": a, "dir/b.md": b}

    def test_duplicate_path_raises(self):
        a = FileRecord.from_content("a.md", "a", 1)
        a2 = FileRecord.from_content("a.md", "other", 2)
        with pytest.raises(ValueError, match="Duplicate path"):
            build_snapshot([a, a2])


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TestReconcileResult:
    """Tests for ReconcileResult helpers."""

    def test_empty_has_no_changes(self):
        result = ReconcileResult()
        assert not result.has_changes
        assert result.total == 0

    def test_total_counts_all_lists(self):
        a = FileRecord.from_content("a.md", "a", 1)
        b = FileRecord.from_content("b.md", "b", 1)
        c_local = FileRecord.from_content("c.md", "c", 1)
        c_remote = FileRecord.from_content("c.md", "C", 2)
        result = ReconcileResult(
            to_upload=[a],
            to_download=[b],
            conflicts=[Conflict(path="c.md", local=c_local, remote=c_remote)],
        )
        assert result.has_changes
        assert result.total == 3


class TestCycleReport:
    """Tests for CycleReport properties and summary()."""

    def test_files_changed_sums_transfers(self):
        report = CycleReport(
            outcome=CycleOutcome.COMPLETED,
            policy=ConflictPolicy.LOCAL,
            started_at=1,
            uploaded=["a.md", "b.md"],
            downloaded=["c.md"],
            resolved=["d.md"],
        )
        assert report.files_changed == 4
        assert report.ok

    def test_failed_is_not_ok(self):
        report = CycleReport(
            outcome=CycleOutcome.FAILED,
            policy=ConflictPolicy.MANUAL,
            started_at=1,
            error_kind=SyncErrorKind.LISTING,
            error="remote unreachable",
        )
        assert not report.ok

    def test_summary_lists_counts(self):
        report = CycleReport(
            outcome=CycleOutcome.COMPLETED,
            policy=ConflictPolicy.REMOTE,
            started_at=1,
            downloaded=["a.md"],
        )
        summary = report.summary()
        assert summary.splitlines()[0] == (
            "Sync cycle completed (policy: remote)"
        )
        assert "  Downloaded: 1" in summary
        assert "Error" not in summary

    def test_summary_includes_error(self):
        report = CycleReport(
            outcome=CycleOutcome.FAILED,
            policy=ConflictPolicy.MANUAL,
            started_at=1,
            error_kind=SyncErrorKind.TRANSFER,
            error="upload failed for a.md: boom",
        )
        assert (
            "  Error (transfer): upload failed for a.md: boom"
            in report.summary()
        )

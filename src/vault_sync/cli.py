"""Command-line entry point for vault-sync.

Subcommands:

- ``sync``      -- run one reconciliation cycle between two folders.
- ``conflicts`` -- list divergent paths with diffs, transferring nothing.
- ``status``    -- show the last sync time and auto-sync setting.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import SyncSettings
from .config_loader import load_hierarchical_config
from .config_schema import UnifiedConfig, build_config, to_settings
from .logger import setup_logging
from .sync.engine import SyncEngine
from .sync.errors import SyncError
from .sync.models import CycleOutcome
from .sync.reporter import (
    format_conflict_diff,
    format_cycle_report,
    format_status,
    report_to_json,
)
from .sync.resolver import ConflictResolver
from .sync.sources import FolderRemote, LocalFolderSource
from .sync.state import LastSyncStore, SyncState

logger = logging.getLogger(__name__)


def _resolve_roots(
    args: argparse.Namespace, unified: UnifiedConfig
) -> tuple[Path, Path]:
    local = args.local or unified.storage.local_root
    remote = args.remote or unified.storage.remote_root
    if not local or not remote:
        raise ValueError(
            "Both folders are required. Pass --local and --remote, or set "
            "storage.local_root and storage.remote_root in config.yml."
        )
    return Path(local).expanduser(), Path(remote).expanduser()


def _build_engine(
    local_root: Path, remote_root: Path, settings: SyncSettings
) -> SyncEngine:
    remote = FolderRemote(remote_root, local_root)
    return SyncEngine(
        local=LocalFolderSource(local_root, settings.exclude),
        remote=remote,
        transfer=remote,
        state=SyncState(),
        settings=settings,
        last_sync_store=LastSyncStore(local_root / settings.state_dir),
    )


async def _cmd_sync(engine: SyncEngine, as_json: bool) -> int:
    report = await engine.run_cycle()
    if as_json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_cycle_report(report))
    return 0 if report.outcome != CycleOutcome.FAILED else 1


async def _cmd_conflicts(engine: SyncEngine) -> int:
    local_snapshot = await engine.local.list_all()
    remote_snapshot = await engine.remote.list_all()
    conflicts = ConflictResolver().detect_true_conflicts(
        local_snapshot, remote_snapshot
    )
    if not conflicts:
        print("No conflicts.")
        return 0
    print(f"{len(conflicts)} conflicts:\n")
    for conflict in conflicts:
        print(format_conflict_diff(conflict))
        print()
    return 0


def _cmd_status(local_root: Path, settings: SyncSettings) -> int:
    store = LastSyncStore(local_root / settings.state_dir)
    print(format_status(SyncState(), store.load(), settings.auto_sync))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-sync",
        description="Reconcile a local vault with a remote folder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One sync cycle, conflicts left for review
  vault-sync sync --local ~/notes --remote /mnt/drive/notes

  # Remote always wins on divergence
  vault-sync sync --local ~/notes --remote /mnt/drive/notes --policy remote

  # Show divergent files with diffs
  vault-sync conflicts --local ~/notes --remote /mnt/drive/notes

Folders can also come from storage.local_root / storage.remote_root in
.vault_sync/config.yml.
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"vault-sync version {__version__}",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def _add_roots(sub: argparse.ArgumentParser, remote: bool = True) -> None:
        sub.add_argument("--local", help="Local vault directory")
        if remote:
            sub.add_argument("--remote", help="Remote store directory")

    sync_parser = subparsers.add_parser("sync", help="Run one sync cycle")
    _add_roots(sync_parser)
    sync_parser.add_argument(
        "--policy",
        choices=["local", "remote", "manual"],
        help="Conflict policy (overrides VAULT_SYNC_POLICY and config)",
    )
    sync_parser.add_argument(
        "--content-aware",
        action="store_true",
        help="Treat files with identical content as in sync",
    )
    sync_parser.add_argument(
        "--max-parallel",
        type=int,
        help="Transfers in flight per phase (default: 1)",
    )
    sync_parser.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )

    conflicts_parser = subparsers.add_parser(
        "conflicts", help="List conflicting files without syncing"
    )
    _add_roots(conflicts_parser)

    status_parser = subparsers.add_parser(
        "status", help="Show last sync time"
    )
    _add_roots(status_parser, remote=False)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the selected subcommand and return an exit code."""
    args = _build_parser().parse_args(argv)

    load_dotenv()

    try:
        unified = build_config(load_hierarchical_config())
        # LOG_LEVEL from the environment still wins over config.yml
        os.environ.setdefault("LOG_LEVEL", unified.logging.level)
        setup_logging(
            mode="cli",
            debug=args.debug,
            log_file=args.log_file or unified.logging.file,
        )
        settings = to_settings(
            unified,
            cli_overrides={
                "policy": getattr(args, "policy", None),
                "content_aware": getattr(args, "content_aware", False),
                "max_parallel_transfers": getattr(args, "max_parallel", None),
            },
        )
        if args.command == "status":
            local = args.local or unified.storage.local_root
            if not local:
                raise ValueError(
                    "Pass --local or set storage.local_root in config.yml."
                )
            return _cmd_status(Path(local).expanduser(), settings)

        local_root, remote_root = _resolve_roots(args, unified)
        engine = _build_engine(local_root, remote_root, settings)
        if args.command == "sync":
            return asyncio.run(_cmd_sync(engine, args.json))
        return asyncio.run(_cmd_conflicts(engine))
    except (ValueError, ValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except SyncError as exc:
        print(f"Sync error: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)

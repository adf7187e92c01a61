"""Core helpers shared between the CLI and the sync engine."""

from .async_utils import run_bounded, run_sequential, run_sync

__all__ = ["run_bounded", "run_sequential", "run_sync"]

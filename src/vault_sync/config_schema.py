"""Unified configuration schema for vault_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for sync behaviour, storage locations and logging.  Includes an
adapter that turns the validated config into the ``SyncSettings``
dataclass consumed by the engine.

Usage:
    from vault_sync.config_schema import build_config, to_settings

    raw = load_hierarchical_config()
    unified = build_config(raw)
    settings = to_settings(unified, cli_overrides={"policy": "local"})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from vault_sync.sync.models import ConflictPolicy

if TYPE_CHECKING:
    from .config import SyncSettings

logger = logging.getLogger(__name__)

MIN_SYNC_INTERVAL_MS = 60_000
DEFAULT_SYNC_INTERVAL_MS = 5 * 60 * 1000


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Sync behaviour settings."""

    policy: ConflictPolicy = Field(
        default=ConflictPolicy.MANUAL,
        description="Conflict resolution policy (local, remote, manual)",
    )
    auto_sync: bool = Field(
        default=True, description="Run sync cycles periodically"
    )
    sync_interval_ms: int = Field(
        default=DEFAULT_SYNC_INTERVAL_MS,
        ge=MIN_SYNC_INTERVAL_MS,
        description="Milliseconds between automatic syncs (minimum 60000)",
    )
    content_aware: bool = Field(
        default=False,
        description="Treat files with equal content as in sync even if mtimes differ",
    )
    max_parallel_transfers: int = Field(
        default=1,
        ge=1,
        le=16,
        description="Transfers in flight per phase (1 = strictly sequential)",
    )
    state_dir: str = Field(
        default=".vault_sync",
        description="Directory holding the last-sync state file",
    )
    exclude: list[str] = Field(
        default_factory=lambda: [".obsidian", ".vault_sync"],
        description="Top-level folders never synced",
    )

    model_config = {"frozen": True}


class StorageConfig(BaseModel):
    """Locations of the two synced trees.

    Both are optional so CLI args can supply them at runtime instead.
    """

    local_root: str | None = Field(
        default=None, description="Local vault directory"
    )
    remote_root: str | None = Field(
        default=None, description="Directory backing the remote store"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    sync: SyncConfig = Field(default_factory=SyncConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully -- anything absent gets defaults.

    Raises:
        pydantic.ValidationError: If a value is out of range or of the
            wrong type.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def to_settings(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> SyncSettings:
    """Convert a ``UnifiedConfig`` into ``SyncSettings``, applying CLI
    overrides and environment variables on top.

    Precedence: CLI override > env var > unified config value.
    """
    from .config import load_settings

    overrides = cli_overrides or {}
    return load_settings(
        policy=overrides.get("policy"),
        content_aware=overrides.get("content_aware", False),
        max_parallel_transfers=overrides.get("max_parallel_transfers"),
        yaml_fallbacks=unified.sync.model_dump(mode="json"),
    )

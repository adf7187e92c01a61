"""Runtime sync settings.

Reads sync settings from CLI args, environment variables, .env files and
YAML config file fallbacks.  The engine treats the resulting
``SyncSettings`` as immutable for the duration of one cycle.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    VAULT_SYNC_POLICY: Conflict policy: local, remote or manual (default: manual)
    VAULT_SYNC_AUTO: Enable periodic sync (default: true)
    VAULT_SYNC_INTERVAL_MS: Milliseconds between syncs, minimum 60000 (default: 300000)
    VAULT_SYNC_CONTENT_AWARE: Skip paths whose content is identical (default: false)
    VAULT_SYNC_MAX_PARALLEL: Transfers in flight per phase, 1-16 (default: 1)
"""

import logging
import os
from dataclasses import dataclass, field

from vault_sync.config_schema import (
    DEFAULT_SYNC_INTERVAL_MS,
    MIN_SYNC_INTERVAL_MS,
)
from vault_sync.sync.models import ConflictPolicy

logger = logging.getLogger(__name__)

MAX_PARALLEL_TRANSFERS = 16


@dataclass
class SyncSettings:
    policy: ConflictPolicy = ConflictPolicy.MANUAL
    auto_sync: bool = True
    sync_interval_ms: int = DEFAULT_SYNC_INTERVAL_MS
    content_aware: bool = False
    max_parallel_transfers: int = 1
    state_dir: str = ".vault_sync"
    exclude: list[str] = field(
        default_factory=lambda: [".obsidian", ".vault_sync"]
    )


def validate_settings(settings: SyncSettings) -> None:
    """Validate settings values and raise ValueError if invalid.

    Args:
        settings: SyncSettings instance to validate.

    Raises:
        ValueError: If the policy is unknown or a numeric value is out of
            range.
    """
    try:
        settings.policy = ConflictPolicy(settings.policy)
    except ValueError:
        raise ValueError(
            f"Invalid conflict policy '{settings.policy}': must be one of "
            f"{', '.join(p.value for p in ConflictPolicy)}"
        ) from None

    if settings.sync_interval_ms < MIN_SYNC_INTERVAL_MS:
        raise ValueError(
            f"Invalid sync interval {settings.sync_interval_ms} ms: "
            f"must be at least {MIN_SYNC_INTERVAL_MS} ms"
        )

    if not (1 <= settings.max_parallel_transfers <= MAX_PARALLEL_TRANSFERS):
        raise ValueError(
            f"Invalid max_parallel_transfers {settings.max_parallel_transfers}: "
            f"must be between 1 and {MAX_PARALLEL_TRANSFERS}"
        )

    if settings.max_parallel_transfers > 1:
        logger.warning(
            "Parallel transfers enabled (%d): up to that many requests "
            "may be in flight against the remote store",
            settings.max_parallel_transfers,
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_int_env(key: str) -> int | None:
    """Return an int from env var, or None if unset."""
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid {key} '{raw}': must be a number") from None


def load_settings(
    policy: str | None = None,
    content_aware: bool = False,
    max_parallel_transfers: int | None = None,
    yaml_fallbacks: dict | None = None,
) -> SyncSettings:
    """Load sync settings with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        policy: Override conflict policy.
        content_aware: Enable content-aware classification (CLI flag).
        max_parallel_transfers: Override transfer parallelism.
        yaml_fallbacks: Dict of values from the YAML ``sync`` section.

    Returns:
        Validated SyncSettings instance.

    Raises:
        ValueError: If any resolved value is invalid.
    """
    fb = yaml_fallbacks or {}
    defaults = SyncSettings()

    final_policy = (
        policy
        or os.getenv("VAULT_SYNC_POLICY")
        or fb.get("policy")
        or defaults.policy
    )

    env_auto = _get_bool_env("VAULT_SYNC_AUTO")
    if env_auto is not None:
        final_auto = env_auto
    else:
        final_auto = bool(fb.get("auto_sync", defaults.auto_sync))

    env_interval = _get_int_env("VAULT_SYNC_INTERVAL_MS")
    if env_interval is not None:
        final_interval = env_interval
    else:
        final_interval = int(
            fb.get("sync_interval_ms", defaults.sync_interval_ms)
        )

    if content_aware:
        final_content_aware = True
    else:
        env_content_aware = _get_bool_env("VAULT_SYNC_CONTENT_AWARE")
        if env_content_aware is not None:
            final_content_aware = env_content_aware
        else:
            final_content_aware = bool(fb.get("content_aware", False))

    if max_parallel_transfers is not None:
        final_parallel = max_parallel_transfers
    else:
        env_parallel = _get_int_env("VAULT_SYNC_MAX_PARALLEL")
        if env_parallel is not None:
            final_parallel = env_parallel
        else:
            final_parallel = int(
                fb.get(
                    "max_parallel_transfers",
                    defaults.max_parallel_transfers,
                )
            )

    settings = SyncSettings(
        policy=final_policy,
        auto_sync=final_auto,
        sync_interval_ms=final_interval,
        content_aware=final_content_aware,
        max_parallel_transfers=final_parallel,
        state_dir=fb.get("state_dir", defaults.state_dir),
        exclude=list(fb.get("exclude", defaults.exclude)),
    )

    validate_settings(settings)

    return settings

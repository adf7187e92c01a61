"""
YAML config file discovery and layering for vault-sync.

Three locations are searched (explicit ``VAULT_SYNC_CONFIG`` path, the
project ``.vault_sync/config.yml`` and the per-user file under
``~/.config``). Files may pull in fragments with ``!include`` and refer to
environment variables as ``${VAR}`` or ``${VAR:-fallback}``.

    from vault_sync.config_loader import load_hierarchical_config

    sections = load_hierarchical_config()   # {"sync": {...}, "storage": {...}}
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Sequence

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "VAULT_SYNC_CONFIG"
PROJECT_DIR = ".vault_sync"
CONFIG_NAME = "config.yml"

_PLACEHOLDER = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


# -- environment placeholders -------------------------------------------------


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` / ``${VAR:-fallback}`` placeholders in *value*.

    An unset variable expands to the fallback, or to nothing when there is
    none. An empty variable counts as unset. Text like ``${OPEN`` without a
    closing brace is not a placeholder and is returned as-is.
    """

    def _substitute(m: re.Match) -> str:
        name, fallback = m.group(1), m.group(2)
        current = os.environ.get(name)
        if current:
            return current
        return "" if fallback is None else fallback

    return _PLACEHOLDER.sub(_substitute, value)


def _expand_env(node: Any) -> Any:
    if isinstance(node, dict):
        return {key: _expand_env(item) for key, item in node.items()}
    if isinstance(node, list):
        return [_expand_env(item) for item in node]
    if isinstance(node, str):
        return interpolate_env_vars(node)
    return node


# -- !include -----------------------------------------------------------------


class IncludeLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!include <path>``.

    The tag is registered on this subclass only, so plain ``yaml.safe_load``
    keeps rejecting it.
    """

    chain: tuple[Path, ...] = ()


def _construct_include(loader: IncludeLoader, node: yaml.ScalarNode) -> Any:
    parent = Path(loader.name).resolve()
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = parent.parent / target
    target = target.resolve()

    if target in loader.chain:
        cycle = " -> ".join(str(p) for p in (*loader.chain, target))
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.is_file():
        raise FileNotFoundError(
            f"Included config {target} does not exist (from {parent})"
        )
    return read_yaml(target, chain=(*loader.chain, target))


IncludeLoader.add_constructor("!include", _construct_include)


def read_yaml(path: Path, *, chain: Sequence[Path] = ()) -> Any:
    """Parse one YAML file, following ``!include`` tags relative to it."""
    path = path.resolve()
    with path.open(encoding="utf-8") as stream:
        loader = IncludeLoader(stream)
        loader.chain = tuple(chain) or (path,)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# -- discovery ----------------------------------------------------------------


def config_search_path() -> list[Path]:
    """Candidate config locations, most specific first."""
    paths = []
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        paths.append(Path(explicit).expanduser().resolve())
    paths.append(Path.cwd() / PROJECT_DIR / CONFIG_NAME)
    paths.append(Path.home() / ".config" / "vault_sync" / CONFIG_NAME)
    return paths


def discover_config_files() -> list[Path]:
    """The entries of :func:`config_search_path` that exist on disk."""
    return [p for p in config_search_path() if p.exists()]


_STARTER_CONFIG = """\
# vault-sync configuration
#
# Values may reference environment variables: ${HOME}, ${VAR:-default}
#
# sync:
#   policy: manual            # local | remote | manual
#   auto_sync: true
#   sync_interval_ms: 300000  # minimum 60000
#   content_aware: false
#   max_parallel_transfers: 1
#   state_dir: .vault_sync
#   exclude: [.obsidian, .vault_sync]
#
# storage:
#   local_root: ~/notes
#   remote_root: /mnt/drive/notes
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a fully commented one if absent.

    *target* is only used when nothing is discovered; it defaults to the
    project file in the current directory.
    """
    found = discover_config_files()
    if found:
        logger.debug("Using existing config %s", found[0])
        return found[0]

    path = target or Path.cwd() / PROJECT_DIR / CONFIG_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Wrote starter config to %s", path)
    return path


# -- layering -----------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered file into one mapping of config sections.

    The per-user file is read first and the explicit file last. A later file
    replaces whole top-level sections of an earlier one; sections are not
    merged key by key. Placeholders are expanded on the merged result, and
    ``{}`` comes back when there are no files at all.
    """
    files = discover_config_files()
    if not files:
        logger.debug("No config file present; defaults apply")
        return {}

    sections: dict[str, Any] = {}
    for path in reversed(files):
        logger.debug("Reading config %s", path)
        try:
            data = read_yaml(path)
        except (OSError, ValueError, yaml.YAMLError):
            logger.exception("Could not read config %s", path)
            raise

        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring %s: top level is a %s, not a mapping",
                path,
                type(data).__name__,
            )
            continue
        sections.update(data)

    return _expand_env(sections)

"""
YAML → settings loader.

Loads tunable settings from defaults.yaml (bundled with the package) and
optionally merges user overrides from ~/.liftlog/config.yaml.

Usage:
    from liftlog.core.engine.config_loader import get_setting
    limit = get_setting("ranking", "limit", 5)

The user directory is ``$LIFTLOG_HOME`` when set, else ``~/.liftlog``. It
also holds the data store and the optional catalog override. If the user
override file exists but has parse errors, a warning is emitted and the file
is ignored.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path
from typing import Any

import yaml

from ..config import DATA_DIR_NAME

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; return {} when it is empty or not a mapping."""
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_user_dir() -> Path:
    """Return the per-user liftlog directory (not created here)."""
    override = os.environ.get("LIFTLOG_HOME")
    if override:
        return Path(override).expanduser()
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / DATA_DIR_NAME


def get_bundled_yaml_path() -> Path:
    """Return the path to the bundled defaults.yaml."""
    # config_loader.py lives at src/liftlog/core/engine/config_loader.py
    return Path(__file__).parent.parent.parent / "defaults.yaml"


def get_user_yaml_path() -> Path | None:
    """Return the user's config.yaml if it exists, else None."""
    p = get_user_dir() / "config.yaml"
    return p if p.exists() else None


def load_settings() -> dict[str, Any]:
    """
    Load and merge settings from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/liftlog/defaults.yaml
    2. User override at ~/.liftlog/config.yaml

    Returns:
        Merged dict of settings sections. Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled.exists():
        config = deep_merge(config, _load_yaml_file(bundled))

    user = get_user_yaml_path()
    if user is not None:
        try:
            user_cfg = _load_yaml_file(user)
        except yaml.YAMLError as exc:
            warnings.warn(f"liftlog: ignoring {user} ({exc})", stacklevel=2)
            user_cfg = {}
        if user_cfg:
            config = deep_merge(config, user_cfg)

    return config


def get_setting(section: str, key: str, default: Any) -> Any:
    """Look up ``section.key`` in the merged settings, falling back to *default*."""
    value = load_settings().get(section, {})
    if not isinstance(value, dict):
        return default
    return value.get(key, default)

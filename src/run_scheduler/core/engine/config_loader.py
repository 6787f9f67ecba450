"""
YAML → typed config loader.

Loads engine settings from engine.yaml (bundled with the package) and
optionally merges user overrides from ~/.run-scheduler/engine.yaml.

Usage:
    from run_scheduler.core.engine.config_loader import load_engine_config
    cfg = load_engine_config()
    tz = cfg.get("calendar", {}).get("default_timezone", "Europe/Paris")

If the bundled YAML cannot be parsed, all lookups return the Python defaults
from config.py (no crash).  Invalid badge entries are skipped with a warning.
"""

from __future__ import annotations

import importlib.resources
import os
import warnings
from pathlib import Path
from typing import Any

import yaml

from ..config import BADGE_DEFINITIONS, DEFAULT_TIMEZONE, STREAK_MILESTONES, BadgeDefinition

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; return {} on read or parse errors."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled engine.yaml, or None if not found."""
    ref = importlib.resources.files("run_scheduler").joinpath("engine.yaml")
    with importlib.resources.as_file(ref) as p:
        return p if p.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return ~/.run-scheduler/engine.yaml if it exists, else None."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / ".run-scheduler" / "engine.yaml"
    return p if p.exists() else None


def load_engine_config() -> dict[str, Any]:
    """
    Load and merge engine configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/run_scheduler/engine.yaml
    2. User override at ~/.run-scheduler/engine.yaml

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        config = _deep_merge(config, _load_yaml_file(bundled))

    user = get_user_yaml_path()
    if user is not None:
        user_cfg = _load_yaml_file(user)
        if user_cfg:
            config = _deep_merge(config, user_cfg)

    return config


def load_default_timezone(config: dict[str, Any] | None = None) -> str:
    """IANA zone used for "today" when a plan declares none."""
    cfg = load_engine_config() if config is None else config
    tz = cfg.get("calendar", {}).get("default_timezone")
    return tz if isinstance(tz, str) and tz else DEFAULT_TIMEZONE


def load_streak_milestones(config: dict[str, Any] | None = None) -> tuple[int, ...]:
    """Streak lengths that trigger a milestone notice, ascending."""
    cfg = load_engine_config() if config is None else config
    raw = cfg.get("streaks", {}).get("milestones")
    if not isinstance(raw, list):
        return STREAK_MILESTONES
    values = sorted({v for v in raw if isinstance(v, int) and v > 0})
    return tuple(values) if values else STREAK_MILESTONES


def load_badge_definitions(config: dict[str, Any] | None = None) -> tuple[BadgeDefinition, ...]:
    """
    Badge table from YAML, in file order.

    Entries that cannot be turned into a BadgeDefinition are skipped with a
    warning; an empty or missing table falls back to BADGE_DEFINITIONS.
    """
    cfg = load_engine_config() if config is None else config
    raw = cfg.get("badges")
    if not isinstance(raw, list) or not raw:
        return BADGE_DEFINITIONS

    badges: list[BadgeDefinition] = []
    for entry in raw:
        if not isinstance(entry, dict):
            warnings.warn(f"Skipping badge entry {entry!r}: expected a mapping", stacklevel=2)
            continue
        try:
            badges.append(
                BadgeDefinition(
                    id=str(entry["id"]),
                    name=str(entry.get("name", entry["id"])),
                    description=str(entry.get("description", "")),
                    requirement=int(entry["requirement"]),
                    metric=entry["metric"],
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            warnings.warn(f"Skipping badge entry {entry!r}: {e}", stacklevel=2)
    return tuple(badges) if badges else BADGE_DEFINITIONS

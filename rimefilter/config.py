"""Configuration loader for rime-filter.

Loads defaults from ``rime_filter.json`` in the working directory (or an
explicit path), with hardcoded fallbacks. Command line flags override both.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rimefilter.errors import ConfigError, NotFoundError

DEFAULT_CONFIG_NAME = "rime_filter.json"

# Hardcoded fallback defaults
FALLBACK_DEFAULTS: dict[str, Any] = {
    "dict": "quick5.dict.yaml",
    "output": "filtered_dict.yaml",
    "missing": "missing_chars.txt",
    "chars": "chinese_characters.txt",
    "cache_size": 1000,
    "backend": "fonttools",
    "font_index": None,
}


def _find_config() -> Path | None:
    path = Path.cwd() / DEFAULT_CONFIG_NAME
    return path if path.exists() else None


def load(path: Path | None = None) -> dict[str, Any]:
    """Return the fallback defaults updated with the config file values.

    Args:
        path: Explicit config file. When ``None`` the default file is used
            if present, otherwise the fallbacks alone are returned.

    Raises:
        NotFoundError: if an explicit ``path`` does not exist.
        ConfigError: if the file is unreadable, not a JSON object, or holds
            unknown keys or invalid values.
    """
    defaults = dict(FALLBACK_DEFAULTS)

    if path is None:
        path = _find_config()
        if path is None:
            return defaults
    elif not path.exists():
        raise NotFoundError("config file", path)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must hold a JSON object")

    # accept both a flat object and {"defaults": {...}}
    values = data.get("defaults", data)
    if not isinstance(values, dict):
        raise ConfigError(f"'defaults' in {path} must be a JSON object")

    unknown = sorted(set(values) - set(FALLBACK_DEFAULTS))
    if unknown:
        raise ConfigError(f"unknown keys in {path}: {', '.join(unknown)}")

    defaults.update(values)
    validate(defaults, source=str(path))
    return defaults


def validate(values: dict[str, Any], source: str = "configuration") -> None:
    cache_size = values.get("cache_size")
    if isinstance(cache_size, bool) or not isinstance(cache_size, int) or cache_size < 1:
        raise ConfigError(f"cache_size must be a positive integer in {source}")

    font_index = values.get("font_index")
    if font_index is not None and (
        isinstance(font_index, bool) or not isinstance(font_index, int) or font_index < 0
    ):
        raise ConfigError(f"font_index must be a non-negative integer in {source}")

    for key in ("dict", "output", "missing", "chars", "backend"):
        if not isinstance(values.get(key), str) or not values[key]:
            raise ConfigError(f"{key} must be a non-empty string in {source}")

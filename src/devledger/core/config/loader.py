"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import LedgerConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".devledger.json"

# Global cache to avoid reloading config multiple times per session
# Loaded configs, keyed by resolved project directory
_config_cache: dict[Path, LedgerConfig] = {}


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Path to ~/.config/devledger/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "devledger" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Project root (defaults to current directory)

    Returns:
        Path to .devledger.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries; values in ``override`` win.

    Example:
        >>> deep_merge({"catchup": {"parallel": 5, "model": "haiku"}},
        ...            {"catchup": {"parallel": 2}})
        {'catchup': {'parallel': 2, 'model': 'haiku'}}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON object from disk.

    Returns:
        Parsed dict, or None if the file is missing, unreadable or not an object
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: expected a JSON object", path)
        return None
    return data


def _set_nested(config: dict[str, Any], section: str, key: str, value: Any) -> None:
    section_dict = config.get(section)
    if not isinstance(section_dict, dict):
        section_dict = {}
    config[section] = {**section_dict, key: value}


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        DEVLEDGER_BACKEND - overrides backend
        DEVLEDGER_DIR - overrides ledger_dir
        DEVLEDGER_REMOTE - overrides remote
        DEVLEDGER_PARALLEL - overrides catchup.parallel
        DEVLEDGER_MODEL - overrides catchup.model
    """
    result = config_dict.copy()

    if backend := os.environ.get("DEVLEDGER_BACKEND"):
        result["backend"] = backend.strip().lower()

    if ledger_dir := os.environ.get("DEVLEDGER_DIR"):
        result["ledger_dir"] = ledger_dir

    if remote := os.environ.get("DEVLEDGER_REMOTE"):
        result["remote"] = remote

    if parallel_str := os.environ.get("DEVLEDGER_PARALLEL"):
        try:
            parallel = int(parallel_str)
        except ValueError:
            logger.warning("Invalid DEVLEDGER_PARALLEL value %r, ignoring", parallel_str)
        else:
            if parallel < 1:
                logger.warning("DEVLEDGER_PARALLEL must be >= 1, got %d, ignoring", parallel)
            else:
                _set_nested(result, "catchup", "parallel", parallel)

    if model := os.environ.get("DEVLEDGER_MODEL"):
        _set_nested(result, "catchup", "model", model)

    return result


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> LedgerConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (DEVLEDGER_*)
        2. Project config (.devledger.json)
        3. User config (~/.config/devledger/config.json)
        4. Model defaults

    Args:
        project_dir: Project directory to load .devledger.json from (defaults to cwd)
        use_cache: If True, return the config cached for this project directory

    Raises:
        ValidationError: If the merged config fails Pydantic validation

    Example:
        >>> config = load_config()
        >>> config.backend
        'files'
    """
    cache_key = (project_dir or Path.cwd()).resolve()
    if use_cache and cache_key in _config_cache:
        return _config_cache[cache_key]

    merged: dict[str, Any] = {}

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = LedgerConfig(**merged)
    _config_cache[cache_key] = config
    return config


def clear_cache() -> None:
    """Clear the cached configuration (tests, or after config files change)."""
    _config_cache.clear()

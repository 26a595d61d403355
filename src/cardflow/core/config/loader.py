"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

Env vars come from the process environment, backed by .env files:
    user .env < project .env < .env.local < os.environ
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from .models import CardflowConfig

logger = logging.getLogger(__name__)

# Variables read by apply_env_overrides
ENV_VARS = frozenset(
    {
        "CARDFLOW_DB_PATH",
        "CRON_SECRET",
        "CARDFLOW_RELEASE_INTERVAL",
        "CARDFLOW_PORT",
        "CARDFLOW_LOG_LEVEL",
    }
)

# Global cache to avoid reloading config multiple times per process
_config_cache: CardflowConfig | None = None


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
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/cardflow/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "cardflow" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .cardflow.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".cardflow.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {'a': 1, 'b': {'x': 10, 'y': 30, 'z': 40}, 'c': 3}
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
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken file
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def get_env_file_paths(project_dir: Path | None = None) -> list[Path]:
    """
    List the .env files that back the environment, lowest precedence first.

    Returns:
        ~/.config/cardflow/.env, then <project>/.env and <project>/.env.local
    """
    if project_dir is None:
        project_dir = Path.cwd()
    return [
        get_xdg_config_home() / "cardflow" / ".env",
        project_dir / ".env",
        project_dir / ".env.local",
    ]


def load_env_files(paths: list[Path]) -> dict[str, str]:
    """
    Read cardflow settings from .env files without touching os.environ.

    Later files win. Only the variables in ENV_VARS are kept, so a shared
    project .env can hold settings for other tools.
    """
    values: dict[str, str] = {}
    for path in paths:
        if not path.is_file():
            continue
        for key, value in dotenv_values(path).items():
            if key in ENV_VARS and value is not None:
                values[key] = value
    if values:
        logger.debug("Loaded %s from .env files", ", ".join(sorted(values)))
    return values


def _set_nested(config_dict: dict[str, Any], section: str, key: str, value: Any) -> None:
    if not isinstance(config_dict.get(section), dict):
        config_dict[section] = {}
    config_dict[section][key] = value


def apply_env_overrides(
    config_dict: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        CARDFLOW_DB_PATH - overrides database.path
        CRON_SECRET - overrides cron.secret
        CARDFLOW_RELEASE_INTERVAL - overrides scheduler.interval_seconds
        CARDFLOW_PORT - overrides server.port
        CARDFLOW_LOG_LEVEL - overrides logging.level

    Args:
        config_dict: Configuration dictionary to override
        environ: Variables to read (defaults to os.environ)

    Returns:
        Configuration dictionary with env var overrides applied
    """
    if environ is None:
        environ = os.environ
    result = config_dict.copy()

    if db_path := environ.get("CARDFLOW_DB_PATH"):
        _set_nested(result, "database", "path", db_path)

    if secret := environ.get("CRON_SECRET"):
        _set_nested(result, "cron", "secret", secret)

    if interval_str := environ.get("CARDFLOW_RELEASE_INTERVAL"):
        try:
            interval = int(interval_str)
            if interval < 1:
                logger.warning(
                    "CARDFLOW_RELEASE_INTERVAL must be >= 1, got %d, ignoring", interval
                )
            else:
                _set_nested(result, "scheduler", "interval_seconds", interval)
        except ValueError:
            logger.warning("Invalid CARDFLOW_RELEASE_INTERVAL value '%s', ignoring", interval_str)

    if port_str := environ.get("CARDFLOW_PORT"):
        try:
            _set_nested(result, "server", "port", int(port_str))
        except ValueError:
            logger.warning("Invalid CARDFLOW_PORT value '%s', ignoring", port_str)

    if level := environ.get("CARDFLOW_LOG_LEVEL"):
        _set_nested(result, "logging", "level", level)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "database": {"path": ".cardflow/cardflow.db"},
        "scheduler": {"interval_seconds": 300},
        "server": {"host": "127.0.0.1", "port": 8080},
        "logging": {"level": "INFO"},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> CardflowConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (CARDFLOW_*, CRON_SECRET), then the same
           variables from .env.local, .env and the user .env
        2. Project config (.cardflow.json)
        3. User config (~/.config/cardflow/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .cardflow.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated CardflowConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    environ = {**load_env_files(get_env_file_paths(project_dir)), **os.environ}
    merged = apply_env_overrides(merged, environ)

    config = CardflowConfig(**merged)

    # Relative database paths are anchored at the project directory
    db_path = Path(config.database.path)
    if not db_path.is_absolute():
        base = project_dir if project_dir is not None else Path.cwd()
        config.database.path = str(base / db_path)

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None

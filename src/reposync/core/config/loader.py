"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

The env-var layer is itself layered. REPOSYNC_* settings may come from a
user .env (~/.config/reposync/.env), a project .env next to .reposync.json,
or the process environment, which wins. .env values are only read into the
settings mapping; they are never exported, so git subprocesses started by
the engine see the agent's environment unchanged.
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from .models import ReposyncConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "REPOSYNC_"

# Global cache to avoid reloading config multiple times per process
_config_cache: ReposyncConfig | None = None


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
    """Path to ~/.config/reposync/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "reposync" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Path to .reposync.json in the given (or current) directory."""
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".reposync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested dicts
    are merged, not replaced.

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
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def get_user_env_path() -> Path:
    """Path to ~/.config/reposync/.env (or XDG equivalent)."""
    return get_xdg_config_home() / "reposync" / ".env"


def read_env_file(path: Path) -> dict[str, str]:
    """
    Read the REPOSYNC_* settings from a .env file.

    Other keys are ignored: a build agent's .env often carries unrelated
    secrets, and reposync has no business with them.
    """
    if not path.exists():
        return {}

    settings: dict[str, str] = {}
    for key, value in dotenv_values(path).items():
        if key is None or value is None:
            continue
        if not key.startswith(ENV_PREFIX):
            logger.debug("Ignoring %s in %s", key, path)
            continue
        settings[key] = value
    return settings


def env_settings(
    project_dir: Path | None = None, environ: Mapping[str, str] | None = None
) -> dict[str, str]:
    """
    Collect REPOSYNC_* settings: user .env < project .env < process environment.

    Args:
        project_dir: Directory holding the project .env (defaults to cwd)
        environ: Process environment (defaults to os.environ)

    Example:
        >>> env_settings(Path("/work/webapp"), {"REPOSYNC_TRUNK": "main"})["REPOSYNC_TRUNK"]
        'main'
    """
    if project_dir is None:
        project_dir = Path.cwd()
    if environ is None:
        environ = os.environ

    settings = read_env_file(get_user_env_path())
    settings.update(read_env_file(project_dir / ".env"))
    settings.update({k: v for k, v in environ.items() if k.startswith(ENV_PREFIX)})
    return settings


def _set_nested(config_dict: dict[str, Any], section: str, key: str, value: Any) -> None:
    if not isinstance(config_dict.get(section), dict):
        config_dict[section] = {}
    config_dict[section][key] = value


def apply_env_overrides(
    config_dict: dict[str, Any], env: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        REPOSYNC_REPOS_ROOT - overrides repos_root
        REPOSYNC_WORKSPACE_ROOT - overrides workspace_root
        REPOSYNC_TRUNK - overrides trunk_branch
        REPOSYNC_LOCK_WAIT - overrides lock_wait_seconds
        REPOSYNC_SLACK_CHANNEL - overrides alerts.channel
        REPOSYNC_ALERT_COMMAND - overrides alerts.command (whitespace separated)
        REPOSYNC_WORKDIR_SUBMODULES - overrides submodules.workdir_linked (comma separated)

    Args:
        config_dict: Configuration dictionary to override
        env: REPOSYNC_* settings to apply (defaults to the process environment)

    Returns:
        Configuration dictionary with env var overrides applied
    """
    if env is None:
        env = os.environ
    result = config_dict.copy()

    if repos_root := env.get("REPOSYNC_REPOS_ROOT"):
        result["repos_root"] = repos_root

    if workspace_root := env.get("REPOSYNC_WORKSPACE_ROOT"):
        result["workspace_root"] = workspace_root

    if trunk := env.get("REPOSYNC_TRUNK"):
        result["trunk_branch"] = trunk

    if wait_str := env.get("REPOSYNC_LOCK_WAIT"):
        try:
            wait = float(wait_str)
            if wait <= 0:
                logger.warning("REPOSYNC_LOCK_WAIT must be > 0, got %s, ignoring", wait_str)
            else:
                result["lock_wait_seconds"] = wait
        except ValueError:
            logger.warning("Invalid REPOSYNC_LOCK_WAIT value '%s', ignoring", wait_str)

    if channel := env.get("REPOSYNC_SLACK_CHANNEL"):
        _set_nested(result, "alerts", "channel", channel)

    if command := env.get("REPOSYNC_ALERT_COMMAND"):
        _set_nested(result, "alerts", "command", command.split())

    if linked := env.get("REPOSYNC_WORKDIR_SUBMODULES"):
        _set_nested(result, "submodules", "workdir_linked", linked.split(","))

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "remote": "origin",
        "trunk_branch": "master",
        "alerts": {"command": ["alert.py"], "enabled": True},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> ReposyncConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. REPOSYNC_* settings (process env > project .env > user .env)
        2. Project config (.reposync.json)
        3. User config (~/.config/reposync/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Directory to load .reposync.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated ReposyncConfig instance

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

    merged = apply_env_overrides(merged, env_settings(project_dir))

    config = ReposyncConfig(**merged)

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None

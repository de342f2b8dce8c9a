"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < env vars

CLI flags are applied on top by the caller.
"""

import json
import os
from pathlib import Path
from typing import Any

from canoup.core.errors import EnvironmentConfigError

from .models import CanoupConfig

# Global cache to avoid reloading config multiple times per run
_config_cache: CanoupConfig | None = None

MIRROR_DIR_NAME = "cano"


def get_home_dir() -> Path:
    """
    Get the current user's home directory.

    Raises:
        EnvironmentConfigError: If the home directory cannot be determined
    """
    try:
        return Path.home()
    except (RuntimeError, KeyError) as e:
        raise EnvironmentConfigError("Failed to find home directory.", detail=str(e)) from e


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return get_home_dir() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/canoup/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "canoup" / "config.json"


def get_default_mirror_dir() -> Path:
    """Default mirror location: ``<home>/cano``."""
    return get_home_dir() / MIRROR_DIR_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'x': 10, 'y': 2}}
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
        # config system should be resilient
        print(f"Warning: Failed to parse config at {path}: {e}")
        return None


def _set_nested(config: dict[str, Any], section: str, key: str, value: Any) -> None:
    config.setdefault(section, {})
    config[section][key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override the config file.

    Supported env vars:
        CANOUP_MIRROR_DIR - overrides repository.mirror_dir
        CANOUP_REPO_URL - overrides repository.url
        CANOUP_BRANCH - overrides repository.branch
        CANOUP_REMOTE - overrides repository.remote
        CANOUP_FAIL_ON_FETCH_ERROR - overrides repository.fail_on_fetch_error
        CANOUP_INSTALL_DIR - overrides install.install_dir
        CANOUP_INSTALL_MARKER - overrides install.marker

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = deep_merge({}, config_dict)

    plain_overrides = [
        ("CANOUP_MIRROR_DIR", "repository", "mirror_dir"),
        ("CANOUP_REPO_URL", "repository", "url"),
        ("CANOUP_BRANCH", "repository", "branch"),
        ("CANOUP_REMOTE", "repository", "remote"),
        ("CANOUP_INSTALL_DIR", "install", "install_dir"),
        ("CANOUP_INSTALL_MARKER", "install", "marker"),
    ]
    for env_name, section, key in plain_overrides:
        if value := os.environ.get(env_name):
            _set_nested(result, section, key, value)

    if fatal_str := os.environ.get("CANOUP_FAIL_ON_FETCH_ERROR"):
        fatal = fatal_str.lower() not in ("false", "0", "no", "")
        _set_nested(result, "repository", "fail_on_fetch_error", fatal)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    The mirror directory is resolved from the home directory here so the
    validated config always carries a concrete path.
    """
    return {
        "repository": {"mirror_dir": str(get_default_mirror_dir())},
    }


def load_config(use_cache: bool = True) -> CanoupConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (CANOUP_*)
        2. User config (~/.config/canoup/config.json)
        3. Hardcoded defaults

    Args:
        use_cache: If True, return cached config from previous load

    Returns:
        Validated CanoupConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
        EnvironmentConfigError: If the home directory cannot be resolved
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    merged = apply_env_overrides(merged)

    config = CanoupConfig(**merged)

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None

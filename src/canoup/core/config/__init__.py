"""
Configuration models and loading.

This module provides Pydantic models for canoup configuration
with multi-layer merging: defaults < user < env vars.
"""

from .env import load_layered_env
from .loader import (
    clear_cache,
    get_default_mirror_dir,
    get_home_dir,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import BuildConfig, CanoupConfig, InstallConfig, RepositoryConfig

__all__ = [
    # Models
    "BuildConfig",
    "CanoupConfig",
    "InstallConfig",
    "RepositoryConfig",
    # Loader functions
    "clear_cache",
    "get_default_mirror_dir",
    "get_home_dir",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    "load_layered_env",
]

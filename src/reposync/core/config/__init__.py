"""
Configuration models and loading.

This module provides Pydantic models for reposync configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    env_settings,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    AlertConfig,
    JournalConfig,
    ReposyncConfig,
    SubmoduleConfig,
    TimeoutConfig,
)

__all__ = [
    # Models
    "AlertConfig",
    "JournalConfig",
    "ReposyncConfig",
    "SubmoduleConfig",
    "TimeoutConfig",
    # Loader functions
    "clear_cache",
    "env_settings",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
]

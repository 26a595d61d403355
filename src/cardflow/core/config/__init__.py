"""
Configuration models and loading.

This module provides Pydantic models for cardflow configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    CardflowConfig,
    CronConfig,
    DatabaseConfig,
    LoggingConfig,
    SchedulerConfig,
    ServerConfig,
)

__all__ = [
    # Models
    "CardflowConfig",
    "CronConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "SchedulerConfig",
    "ServerConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
]

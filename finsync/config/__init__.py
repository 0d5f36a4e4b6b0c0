# FinSync Configuration Module
# Handles YAML-based configuration loading, validation, and defaults

from finsync.config.defaults import DEFAULT_CONFIG, generate_default_config
from finsync.config.loader import (
    ensure_config_exists,
    get_config_path,
    load_config,
    validate_config_file,
)
from finsync.config.schema import (
    ApiConfig,
    FinSyncConfig,
    LogLevel,
    OutputConfig,
    SchedulerConfig,
    StorageConfig,
)

__all__ = [
    # Schema
    "FinSyncConfig",
    "ApiConfig",
    "StorageConfig",
    "SchedulerConfig",
    "OutputConfig",
    "LogLevel",
    # Loader
    "load_config",
    "get_config_path",
    "ensure_config_exists",
    "validate_config_file",
    # Defaults
    "DEFAULT_CONFIG",
    "generate_default_config",
]

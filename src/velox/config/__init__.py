"""Configuration management for Velox.

Configuration is loaded with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (VELOX_*)
3. Config file (~/.velox/config.toml)
4. Default values (lowest priority)
"""

from velox.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from velox.config.env import EnvReader
from velox.config.loader import (
    ConfigFileError,
    clear_config_cache,
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
)
from velox.config.models import (
    LoggingConfig,
    ScannerConfig,
    ServerConfig,
    VeloxConfig,
)

__all__ = [
    # Models
    "LoggingConfig",
    "ScannerConfig",
    "ServerConfig",
    "VeloxConfig",
    # Loader
    "ConfigFileError",
    "clear_config_cache",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "load_config_file",
    # Layering
    "ConfigBuilder",
    "ConfigSource",
    "EnvReader",
    "source_from_env",
    "source_from_file",
]

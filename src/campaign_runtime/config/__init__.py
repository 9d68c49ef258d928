"""
Configuration system for campaign-runtime.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading
- YAML/TOML file loading
"""

from .base import AutonomyLevelName, LogFormat, LogLevel, StorageBackendType
from .logging import LoggingConfig
from .pipeline import CompilerConfig, GateConfig, SchedulerConfig
from .settings import Settings, configure, get_settings, load_env
from .storage import StorageConfig

__all__ = [
    # Types
    "AutonomyLevelName",
    "LogLevel",
    "LogFormat",
    "StorageBackendType",
    # Section configs
    "CompilerConfig",
    "SchedulerConfig",
    "GateConfig",
    "LoggingConfig",
    "StorageConfig",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "load_env",
]

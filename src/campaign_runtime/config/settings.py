"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import ConfigError
from .logging import LoggingConfig
from .pipeline import CompilerConfig, GateConfig, SchedulerConfig
from .storage import StorageConfig


@dataclass
class Settings:
    """
    Master configuration for the campaign runtime.

    Aggregates all configuration sections into a single object that can be
    loaded from environment variables, files, or constructed programmatically.
    """

    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_env(cls, prefix: str = "CAMPAIGN_") -> Settings:
        """
        Load settings from environment variables.

        Example:
            CAMPAIGN_AUTONOMY_LEVEL=fully_autonomous
            CAMPAIGN_APPROVAL_THRESHOLD=0.9
            CAMPAIGN_STRICT_ACYCLIC=true
        """
        settings = cls()

        # Compiler settings
        if strict := os.getenv(f"{prefix}STRICT_ACYCLIC"):
            settings.compiler.strict_acyclic = strict.lower() == "true"

        # Scheduler settings
        if confidence := os.getenv(f"{prefix}DEFAULT_CONFIDENCE"):
            settings.scheduler.default_confidence = float(confidence)

        # Gate settings
        if level := os.getenv(f"{prefix}AUTONOMY_LEVEL"):
            settings.gate.autonomy_level = level.lower()  # type: ignore
        if threshold := os.getenv(f"{prefix}APPROVAL_THRESHOLD"):
            settings.gate.approval_threshold = float(threshold)
        if ttl := os.getenv(f"{prefix}APPROVAL_TTL_SECONDS"):
            settings.gate.approval_ttl_seconds = float(ttl)

        # Logging settings
        if log_level := os.getenv(f"{prefix}LOG_LEVEL"):
            settings.logging.level = log_level.upper()  # type: ignore
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            settings.logging.format = log_format.lower()  # type: ignore

        # Storage settings
        if backend := os.getenv(f"{prefix}STORAGE_BACKEND"):
            settings.storage.backend = backend.lower()  # type: ignore
        if dsn := os.getenv(f"{prefix}PG_DSN"):
            settings.storage.pg_dsn = dsn

        settings.validate()
        return settings

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            import yaml

            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            import tomllib

            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def default(cls) -> Settings:
        return cls()

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema before
        any section is built.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        sections = {
            "compiler": CompilerConfig,
            "scheduler": SchedulerConfig,
            "gate": GateConfig,
            "logging": LoggingConfig,
            "storage": StorageConfig,
        }
        kwargs: dict[str, Any] = {}
        for name, config_cls in sections.items():
            if name in data:
                section = dict(data[name])
                if name == "gate" and "restricted_channels" in section:
                    section["restricted_channels"] = frozenset(section["restricted_channels"])
                try:
                    kwargs[name] = config_cls(**section)
                except ValueError as e:
                    raise ConfigError(f"Invalid {name} configuration: {e}", cause=e) from e

        return cls(**kwargs)

    def validate(self) -> None:
        """Re-run section validation after in-place edits."""
        for section in (self.compiler, self.scheduler, self.gate, self.logging, self.storage):
            try:
                section.__post_init__()
            except ValueError as e:
                raise ConfigError(str(e), cause=e) from e

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {k: convert(v) for k, v in dataclasses.asdict(obj).items()}
            elif isinstance(obj, frozenset):
                return sorted(obj)
            return obj

        return convert(self)


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating with defaults if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        settings: Settings object to use globally
        **kwargs: Override specific sections

    Returns:
        The configured Settings object
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for key, value in kwargs.items():
        if hasattr(_global_settings, key):
            setattr(_global_settings, key, value)

    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]

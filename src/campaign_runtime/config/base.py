"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

AutonomyLevelName = Literal["manual_approval", "semi_autonomous", "fully_autonomous"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]
StorageBackendType = Literal["memory", "postgres"]


__all__ = ["AutonomyLevelName", "LogLevel", "LogFormat", "StorageBackendType"]

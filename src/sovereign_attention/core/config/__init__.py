"""
Configuration Management Package

Provides Pydantic-based configuration models and management for Sovereign Attention.
"""

from sovereign_attention.core.config.models import (
    AppConfig,
    StorageConfig,
    RulesConfig,
    AttentionConfig,
    LoggingConfig,
)
from sovereign_attention.core.config.manager import ConfigManager

__all__ = [
    "AppConfig",
    "StorageConfig",
    "RulesConfig",
    "AttentionConfig",
    "LoggingConfig",
    "ConfigManager",
]

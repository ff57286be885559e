"""
Runtime Configuration Module

Provides configuration loading and management for the accumulator.
"""

from .runtime import (
    RuntimeConfig,
    TreeConfig,
    StorageConfig,
    ApiConfig,
    get_default_config,
    set_default_config,
    get_default_config_template,
)

__all__ = [
    "RuntimeConfig",
    "TreeConfig",
    "StorageConfig",
    "ApiConfig",
    "get_default_config",
    "set_default_config",
    "get_default_config_template",
]

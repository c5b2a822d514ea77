"""
Configuration management infrastructure.

This module provides the persisted store config (validation, template
interpolation, environment scoping) and the client runtime settings.
"""

from .manager import ConfigManager
from .models import (
    StoreConfig,
    ConnectionStringConfig,
    DiscreteStoreConfig,
    TunnelConfig,
    validate_store_config,
)
from .interpolation import interpolate, template_name, is_template
from .settings import KVSettings, LoggingConfig, runtime_environment

__all__ = [
    "ConfigManager",
    "StoreConfig",
    "ConnectionStringConfig",
    "DiscreteStoreConfig",
    "TunnelConfig",
    "validate_store_config",
    "interpolate",
    "template_name",
    "is_template",
    "KVSettings",
    "LoggingConfig",
    "runtime_environment",
]

"""
kvbridge - Environment-aware key-value store client.

This package manages per-environment store credentials, connects to the
store directly or through an SSH tunnel, and exposes typed get/set/clear
operations guarded by command timeouts.
"""

__version__ = "0.1.0"

# Public API exports
from .core.exceptions import (
    KVError,
    ErrorCode,
    ConfigError,
    ConfigInvalid,
    ConfigNotFound,
    MissingEnvVar,
    EmptyEnvVar,
    TunnelError,
    TunnelExhausted,
    ConnectError,
    CommandError,
    CommandTimeout,
    NotConnected,
    UnsupportedCommand,
    CorruptValue,
    RegistryError,
    DuplicateStore,
    StoreNotConnected,
)
from .core.interfaces.adapters import IKVAdapter, IConnectionBackend, ConnectionState
from .infrastructure.config import ConfigManager, KVSettings, LoggingConfig
from .infrastructure.logging import setup_logging
from .infrastructure.adapters import RedisAdapter
from .application.registry import StoreRegistry

__all__ = [
    "KVError",
    "ErrorCode",
    "ConfigError",
    "ConfigInvalid",
    "ConfigNotFound",
    "MissingEnvVar",
    "EmptyEnvVar",
    "TunnelError",
    "TunnelExhausted",
    "ConnectError",
    "CommandError",
    "CommandTimeout",
    "NotConnected",
    "UnsupportedCommand",
    "CorruptValue",
    "RegistryError",
    "DuplicateStore",
    "StoreNotConnected",
    "IKVAdapter",
    "IConnectionBackend",
    "ConnectionState",
    "ConfigManager",
    "KVSettings",
    "LoggingConfig",
    "setup_logging",
    "RedisAdapter",
    "StoreRegistry",
]

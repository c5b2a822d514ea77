"""
Store adapters and the helpers they are composed of.
"""

from .dispatcher import CommandDispatcher
from .lifecycle import ConnectionLifecycle
from .redis import RedisAdapter, RedisBackend
from .settings import build_connection_settings, resolve_private_key

__all__ = [
    "CommandDispatcher",
    "ConnectionLifecycle",
    "RedisAdapter",
    "RedisBackend",
    "build_connection_settings",
    "resolve_private_key",
]

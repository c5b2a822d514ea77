"""
Redis adapter.
"""

from .adapter import RedisAdapter
from .backend import RedisBackend, RedisConnection, SUPPORTED_COMMANDS, decode_response
from .retry import CappedLinearBackoff, ReconnectPolicy, reconnect_delay

__all__ = [
    "RedisAdapter",
    "RedisBackend",
    "RedisConnection",
    "SUPPORTED_COMMANDS",
    "decode_response",
    "CappedLinearBackoff",
    "ReconnectPolicy",
    "reconnect_delay",
]

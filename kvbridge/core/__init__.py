"""
Core module containing the error taxonomy, domain models and interfaces.

Nothing in here performs I/O; the infrastructure layer implements the
interfaces defined below.
"""

from .exceptions import KVError, ErrorCode
from .interfaces import IKVAdapter, IConnectionBackend, ConnectionState, ISSHTransport, ISSHSession
from .domain import ConnectionParams, ConnectionSettings, TunnelSettings

__all__ = [
    "KVError",
    "ErrorCode",
    "IKVAdapter",
    "IConnectionBackend",
    "ConnectionState",
    "ISSHTransport",
    "ISSHSession",
    "ConnectionParams",
    "ConnectionSettings",
    "TunnelSettings",
]

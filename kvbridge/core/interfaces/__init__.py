"""
Core interfaces defining the contracts between components.
"""

from .adapters import IKVAdapter, IConnectionBackend, ConnectionState, Keys, BytesLike
from .ssh import ISSHTransport, ISSHSession

__all__ = [
    "IKVAdapter",
    "IConnectionBackend",
    "ConnectionState",
    "Keys",
    "BytesLike",
    "ISSHTransport",
    "ISSHSession",
]

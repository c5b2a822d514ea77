"""
SSH tunnel services.
"""

from .forwarder import (
    TunnelManager,
    TunnelHandle,
    AsyncSSHTransport,
    AsyncSSHSession,
    is_address_in_use,
)
from .ports import PortRegistry

__all__ = [
    "TunnelManager",
    "TunnelHandle",
    "AsyncSSHTransport",
    "AsyncSSHSession",
    "PortRegistry",
    "is_address_in_use",
]

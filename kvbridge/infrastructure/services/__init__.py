"""
Infrastructure services.
"""

from .ssh import TunnelManager, TunnelHandle, PortRegistry

__all__ = [
    "TunnelManager",
    "TunnelHandle",
    "PortRegistry",
]

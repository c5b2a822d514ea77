"""
Domain models shared by the infrastructure and application layers.
"""

from .connection import ConnectionParams, ConnectionSettings, TunnelSettings, LOCAL_HOST

__all__ = [
    "ConnectionParams",
    "ConnectionSettings",
    "TunnelSettings",
    "LOCAL_HOST",
]

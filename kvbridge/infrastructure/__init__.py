"""
Infrastructure layer containing external dependencies and I/O operations.

This layer handles configuration persistence, logging, SSH tunnels and the
store adapters that talk to the network.
"""

from .config.manager import ConfigManager
from .logging.setup import setup_logging

__all__ = [
    "ConfigManager",
    "setup_logging",
]

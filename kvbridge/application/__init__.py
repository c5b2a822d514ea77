"""
Application layer.
"""

from .registry import MAIN_STORE, StoreRegistry

__all__ = ["MAIN_STORE", "StoreRegistry"]

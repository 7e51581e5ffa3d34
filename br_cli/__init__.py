"""
br-cli - Persistent remote control of a browser for agents.

Usage:
    br start
    br goto https://example.com
    br view-tree
    br click 60
"""

__version__ = "0.1.0"

from .tree import ElementResolver, SnapshotBuilder, SnapshotStore
from .session import ActionDispatcher, BrowserSessionContext

__all__ = [
    "ActionDispatcher",
    "BrowserSessionContext",
    "ElementResolver",
    "SnapshotBuilder",
    "SnapshotStore",
]

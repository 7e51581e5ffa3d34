"""
br_cli/tree

Page structure resolution: snapshot building and element resolution.
"""

from .element_resolver import ElementResolver
from .snapshot_builder import SnapshotBuilder
from .snapshot_store import SnapshotStore

__all__ = [
    "ElementResolver",
    "SnapshotBuilder",
    "SnapshotStore",
]

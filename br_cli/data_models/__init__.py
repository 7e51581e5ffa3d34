"""
br_cli/data_models

Pydantic models shared across br-cli.
"""

from .history import ActionRecord
from .locator import Locator, LocatorKind
from .tabs import Tab, TabInfo
from .tree import AccessibilityNode, DomNode, DomNodeType, Snapshot

__all__ = [
    "ActionRecord",
    "Locator",
    "LocatorKind",
    "Tab",
    "TabInfo",
    "AccessibilityNode",
    "DomNode",
    "DomNodeType",
    "Snapshot",
]

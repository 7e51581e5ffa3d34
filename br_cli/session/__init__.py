"""
Session-scoped state and the actions dispatched against it.
"""

from .context import BrowserSessionContext
from .dispatcher import ActionDispatcher
from .history import ActionHistory
from .secret_guard import SecretGuard
from .tab_registry import TabRegistry

__all__ = [
    "ActionDispatcher",
    "ActionHistory",
    "BrowserSessionContext",
    "SecretGuard",
    "TabRegistry",
]

"""
br_cli/session/tab_registry.py

Ordered registry of open tabs and which one is active.
"""

import threading

from br_cli.data_models.tabs import Tab
from br_cli.utils.exceptions import BrowserConnectionError, ValidationError
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)


class TabRegistry:
    """
    Append-only list of tabs plus the index of the active one.
    Tabs opened by the page itself are appended from the CDP receiver, so every
    access goes through a lock and listings return copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tabs: list[Tab] = []
        self._by_target_id: dict[str, Tab] = {}
        self._active_index: int = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._tabs)

    def append(self, target_id: str) -> Tab:
        """
        Register a tab. Registering a known target id returns the existing tab.
        """
        with self._lock:
            existing = self._by_target_id.get(target_id)
            if existing is not None:
                return existing
            tab = Tab(index=len(self._tabs), target_id=target_id)
            self._tabs.append(tab)
            self._by_target_id[target_id] = tab
        logger.info("🗂️ Registered tab %d (target %s)", tab.index, target_id)
        return tab

    def list(self) -> list[Tab]:
        """Return a copy of the tabs in registry order."""
        with self._lock:
            return list(self._tabs)

    @property
    def active_index(self) -> int:
        with self._lock:
            return self._active_index

    def active(self) -> Tab:
        """
        Return the active tab.
        Raises:
            BrowserConnectionError: If no tab has been registered yet.
        """
        with self._lock:
            if not self._tabs:
                raise BrowserConnectionError("No open tabs")
            return self._tabs[self._active_index]

    def switch(self, index: int) -> Tab:
        """
        Make the tab at `index` active.
        Raises:
            ValidationError: If `index` is out of range. The active tab is left unchanged.
        """
        with self._lock:
            if index < 0 or index >= len(self._tabs):
                raise ValidationError("invalid tab index")
            self._active_index = index
            tab = self._tabs[index]
        logger.info("🔀 Active tab is now %d", index)
        return tab

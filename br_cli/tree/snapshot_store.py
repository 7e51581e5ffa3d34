"""
br_cli/tree/snapshot_store.py

Holder for the current snapshot of the session.
"""

from br_cli.data_models.tree import Snapshot
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)


class SnapshotStore:
    """
    Holds exactly one current Snapshot (or none).
    A new snapshot replaces the previous one entirely; mappings are never merged.
    """

    def __init__(self) -> None:
        self._current: Snapshot | None = None

    @property
    def current(self) -> Snapshot | None:
        return self._current

    def replace(self, snapshot: Snapshot) -> Snapshot | None:
        """
        Make `snapshot` the current one.
        Returns:
            The snapshot that was replaced, if any.
        """
        previous = self._current
        self._current = snapshot
        logger.debug(
            "Snapshot replaced (%d ids, previously %d)",
            len(snapshot.path_index),
            len(previous.path_index) if previous else 0,
        )
        return previous

    def clear(self) -> None:
        """Drop the current snapshot so every numeric id lookup fails until the next build."""
        if self._current is not None:
            logger.info("🧹 Discarding current snapshot (%d ids)", len(self._current.path_index))
        self._current = None

    def lookup(self, element_id: str) -> str | None:
        """Return the structural path for an accessibility id in the current snapshot, if any."""
        if self._current is None:
            return None
        return self._current.path_for(element_id)

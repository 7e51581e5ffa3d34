"""
br_cli/session/history.py

Append-only record of dispatched actions.
"""

from typing import Any

from br_cli.data_models.history import ActionRecord


class ActionHistory:
    """
    Ordered, in-memory list of ActionRecords.
    No deduplication, no size cap, no persistence.
    """

    def __init__(self) -> None:
        self._records: list[ActionRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def record(self, action: str, args: dict[str, Any] | None = None) -> ActionRecord:
        """Append a record stamped with the current time."""
        record = ActionRecord(action=action, args=dict(args or {}))
        self._records.append(record)
        return record

    def list(self) -> list[ActionRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records = []

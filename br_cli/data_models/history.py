"""
br_cli/data_models/history.py

Data model for recorded actions.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ActionRecord(BaseModel):
    """
    One dispatched action. Immutable once appended to the history.
    """
    model_config = ConfigDict(frozen=True)

    action: str = Field(
        ...,
        description="Action name (e.g. 'goto', 'click', 'fill-secret')",
    )
    args: dict[str, Any] = Field(
        default_factory=dict,
        description="Arguments the action was dispatched with (secret values excluded)",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc),
        description="When the action was recorded",
    )

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()

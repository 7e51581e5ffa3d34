"""
br_cli/data_models/tabs.py

Data models for browser tabs.
"""

from pydantic import BaseModel, ConfigDict, Field


class Tab(BaseModel):
    """
    One open page in the Tab Registry.
    `index` is the position in the registry and never changes once assigned.
    """
    model_config = ConfigDict(frozen=True)

    index: int = Field(
        ...,
        description="Position in the registry, used as the addressing key",
    )
    target_id: str = Field(
        ...,
        description="CDP target id of the page",
    )


class TabInfo(BaseModel):
    """
    Listing entry returned by GET /tabs.
    """
    model_config = ConfigDict(populate_by_name=True)

    index: int
    title: str = ""
    url: str = ""
    is_active: bool = Field(default=False, alias="isActive")

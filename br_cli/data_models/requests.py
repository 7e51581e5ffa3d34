"""
br_cli/data_models/requests.py

Request body models for the daemon's HTTP endpoints.
"""

from pydantic import BaseModel, Field, field_validator


class GotoRequest(BaseModel):
    url: str = Field(..., min_length=1, description="URL to navigate the active tab to")


class SelectorRequest(BaseModel):
    selector: str = Field(..., min_length=1, description="Locator expression or numeric element id")


class TextInputRequest(SelectorRequest):
    text: str = Field(..., description="Text to fill or type (may be empty)")


class FillSecretRequest(SelectorRequest):
    secret: str = Field(..., description="Raw secret value; never echoed back in page content")


class PressRequest(BaseModel):
    key: str = Field(..., min_length=1, description="Key name or chord, e.g. 'Enter' or 'Control+A'")


class ScrollToRequest(BaseModel):
    percentage: float = Field(..., description="Target scroll position as a percentage of the page height")

    @field_validator("percentage")
    @classmethod
    def _finite(cls, value: float) -> float:
        if value != value or value in (float("inf"), float("-inf")):
            raise ValueError("percentage must be a finite number")
        return value


class SwitchTabRequest(BaseModel):
    index: int = Field(..., description="Registry index of the tab to activate")


class XPathForIdRequest(BaseModel):
    id: int | str = Field(..., description="Accessibility node id as shown in the tree brackets")

    @property
    def key(self) -> str:
        return str(self.id).strip()

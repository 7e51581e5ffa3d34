"""
br_cli/data_models/locator.py

Locator model: an expression the page driver resolves to zero or more live elements.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class LocatorKind(StrEnum):
    """Locator syntaxes understood by the page driver."""
    CSS = "css"
    XPATH = "xpath"


class Locator(BaseModel):
    """
    A concrete locator. Structural paths are always XPath locators.
    """
    model_config = ConfigDict(frozen=True)

    kind: LocatorKind = Field(
        ...,
        description="Syntax of the expression",
    )
    expression: str = Field(
        ...,
        description="The locator expression, without any 'css=' / 'xpath=' prefix",
    )

    @classmethod
    def from_expression(cls, expression: str) -> "Locator":
        """
        Classify a raw locator expression.
        Expressions starting with '/' or '(' or prefixed 'xpath=' are XPath;
        a 'css=' prefix or anything else is a CSS selector.
        Args:
            expression: The raw expression, used verbatim apart from the prefix.
        Returns:
            The Locator.
        """
        if expression.startswith("xpath="):
            return cls(kind=LocatorKind.XPATH, expression=expression[len("xpath="):])
        if expression.startswith("css="):
            return cls(kind=LocatorKind.CSS, expression=expression[len("css="):])
        if expression.startswith("/") or expression.startswith("("):
            return cls(kind=LocatorKind.XPATH, expression=expression)
        return cls(kind=LocatorKind.CSS, expression=expression)

    @classmethod
    def from_structural_path(cls, path: str) -> "Locator":
        """Wrap a structural path as an XPath locator."""
        return cls(kind=LocatorKind.XPATH, expression=path)

    def __str__(self) -> str:
        return f"{self.kind}={self.expression}"

"""
br_cli/utils/exceptions.py

Custom exceptions for br-cli.

Contains:
- BrCliError: Base class for everything raised on purpose by br-cli
- ValidationError: Missing or malformed request field (HTTP 400)
- UnknownIdError, ElementNotFoundError: Selector resolution failures
- InspectionFailureError: DOM/accessibility fetch failed (HTTP 500)
- ActionFailureError: Browser primitive failed (HTTP 500)
- BrowserConnectionError, DaemonNotRunningError: Process level failures
- DaemonResponseError: Error status returned to the CLI
"""


class BrCliError(Exception):
    """
    Base exception for all br-cli errors.
    """


class ValidationError(BrCliError):
    """
    Raised when a required request field is missing or malformed.
    """


class UnknownIdError(BrCliError):
    """
    Raised when a numeric element id is absent from the current snapshot's path index.
    """

    HINT = (
        "Pass the bare numeric id exactly as shown in the tree brackets "
        "(e.g. 60, not #60 or [60]), and run view-tree again if the page has changed."
    )

    def __init__(self, element_id: str) -> None:
        self.element_id = element_id
        super().__init__(f"Unknown element id {element_id}. {self.HINT}")


class ElementNotFoundError(BrCliError):
    """
    Raised when a resolved locator matches no live element in the page.
    """

    def __init__(self, selector: str, locator: str | None = None) -> None:
        self.selector = selector
        self.locator = locator
        message = f"No element matches selector {selector!r}"
        if locator is not None and locator != selector:
            message += f" (resolved to {locator!r})"
        super().__init__(message)


class InspectionFailureError(BrCliError):
    """
    Raised when the DOM or accessibility tree could not be fetched from a tab.
    """


class ActionFailureError(BrCliError):
    """
    Raised when the underlying browser primitive fails. Carries the driver's message verbatim.
    """


class BrowserConnectionError(BrCliError):
    """
    Raised when unable to launch or connect to the browser, or to attach to a tab.
    """


class DaemonNotRunningError(BrCliError):
    """
    Raised by the CLI when the daemon cannot be reached.
    """


class DaemonResponseError(BrCliError):
    """
    Raised by the CLI when the daemon answers with a non-2xx status.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message or f"daemon returned HTTP {status_code}")

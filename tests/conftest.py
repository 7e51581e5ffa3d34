"""
tests/conftest.py

Configuration for pytest: a scripted page driver and a small sample document.
"""

import re
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from br_cli.cdp.async_cdp_session import AsyncCDPSession, CDPCommandError
from br_cli.data_models.locator import Locator, LocatorKind
from br_cli.data_models.tabs import Tab
from br_cli.data_models.tree import AccessibilityNode, DomNode, DomNodeType
from br_cli.session.context import BrowserSessionContext
from br_cli.utils.exceptions import ActionFailureError

INVALID_CSS_PATTERN = re.compile(r"^\s*(?:[-+.]?\d|#\s*\d|\[\s*[-\d])")


def make_dom_node(
    node_id: int,
    parent_id: int | None,
    tag_name: str,
    backend_id: int | None = None,
    node_type: int = DomNodeType.ELEMENT,
) -> DomNode:
    """Build a DomNode; the backend id defaults to node_id + 100."""
    return DomNode(
        node_id=node_id,
        parent_id=parent_id,
        backend_id=backend_id if backend_id is not None else node_id + 100,
        node_type=node_type,
        tag_name=tag_name,
    )


def make_ax_node(
    ax_id: str,
    backend_dom_id: int | None,
    role: str | None = None,
    name: str | None = None,
    child_ids: list[str] | None = None,
) -> AccessibilityNode:
    return AccessibilityNode(
        ax_id=ax_id,
        backend_dom_id=backend_dom_id,
        role=role,
        name=name,
        child_ids=child_ids or [],
    )


class FakePage:
    """
    Page driver double that records every primitive call.
    Locators listed in `missing` match nothing; `fail_with` makes primitives raise.
    """

    def __init__(
        self,
        target_id: str = "TARGET-0",
        title: str = "",
        url: str = "about:blank",
        html: str = "",
        dom_nodes: list[DomNode] | None = None,
        ax_nodes: list[AccessibilityNode] | None = None,
    ) -> None:
        self.target_id = target_id
        self.page_title = title
        self.page_url = url
        self.html = html
        self.dom_nodes = dom_nodes or []
        self.ax_nodes = ax_nodes or []
        self.missing: set[str] = set()
        self.fail_with: Exception | None = None
        self.calls: list[tuple[Any, ...]] = []

    def _call(self, *call: Any) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append(call)

    async def count_matches(self, locator: Locator) -> int:
        self.calls.append(("count_matches", locator.kind.value, locator.expression))
        if locator.kind == LocatorKind.CSS and INVALID_CSS_PATTERN.match(locator.expression):
            # querySelectorAll throws on selectors starting with a digit, "#<digit>" or "[<digit>"
            raise ActionFailureError(
                f"SyntaxError: Failed to execute 'querySelectorAll' on 'Document': "
                f"'{locator.expression}' is not a valid selector."
            )
        return 0 if locator.expression in self.missing else 1

    async def navigate(self, url: str) -> None:
        self._call("navigate", url)
        self.page_url = url

    async def click(self, locator: Locator) -> None:
        self._call("click", locator.expression)

    async def fill(self, locator: Locator, text: str) -> None:
        self._call("fill", locator.expression, text)

    async def type(self, locator: Locator, text: str) -> None:
        self._call("type", locator.expression, text)

    async def press(self, key: str) -> None:
        self._call("press", key)

    async def scroll_into_view(self, locator: Locator) -> None:
        self._call("scroll_into_view", locator.expression)

    async def scroll_to_percentage(self, percentage: float) -> None:
        self._call("scroll_to_percentage", percentage)

    async def scroll_by_viewport(self, direction: int) -> None:
        self._call("scroll_by_viewport", direction)

    async def screenshot(self, path: Path) -> Path:
        self._call("screenshot", path)
        path.write_bytes(b"\x89PNG")
        return path

    async def content(self) -> str:
        self._call("content")
        return self.html

    async def get_dom_nodes(self) -> list[DomNode]:
        self._call("get_dom_nodes")
        return list(self.dom_nodes)

    async def get_ax_nodes(self) -> list[AccessibilityNode]:
        self._call("get_ax_nodes")
        return list(self.ax_nodes)


def make_context(*pages: FakePage) -> BrowserSessionContext:
    """
    Session context whose tabs are the given fake pages, in order.
    Target info comes from each page's title and url; a page whose title is None
    behaves like a closed target.
    """
    by_target_id = {page.target_id: page for page in pages}

    async def page_factory(tab: Tab) -> FakePage:
        return by_target_id[tab.target_id]

    async def get_target_info(target_id: str) -> dict[str, Any]:
        page = by_target_id[target_id]
        if page.page_title is None:
            raise CDPCommandError("Target.getTargetInfo", {"message": "No target with given id found"})
        return {"targetId": target_id, "type": "page", "title": page.page_title, "url": page.page_url}

    cdp_session = MagicMock(spec=AsyncCDPSession)
    cdp_session.get_target_info.side_effect = get_target_info

    context = BrowserSessionContext(cdp_session=cdp_session, page_factory=page_factory)
    for page in pages:
        context.tabs.append(page.target_id)
    return context


@pytest.fixture(scope="session")
def tests_root() -> Path:
    """
    Root directory for tests.
    Returns:
        Path to the tests directory.
    """
    return Path(__file__).parent.resolve()


@pytest.fixture
def sample_dom_nodes() -> list[DomNode]:
    """
    #document
      html
        body
          div
            span
            span
    """
    return [
        make_dom_node(1, None, "#document", node_type=DomNodeType.DOCUMENT),
        make_dom_node(2, 1, "html"),
        make_dom_node(3, 2, "body"),
        make_dom_node(4, 3, "div"),
        make_dom_node(5, 4, "span"),
        make_dom_node(6, 4, "span"),
    ]


@pytest.fixture
def sample_ax_nodes() -> list[AccessibilityNode]:
    """Accessibility tree over the sample document, plus one node without a DOM counterpart."""
    return [
        make_ax_node("1", 101, "RootWebArea", "Sample", ["2", "99"]),
        make_ax_node("2", 104, "generic", None, ["60", "61"]),
        make_ax_node("60", 105, "button", "First"),
        make_ax_node("61", 106, "button", "Second"),
        make_ax_node("99", None, "StaticText", "orphan"),
    ]


@pytest.fixture
def sample_page(sample_dom_nodes: list[DomNode], sample_ax_nodes: list[AccessibilityNode]) -> FakePage:
    return FakePage(
        target_id="TARGET-0",
        title="Sample",
        url="https://example.com/",
        html="<html><body><input value='s3cr3t'></body></html>",
        dom_nodes=sample_dom_nodes,
        ax_nodes=sample_ax_nodes,
    )

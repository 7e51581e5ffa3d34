"""
br_cli/cdp/page.py

Browser primitives for one tab, driven over a flat-mode CDP target session.

Contains:
- PageDriver: navigate, evaluate, locate, click, fill, type, press, scroll,
  screenshot, content, and the DOM/accessibility inspection fetches
- flatten_dom_tree(): Turns a nested DOM.getDocument tree into a flat node list
"""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path
from typing import Any

from br_cli.cdp.async_cdp_session import AsyncCDPSession, CDPCommandError
from br_cli.data_models.locator import Locator
from br_cli.data_models.tree import AccessibilityNode, DomNode
from br_cli.utils import js_utils
from br_cli.utils.exceptions import ActionFailureError
from br_cli.utils.keys import KeyDefinition, key_for_character, modifier_mask, parse_key_chord
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)


def flatten_dom_tree(root: dict[str, Any]) -> list[DomNode]:
    """
    Flatten a nested CDP DOM.Node tree into DomNodes in document order,
    each carrying an explicit parent id. Shadow roots and iframe documents
    follow the light-DOM children of their host.
    Args:
        root: The `root` node returned by DOM.getDocument.
    Returns:
        Flat list of DomNodes.
    """
    flat: list[DomNode] = []
    stack: list[tuple[dict[str, Any], int | None]] = [(root, root.get("parentId"))]
    while stack:
        node, parent_id = stack.pop()
        flat.append(DomNode.from_cdp(node, parent_id=parent_id))
        nested = [
            *(node.get("children") or []),
            *(node.get("shadowRoots") or []),
        ]
        if node.get("contentDocument"):
            nested.append(node["contentDocument"])
        stack.extend((child, node["nodeId"]) for child in reversed(nested))
    return flat


class PageDriver:
    """
    Primitive browser operations against one tab.
    Script and protocol failures surface as ActionFailureError carrying the browser's message.
    """

    # Class attributes _____________________________________________________________________________________________________

    PAGE_DOMAINS: tuple[str, ...] = ("Page", "Runtime")


    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, cdp_session: AsyncCDPSession, target_id: str, session_id: str) -> None:
        """
        Initialize PageDriver.
        Args:
            cdp_session: The browser-level CDP session.
            target_id: CDP target id of the tab.
            session_id: Flat-mode sessionId obtained by attaching to the target.
        """
        self.cdp_session = cdp_session
        self.target_id = target_id
        self.session_id = session_id


    # Class methods ________________________________________________________________________________________________________

    @classmethod
    async def attach(cls, cdp_session: AsyncCDPSession, target_id: str) -> PageDriver:
        """
        Attach to a tab and enable the domains the primitives rely on.
        """
        session_id = await cdp_session.attach_to_target(target_id)
        page = cls(cdp_session=cdp_session, target_id=target_id, session_id=session_id)
        for domain in cls.PAGE_DOMAINS:
            await cdp_session.enable_domain(domain, session_id=session_id)
        return page


    # Private methods ______________________________________________________________________________________________________

    async def _send(self, method: str, params: dict | None = None) -> dict:
        try:
            return await self.cdp_session.send_and_wait(method=method, params=params, session_id=self.session_id)
        except CDPCommandError as e:
            raise ActionFailureError(f"{method}: {e}") from e

    async def _evaluate_checked(self, expression: str) -> Any:
        """Evaluate a snippet that reports failures as {error: ...}."""
        result = await self.evaluate(expression)
        if isinstance(result, dict) and result.get("error"):
            raise ActionFailureError(result["error"])
        return result

    async def _dispatch_key(self, key: KeyDefinition, modifiers: int = 0) -> None:
        down: dict[str, Any] = {
            "type": "keyDown" if key.text else "rawKeyDown",
            "key": key.key,
            "code": key.code,
            "windowsVirtualKeyCode": key.key_code,
            "nativeVirtualKeyCode": key.key_code,
            "modifiers": modifiers,
        }
        if key.text:
            down["text"] = key.text
            down["unmodifiedText"] = key.text
        await self._send("Input.dispatchKeyEvent", down)
        await self._send("Input.dispatchKeyEvent", {
            "type": "keyUp",
            "key": key.key,
            "code": key.code,
            "windowsVirtualKeyCode": key.key_code,
            "nativeVirtualKeyCode": key.key_code,
            "modifiers": modifiers,
        })


    # Public methods _______________________________________________________________________________________________________

    async def evaluate(self, expression: str) -> Any:
        """
        Evaluate JavaScript in the page and return its value.
        Raises:
            ActionFailureError: If the script throws.
        """
        result = await self._send("Runtime.evaluate", {
            "expression": expression,
            "returnByValue": True,
            "awaitPromise": True,
        })
        exception_details = result.get("exceptionDetails")
        if exception_details:
            description = (exception_details.get("exception") or {}).get("description")
            raise ActionFailureError(description or exception_details.get("text") or "Script evaluation failed")
        return (result.get("result") or {}).get("value")

    async def navigate(self, url: str) -> None:
        """
        Navigate the tab and wait for the load event of the new document.
        Same-document navigations (no new loader) return immediately.
        """
        load_event = self.cdp_session.expect_event("Page.loadEventFired", session_id=self.session_id)
        try:
            result = await self._send("Page.navigate", {"url": url})
        except BaseException:
            self.cdp_session.cancel_event("Page.loadEventFired", load_event, session_id=self.session_id)
            raise

        error_text = result.get("errorText")
        if error_text:
            self.cdp_session.cancel_event("Page.loadEventFired", load_event, session_id=self.session_id)
            raise ActionFailureError(f"{error_text} at {url}")
        if not result.get("loaderId"):
            self.cdp_session.cancel_event("Page.loadEventFired", load_event, session_id=self.session_id)
            return
        await load_event

    async def count_matches(self, locator: Locator) -> int:
        """Return how many live elements the locator matches."""
        count = await self.evaluate(js_utils.generate_count_js(locator))
        return int(count or 0)

    async def click(self, locator: Locator) -> None:
        """Scroll the first match into view and click its centre."""
        box = await self._evaluate_checked(js_utils.generate_click_js(locator))
        x, y = box["x"], box["y"]
        await self._send("Input.dispatchMouseEvent", {"type": "mouseMoved", "x": x, "y": y})
        for event_type in ("mousePressed", "mouseReleased"):
            await self._send("Input.dispatchMouseEvent", {
                "type": event_type,
                "x": x,
                "y": y,
                "button": "left",
                "clickCount": 1,
            })

    async def fill(self, locator: Locator, text: str) -> None:
        """Replace the value of an editable element with `text`."""
        await self._evaluate_checked(js_utils.generate_focus_input_js(locator, clear=True))
        if text:
            await self._send("Input.insertText", {"text": text})
        await self._evaluate_checked(js_utils.generate_dispatch_change_js(locator))

    async def type(self, locator: Locator, text: str) -> None:
        """Focus an editable element and send one key event per character."""
        await self._evaluate_checked(js_utils.generate_focus_input_js(locator, clear=False))
        for char in text:
            await self._dispatch_key(key_for_character(char))

    async def press(self, key: str) -> None:
        """
        Press a key or chord (e.g. "Enter", "a", "Control+A") on the focused element.
        Raises:
            ActionFailureError: If the key name is unknown.
        """
        try:
            modifiers, main_key = parse_key_chord(key)
        except ValueError as e:
            raise ActionFailureError(str(e)) from e

        mask = 0
        for name in modifiers:
            mask |= modifier_mask([name])
            modifier_key = parse_key_chord(name)[1]
            await self._send("Input.dispatchKeyEvent", {
                "type": "rawKeyDown",
                "key": modifier_key.key,
                "code": modifier_key.code,
                "windowsVirtualKeyCode": modifier_key.key_code,
                "modifiers": mask,
            })

        # control/meta chords must not insert text
        if mask & (modifier_mask(["Control"]) | modifier_mask(["Meta"])) and main_key.text:
            main_key = main_key._replace(text=None)
        await self._dispatch_key(main_key, modifiers=mask)

        for name in reversed(modifiers):
            mask &= ~modifier_mask([name])
            modifier_key = parse_key_chord(name)[1]
            await self._send("Input.dispatchKeyEvent", {
                "type": "keyUp",
                "key": modifier_key.key,
                "code": modifier_key.code,
                "windowsVirtualKeyCode": modifier_key.key_code,
                "modifiers": mask,
            })

    async def scroll_into_view(self, locator: Locator) -> None:
        await self._evaluate_checked(js_utils.generate_scroll_into_view_js(locator))

    async def scroll_to_percentage(self, percentage: float) -> None:
        await self._evaluate_checked(js_utils.generate_scroll_to_percentage_js(percentage))

    async def scroll_by_viewport(self, direction: int) -> None:
        """Scroll one viewport height down (1) or up (-1)."""
        await self.evaluate(js_utils.generate_scroll_by_viewport_js(direction))

    async def screenshot(self, path: Path) -> Path:
        """Capture the viewport as PNG and write it to `path`."""
        result = await self._send("Page.captureScreenshot", {"format": "png"})
        data = base64.b64decode(result["data"])
        await asyncio.to_thread(path.write_bytes, data)
        return path

    async def content(self) -> str:
        """Return the serialized document, doctype included."""
        return await self.evaluate(js_utils.generate_get_html_js()) or ""

    async def get_dom_nodes(self) -> list[DomNode]:
        """Fetch every node of the document (shadow roots and iframes included) as a flat list."""
        # whitespace-only text nodes are not reported, so text() ranks can differ from live XPath
        result = await self._send("DOM.getDocument", {"depth": -1, "pierce": True})
        return flatten_dom_tree(result["root"])

    async def get_ax_nodes(self) -> list[AccessibilityNode]:
        """Fetch the full accessibility tree in the engine's order."""
        await self.cdp_session.enable_domain("Accessibility", session_id=self.session_id)
        result = await self._send("Accessibility.getFullAXTree")
        return [AccessibilityNode.from_cdp(node) for node in result.get("nodes", [])]

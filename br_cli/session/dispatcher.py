"""
br_cli/session/dispatcher.py

Browser-affecting operations against the active tab.

Every mutating operation has the same shape: resolve the selector, run the
driver primitive on the active tab, then append an ActionRecord. Records are
only written after the primitive succeeded.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from br_cli.config import Config
from br_cli.data_models.history import ActionRecord
from br_cli.data_models.tabs import TabInfo
from br_cli.data_models.tree import Snapshot
from br_cli.session.context import BrowserSessionContext
from br_cli.tree.snapshot_builder import SnapshotBuilder
from br_cli.utils.exceptions import ActionFailureError, BrCliError, InspectionFailureError, UnknownIdError
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)


@contextmanager
def _driver_errors(action: str) -> Iterator[None]:
    """Surface unexpected driver exceptions as ActionFailureError with the original message."""
    try:
        yield
    except BrCliError:
        raise
    except Exception as e:
        logger.error("❌ %s failed: %s", action, e)
        raise ActionFailureError(str(e) or type(e).__name__) from e


class ActionDispatcher:
    """
    Runs navigation, input, scrolling and read operations for one session context.
    """

    # Class attributes _____________________________________________________________________________________________________

    MIN_PERCENTAGE: float = 0.0
    MAX_PERCENTAGE: float = 100.0


    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, context: BrowserSessionContext) -> None:
        self.context = context


    # Class methods ________________________________________________________________________________________________________

    @classmethod
    def clamp_percentage(cls, percentage: float) -> float:
        return max(cls.MIN_PERCENTAGE, min(cls.MAX_PERCENTAGE, percentage))


    # Private methods ______________________________________________________________________________________________________

    def _record(self, action: str, args: dict | None = None) -> None:
        self.context.history.record(action, args)
        logger.info("✅ %s %s", action, args or "")

    def _invalidate_ids(self) -> None:
        if Config.BR_INVALIDATE_IDS_ON_NAVIGATION:
            self.context.snapshots.clear()


    # Navigation ___________________________________________________________________________________________________________

    async def goto(self, url: str) -> None:
        with _driver_errors("goto"):
            page = await self.context.active_page()
            await page.navigate(url)
        self._invalidate_ids()
        self._record("goto", {"url": url})

    async def switch_tab(self, index: int) -> None:
        """
        Make another tab active.
        Raises:
            ValidationError: If the index is out of range.
        """
        self.context.tabs.switch(index)
        self._invalidate_ids()
        self._record("switch-tab", {"index": index})

    async def list_tabs(self) -> list[TabInfo]:
        """
        List every registered tab with its title and URL.
        A tab whose details cannot be read is still listed, with empty title and URL.
        """
        active_index = self.context.tabs.active_index
        infos: list[TabInfo] = []
        for tab in self.context.tabs.list():
            title, url = "", ""
            try:
                info = await self.context.tab_details(tab)
                title, url = info.get("title", ""), info.get("url", "")
            except Exception as e:
                logger.warning("⚠️ Could not read details of tab %d: %s", tab.index, e)
            infos.append(TabInfo(index=tab.index, title=title, url=url, is_active=tab.index == active_index))
        return infos


    # Element actions ______________________________________________________________________________________________________

    async def click(self, selector: str) -> None:
        with _driver_errors("click"):
            page = await self.context.active_page()
            locator = await self.context.resolver.resolve(selector, page)
            await page.click(locator)
        self._record("click", {"selector": selector})

    async def fill(self, selector: str, text: str) -> None:
        with _driver_errors("fill"):
            page = await self.context.active_page()
            locator = await self.context.resolver.resolve(selector, page)
            await page.fill(locator, text)
        self._record("fill", {"selector": selector, "text": text})

    async def fill_secret(self, selector: str, secret: str) -> None:
        """
        Fill a field with a secret value. The value joins the secret set before the
        fill is attempted and is never written to the history.
        """
        self.context.secrets.add(secret)
        with _driver_errors("fill-secret"):
            page = await self.context.active_page()
            locator = await self.context.resolver.resolve(selector, page)
            await page.fill(locator, secret)
        self._record("fill-secret", {"selector": selector})

    async def type(self, selector: str, text: str) -> None:
        with _driver_errors("type"):
            page = await self.context.active_page()
            locator = await self.context.resolver.resolve(selector, page)
            await page.type(locator, text)
        self._record("type", {"selector": selector, "text": text})

    async def press(self, key: str) -> None:
        with _driver_errors("press"):
            page = await self.context.active_page()
            await page.press(key)
        self._record("press", {"key": key})


    # Scrolling ____________________________________________________________________________________________________________

    async def scroll_into_view(self, selector: str) -> None:
        with _driver_errors("scrollIntoView"):
            page = await self.context.active_page()
            locator = await self.context.resolver.resolve(selector, page)
            await page.scroll_into_view(locator)
        self._record("scrollIntoView", {"selector": selector})

    async def scroll_to(self, percentage: float) -> float:
        """
        Scroll to a percentage of the page height, clamped into [0, 100].
        Returns:
            The percentage actually used.
        """
        percentage = self.clamp_percentage(percentage)
        with _driver_errors("scrollTo"):
            page = await self.context.active_page()
            await page.scroll_to_percentage(percentage)
        self._record("scrollTo", {"percentage": percentage})
        return percentage

    async def next_chunk(self) -> None:
        with _driver_errors("next-chunk"):
            page = await self.context.active_page()
            await page.scroll_by_viewport(1)
        self._record("next-chunk")

    async def prev_chunk(self) -> None:
        with _driver_errors("prev-chunk"):
            page = await self.context.active_page()
            await page.scroll_by_viewport(-1)
        self._record("prev-chunk")


    # Reads ________________________________________________________________________________________________________________

    async def screenshot(self) -> Path:
        """Capture the active tab into the screenshot directory and return the file path."""
        directory = Path(Config.BR_SCREENSHOT_DIR)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"shot-{int(time.time() * 1000)}.png"
        with _driver_errors("screenshot"):
            page = await self.context.active_page()
            await page.screenshot(path)
        logger.info("📸 Screenshot saved to %s", path)
        return path

    async def html(self) -> str:
        """Return the active tab's HTML with every registered secret masked."""
        with _driver_errors("html"):
            page = await self.context.active_page()
            content = await page.content()
        return self.context.secrets.redact(content)

    async def view_tree(self) -> Snapshot:
        """
        Build a fresh snapshot of the active tab and make it the current one.
        Raises:
            InspectionFailureError: If the tab cannot be attached or either fetch fails.
        """
        try:
            page = await self.context.active_page()
        except Exception as e:
            logger.error("❌ Could not attach to the active tab for inspection: %s", e)
            raise InspectionFailureError(f"Failed to fetch page structure: {e}") from e
        snapshot = await SnapshotBuilder.build(page)
        self.context.snapshots.replace(snapshot)
        return snapshot

    def xpath_for_id(self, element_id: str) -> str:
        """
        Return the structural path recorded for an element id in the current snapshot.
        Raises:
            UnknownIdError: If the id is not mapped.
        """
        parsed = self.context.resolver.parse_element_id(element_id)
        if parsed is None:
            raise UnknownIdError(element_id)
        return self.context.resolver.path_for_id(parsed)

    def history(self) -> list[ActionRecord]:
        return self.context.history.list()

    def clear_history(self) -> None:
        self.context.history.clear()
        logger.info("🧹 History cleared")

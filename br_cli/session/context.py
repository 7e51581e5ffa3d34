"""
br_cli/session/context.py

Session-scoped state of one daemon process.

Contains:
- BrowserSessionContext: owns the browser connection, the Tab Registry,
  the current snapshot, the action history and the secret set
"""

from __future__ import annotations

import asyncio
import subprocess
from typing import Any, Awaitable, Callable

from br_cli.cdp.async_cdp_session import AsyncCDPSession
from br_cli.cdp.connection import get_browser_websocket_url, remote_debugging_address_for_port
from br_cli.cdp.page import PageDriver
from br_cli.config import Config
from br_cli.data_models.tabs import Tab
from br_cli.session.history import ActionHistory
from br_cli.session.secret_guard import SecretGuard
from br_cli.session.tab_registry import TabRegistry
from br_cli.tree.element_resolver import ElementResolver
from br_cli.tree.snapshot_store import SnapshotStore
from br_cli.utils.chrome_utils import ensure_chrome_running, terminate_chrome
from br_cli.utils.exceptions import BrowserConnectionError
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)

PageFactory = Callable[[Tab], Awaitable[PageDriver]]


class BrowserSessionContext:
    """
    Everything a daemon process shares between requests.
    Exactly one current snapshot exists per context, replaced on every rebuild.
    Page drivers are attached lazily, one per tab, on first use.
    """

    # Magic methods ________________________________________________________________________________________________________

    def __init__(
        self,
        cdp_session: AsyncCDPSession | None = None,
        page_factory: PageFactory | None = None,
        browser_process: subprocess.Popen | None = None,
    ) -> None:
        """
        Initialize BrowserSessionContext.
        Args:
            cdp_session: Connected browser-level CDP session. Optional when a page_factory is given.
            page_factory: Builds the page driver for a tab. Defaults to attaching over CDP.
            browser_process: Chrome process launched by this daemon, terminated on close.
        """
        self.cdp_session = cdp_session
        self.browser_process = browser_process
        self.tabs = TabRegistry()
        self.snapshots = SnapshotStore()
        self.resolver = ElementResolver(snapshot_store=self.snapshots)
        self.history = ActionHistory()
        self.secrets = SecretGuard()

        self._page_factory: PageFactory = page_factory or self._attach_page
        self._pages: dict[str, PageDriver] = {}
        self._pages_lock = asyncio.Lock()


    # Class methods ________________________________________________________________________________________________________

    @classmethod
    async def open(cls, remote_debugging_address: str | None = None) -> BrowserSessionContext:
        """
        Connect to Chrome (launching it when nothing listens on the debug port) and
        register its open pages as tabs.
        Args:
            remote_debugging_address: Attach to this browser instead of the local debug port.
        Returns:
            The connected context.
        Raises:
            BrowserConnectionError: If the browser cannot be launched or reached.
        """
        remote_debugging_address = remote_debugging_address or Config.CHROME_REMOTE_DEBUGGING_ADDRESS
        browser_process = None
        if remote_debugging_address is None:
            browser_process = await asyncio.to_thread(
                ensure_chrome_running,
                Config.CHROME_DEBUG_PORT,
                Config.BR_HEADLESS,
            )
            remote_debugging_address = remote_debugging_address_for_port(Config.CHROME_DEBUG_PORT)

        context = cls(browser_process=browser_process)
        try:
            ws_url = await asyncio.to_thread(get_browser_websocket_url, remote_debugging_address)
            context.cdp_session = AsyncCDPSession(
                ws_url=ws_url,
                command_timeout=Config.BR_CDP_TIMEOUT,
                page_created_callback_fn=context._on_page_created,
            )
            await context.cdp_session.connect()

            for target_info in await context.cdp_session.get_page_targets():
                context.tabs.append(target_info["targetId"])
            if len(context.tabs) == 0:
                context.tabs.append(await context.cdp_session.create_target("about:blank"))

            # pages opened later (window.open, target=_blank) arrive as Target.targetCreated
            await context.cdp_session.discover_targets()
        except BaseException:
            await context.close()
            raise

        logger.info("✅ Browser session ready with %d tab(s)", len(context.tabs))
        return context


    # Private methods ______________________________________________________________________________________________________

    def _on_page_created(self, target_id: str) -> None:
        self.tabs.append(target_id)

    async def _attach_page(self, tab: Tab) -> PageDriver:
        if self.cdp_session is None:
            raise BrowserConnectionError("Browser session is not connected")
        return await PageDriver.attach(cdp_session=self.cdp_session, target_id=tab.target_id)


    # Public methods _______________________________________________________________________________________________________

    async def page_for(self, tab: Tab) -> PageDriver:
        """Return the page driver of a tab, attaching to it on first use."""
        async with self._pages_lock:
            page = self._pages.get(tab.target_id)
            if page is None:
                logger.debug("Attaching driver for tab %d", tab.index)
                page = await self._page_factory(tab)
                self._pages[tab.target_id] = page
            return page

    async def active_page(self) -> PageDriver:
        return await self.page_for(self.tabs.active())

    async def tab_details(self, tab: Tab) -> dict[str, Any]:
        """Target info of a tab (title, url, ...), read without attaching to it."""
        if self.cdp_session is None:
            raise BrowserConnectionError("Browser session is not connected")
        return await self.cdp_session.get_target_info(tab.target_id)

    async def close(self) -> None:
        """Disconnect from the browser and stop it if this context launched it."""
        if self.cdp_session is not None:
            await self.cdp_session.close()
            self.cdp_session = None
        self._pages.clear()
        if self.browser_process is not None:
            await asyncio.to_thread(terminate_chrome, self.browser_process)
            self.browser_process = None
        logger.info("🛑 Browser session closed")

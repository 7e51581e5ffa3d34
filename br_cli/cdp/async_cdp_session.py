"""
br_cli/cdp/async_cdp_session.py

Browser-level asynchronous CDP session.
One WebSocket carries commands for every tab using flat-mode target sessions.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable

from websockets.asyncio.client import connect, ClientConnection

from br_cli.utils.exceptions import BrowserConnectionError
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)


class CDPCommandError(Exception):
    """
    Raised when the browser answers a CDP command with an error.
    """

    def __init__(self, method: str, error: dict[str, Any]) -> None:
        self.method = method
        self.error = error
        message = error.get("message") or json.dumps(error)
        if error.get("data"):
            message = f"{message} ({error['data']})"
        super().__init__(message)


class AsyncCDPSession:
    """
    Browser-level CDP connection.
    Handles the WebSocket, command ids and replies, per-target session ids,
    event waiters, and new-page discovery.
    """

    # Magic methods ________________________________________________________________________________________________________

    def __init__(
        self,
        ws_url: str,
        command_timeout: float | None = None,
        page_created_callback_fn: Callable[[str], Awaitable[None] | None] | None = None,
    ) -> None:
        """
        Initialize AsyncCDPSession.
        Args:
            ws_url: Browser-level WebSocket URL.
            command_timeout: Default timeout for commands in seconds; None waits indefinitely.
            page_created_callback_fn: Called with the target id of every page target the
                browser reports (including pages opened by the page itself).
        """
        self.ws_url = ws_url
        self.command_timeout = command_timeout
        self.page_created_callback_fn = page_created_callback_fn
        self.ws: ClientConnection | None = None
        self.seq = 0  # sequence ID for CDP commands

        # response tracking for CDP commands
        self.pending_responses: dict[int, asyncio.Future] = {}  # command ID -> future
        self._pending_methods: dict[int, str] = {}  # command ID -> method, for error messages

        # event waiters: (method, sessionId or None) -> futures
        self._event_waiters: dict[tuple[str, str | None], list[asyncio.Future]] = {}

        # track enabled CDP domains per target session to avoid duplicate enables
        self._enabled_domains: set[tuple[str, str | None]] = set()

        self._receiver_task: asyncio.Task | None = None


    # Private methods ______________________________________________________________________________________________________

    def _handle_command_reply(self, msg: dict) -> None:
        """Resolve the future waiting on a command reply."""
        cmd_id = msg.get("id")
        future = self.pending_responses.pop(cmd_id, None)
        method = self._pending_methods.pop(cmd_id, "")
        if future is None or future.done():
            logger.debug("📥 Command reply not handled: id=%s", cmd_id)
            return
        if "error" in msg:
            future.set_exception(CDPCommandError(method=method, error=msg["error"]))
        else:
            future.set_result(msg.get("result") or {})

    async def _handle_event(self, msg: dict) -> None:
        """Dispatch a CDP event to waiters and to target discovery."""
        method = msg["method"]
        params = msg.get("params", {})
        session_id = msg.get("sessionId")

        for key in ((method, session_id), (method, None)):
            waiters = self._event_waiters.pop(key, [])
            for future in waiters:
                if not future.done():
                    future.set_result(params)

        if method == "Target.targetCreated":
            target_info = params.get("targetInfo", {})
            if target_info.get("type") == "page" and self.page_created_callback_fn is not None:
                result = self.page_created_callback_fn(target_info["targetId"])
                if asyncio.iscoroutine(result):
                    await result
        elif method == "Target.detachedFromTarget":
            detached = params.get("sessionId")
            self._enabled_domains = {item for item in self._enabled_domains if item[1] != detached}
            logger.info("🔌 Detached from target session %s", detached)

    def _fail_pending(self, exc: Exception) -> None:
        for future in self.pending_responses.values():
            if not future.done():
                future.set_exception(exc)
        self.pending_responses.clear()
        self._pending_methods.clear()
        for waiters in self._event_waiters.values():
            for future in waiters:
                if not future.done():
                    future.set_exception(exc)
        self._event_waiters.clear()

    async def _message_receiver(self) -> None:
        """Receive and process WebSocket messages until the connection closes."""
        assert self.ws is not None
        message_count = 0
        try:
            async for message in self.ws:
                message_count += 1
                try:
                    msg = json.loads(message)
                except json.JSONDecodeError:
                    logger.warning("⚠️ Ignoring non-JSON CDP frame: %s", str(message)[:250])
                    continue
                try:
                    if "id" in msg:
                        self._handle_command_reply(msg)
                    elif "method" in msg:
                        await self._handle_event(msg)
                except Exception as e:
                    logger.error("❌ Error handling message #%d: %s", message_count, e, exc_info=True)
        except asyncio.CancelledError:
            logger.info("🛑 Message receiver cancelled (processed %d messages)", message_count)
            raise
        except Exception as e:
            logger.error("❌ Error in message receiver: %s", e, exc_info=True)
        finally:
            self._fail_pending(BrowserConnectionError("CDP connection closed"))


    # Public methods _______________________________________________________________________________________________________

    async def connect(self) -> None:
        """Open the WebSocket and start the message receiver."""
        logger.info("🔌 Connecting to CDP: %s", self.ws_url)
        try:
            self.ws = await connect(uri=self.ws_url, max_size=None)
        except Exception as e:
            raise BrowserConnectionError(f"Failed to connect to browser WebSocket: {e}") from e
        self._receiver_task = asyncio.create_task(coro=self._message_receiver())
        logger.info("✅ WebSocket connected")

    async def close(self) -> None:
        """Stop the receiver and close the WebSocket."""
        if self._receiver_task is not None:
            self._receiver_task.cancel()
            try:
                await self._receiver_task
            except asyncio.CancelledError:
                pass
            self._receiver_task = None
        if self.ws is not None:
            await self.ws.close()
            self.ws = None
        logger.info("✅ CDP session closed")

    async def _send_message(self, cmd_id: int, method: str, params: dict | None, session_id: str | None) -> None:
        if not self.ws:
            raise BrowserConnectionError("WebSocket not connected")
        msg: dict[str, Any] = {
            "id": cmd_id,
            "method": method,
            "params": params or {},
        }
        if session_id:
            msg["sessionId"] = session_id
        await self.ws.send(json.dumps(msg))

    async def send_and_wait(
        self,
        method: str,
        params: dict | None = None,
        session_id: str | None = None,
        timeout: float | None = None,
    ) -> dict:
        """
        Send CDP command and wait for its reply.
        Args:
            method: The CDP method to send.
            params: The parameters to send with the command.
            session_id: Target session the command is for.
            timeout: Timeout in seconds; defaults to the session's command timeout.
        Returns:
            The result from the CDP command.
        Raises:
            CDPCommandError: If the browser replies with an error.
            TimeoutError: If a timeout is configured and expires.
        """
        timeout = timeout if timeout is not None else self.command_timeout
        self.seq += 1
        cmd_id = self.seq

        # register before sending so a fast reply cannot be missed
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self.pending_responses[cmd_id] = future
        self._pending_methods[cmd_id] = method
        try:
            await self._send_message(cmd_id, method, params, session_id)
            return await asyncio.wait_for(fut=future, timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"CDP command {method} timed out after {timeout} seconds")
        finally:
            self.pending_responses.pop(cmd_id, None)
            self._pending_methods.pop(cmd_id, None)

    def expect_event(self, method: str, session_id: str | None = None) -> asyncio.Future:
        """
        Register interest in the next occurrence of an event.
        Must be called before the command that triggers the event.
        Returns:
            A future resolved with the event params.
        """
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._event_waiters.setdefault((method, session_id), []).append(future)
        return future

    def cancel_event(self, method: str, future: asyncio.Future, session_id: str | None = None) -> None:
        """Withdraw a waiter registered with expect_event."""
        waiters = self._event_waiters.get((method, session_id), [])
        if future in waiters:
            waiters.remove(future)
        future.cancel()

    async def enable_domain(self, domain: str, session_id: str | None = None, params: dict | None = None) -> None:
        """
        Enable a CDP domain for a target session idempotently (skip if already enabled).
        """
        key = (domain, session_id)
        if key in self._enabled_domains:
            logger.debug("⏭️ Domain %s already enabled for %s, skipping", domain, session_id)
            return
        await self.send_and_wait(method=f"{domain}.enable", params=params, session_id=session_id)
        self._enabled_domains.add(key)
        logger.debug("✅ Domain %s enabled for %s", domain, session_id)

    async def get_page_targets(self) -> list[dict[str, Any]]:
        """Return the targetInfos of all page targets."""
        result = await self.send_and_wait(method="Target.getTargets")
        return [info for info in result.get("targetInfos", []) if info.get("type") == "page"]

    async def get_target_info(self, target_id: str) -> dict[str, Any]:
        result = await self.send_and_wait(method="Target.getTargetInfo", params={"targetId": target_id})
        return result.get("targetInfo", {})

    async def create_target(self, url: str = "about:blank") -> str:
        """Open a new page and return its target id."""
        result = await self.send_and_wait(method="Target.createTarget", params={"url": url})
        return result["targetId"]

    async def attach_to_target(self, target_id: str) -> str:
        """
        Attach to a target in flat mode.
        Returns:
            The CDP sessionId to send page-level commands with.
        """
        result = await self.send_and_wait(
            method="Target.attachToTarget",
            params={"targetId": target_id, "flatten": True},
        )
        session_id = result.get("sessionId")
        if not session_id:
            raise BrowserConnectionError(f"No sessionId in Target.attachToTarget response for {target_id}")
        logger.info("🎯 Attached to target %s (session %s)", target_id, session_id)
        return session_id

    async def discover_targets(self) -> None:
        """Ask the browser to report targets created from now on (and the existing ones)."""
        await self.send_and_wait(method="Target.setDiscoverTargets", params={"discover": True})

"""
tests/unit/cdp/test_async_cdp_session.py

Tests for AsyncCDPSession command/reply matching, event waiters and target discovery.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from br_cli.cdp.async_cdp_session import AsyncCDPSession, CDPCommandError
from br_cli.utils.exceptions import BrowserConnectionError


def _session_replying_with(reply: dict | None) -> AsyncCDPSession:
    """Session whose socket answers every command with `reply` (or never answers when None)."""
    session = AsyncCDPSession(ws_url="ws://127.0.0.1:9222/devtools/browser/x")
    session.ws = AsyncMock()
    session.sent = []

    async def fake_send(raw: str) -> None:
        msg = json.loads(raw)
        session.sent.append(msg)
        if reply is not None:
            session._handle_command_reply({"id": msg["id"], **reply})

    session.ws.send.side_effect = fake_send
    return session


class TestCommands:
    """
    Tests for send and send_and_wait.
    """

    @pytest.mark.asyncio
    async def test_reply_resolves_command(self) -> None:
        session = _session_replying_with({"result": {"frameId": "F1"}})

        result = await session.send_and_wait("Page.navigate", {"url": "https://example.com"}, session_id="S1")

        assert result == {"frameId": "F1"}
        assert session.sent == [{
            "id": 1,
            "method": "Page.navigate",
            "params": {"url": "https://example.com"},
            "sessionId": "S1",
        }]
        assert session.pending_responses == {}

    @pytest.mark.asyncio
    async def test_browser_level_command_has_no_session_id(self) -> None:
        session = _session_replying_with({"result": {}})
        await session.send_and_wait("Target.getTargets")
        assert "sessionId" not in session.sent[0]

    @pytest.mark.asyncio
    async def test_error_reply_raises(self) -> None:
        session = _session_replying_with({"error": {"code": -32000, "message": "No node with given id found"}})

        with pytest.raises(CDPCommandError, match="No node with given id found") as exc_info:
            await session.send_and_wait("DOM.describeNode")
        assert exc_info.value.method == "DOM.describeNode"

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        session = _session_replying_with(None)

        with pytest.raises(TimeoutError):
            await session.send_and_wait("Runtime.evaluate", timeout=0.01)
        assert session.pending_responses == {}

    @pytest.mark.asyncio
    async def test_command_without_connection(self) -> None:
        session = AsyncCDPSession(ws_url="ws://unused")
        with pytest.raises(BrowserConnectionError):
            await session.send_and_wait("Page.enable")

    @pytest.mark.asyncio
    async def test_enable_domain_is_idempotent_per_session(self) -> None:
        session = _session_replying_with({"result": {}})

        await session.enable_domain("Page", session_id="S1")
        await session.enable_domain("Page", session_id="S1")
        await session.enable_domain("Page", session_id="S2")
        assert [(msg["method"], msg["sessionId"]) for msg in session.sent] == [
            ("Page.enable", "S1"),
            ("Page.enable", "S2"),
        ]

        await session._handle_event({"method": "Target.detachedFromTarget", "params": {"sessionId": "S1"}})
        await session.enable_domain("Page", session_id="S1")
        assert len(session.sent) == 3

    @pytest.mark.asyncio
    async def test_attach_to_target_returns_session_id(self) -> None:
        session = _session_replying_with({"result": {"sessionId": "S9"}})

        assert await session.attach_to_target("T1") == "S9"
        assert session.sent[0]["params"] == {"targetId": "T1", "flatten": True}

    @pytest.mark.asyncio
    async def test_fail_pending_on_disconnect(self) -> None:
        session = AsyncCDPSession(ws_url="ws://unused")
        future = asyncio.get_running_loop().create_future()
        session.pending_responses[1] = future
        waiter = session.expect_event("Page.loadEventFired", session_id="S1")

        session._fail_pending(BrowserConnectionError("CDP connection closed"))

        with pytest.raises(BrowserConnectionError):
            await future
        with pytest.raises(BrowserConnectionError):
            await waiter


class TestEvents:
    """
    Tests for event waiters and page discovery.
    """

    @pytest.mark.asyncio
    async def test_event_waiter_is_scoped_to_session(self) -> None:
        session = AsyncCDPSession(ws_url="ws://unused")
        waiter_s1 = session.expect_event("Page.loadEventFired", session_id="S1")
        waiter_s2 = session.expect_event("Page.loadEventFired", session_id="S2")

        await session._handle_event({"method": "Page.loadEventFired", "params": {"timestamp": 1.5}, "sessionId": "S1"})

        assert await waiter_s1 == {"timestamp": 1.5}
        assert not waiter_s2.done()

    @pytest.mark.asyncio
    async def test_cancel_event(self) -> None:
        session = AsyncCDPSession(ws_url="ws://unused")
        waiter = session.expect_event("Page.loadEventFired", session_id="S1")

        session.cancel_event("Page.loadEventFired", waiter, session_id="S1")

        assert waiter.cancelled()
        assert session._event_waiters[("Page.loadEventFired", "S1")] == []

    @pytest.mark.asyncio
    async def test_new_page_targets_reach_callback(self) -> None:
        callback = MagicMock(return_value=None)
        session = AsyncCDPSession(ws_url="ws://unused", page_created_callback_fn=callback)

        await session._handle_event({
            "method": "Target.targetCreated",
            "params": {"targetInfo": {"targetId": "T2", "type": "page"}},
        })
        await session._handle_event({
            "method": "Target.targetCreated",
            "params": {"targetInfo": {"targetId": "W1", "type": "service_worker"}},
        })

        callback.assert_called_once_with("T2")

    @pytest.mark.asyncio
    async def test_async_callback_is_awaited(self) -> None:
        callback = AsyncMock()
        session = AsyncCDPSession(ws_url="ws://unused", page_created_callback_fn=callback)

        await session._handle_event({
            "method": "Target.targetCreated",
            "params": {"targetInfo": {"targetId": "T3", "type": "page"}},
        })

        callback.assert_awaited_once_with("T3")

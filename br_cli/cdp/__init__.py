"""
br_cli/cdp

Chrome DevTools Protocol connection and page primitives.
"""

from .async_cdp_session import AsyncCDPSession, CDPCommandError
from .page import PageDriver

__all__ = [
    "AsyncCDPSession",
    "CDPCommandError",
    "PageDriver",
]

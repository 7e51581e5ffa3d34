"""
HTTP daemon exposing the session to the br CLI.
"""

from .app import build_app

__all__ = [
    "build_app",
]

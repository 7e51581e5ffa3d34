"""
br_cli/config.py

Centralized environment variable configuration.
"""

import os
import tempfile
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return float(value)


class Config():
    """
    Centralized configuration for environment variables.
    """

    # daemon
    BR_HOST: str = os.getenv("BR_HOST", "127.0.0.1")
    BR_PORT: int = int(os.getenv("BR_PORT", "3030"))
    BR_PID_FILE: str = os.getenv("BR_PID_FILE", str(Path.home() / ".br_cli" / "daemon.pid"))
    BR_SCREENSHOT_DIR: str = os.getenv("BR_SCREENSHOT_DIR", str(Path(tempfile.gettempdir()) / "br_cli"))
    BR_SECRET_MASK: str = os.getenv("BR_SECRET_MASK", "***")
    BR_INVALIDATE_IDS_ON_NAVIGATION: bool = _env_bool("BR_INVALIDATE_IDS_ON_NAVIGATION")

    # browser
    CHROME_DEBUG_PORT: int = int(os.getenv("CHROME_DEBUG_PORT", "9222"))
    CHROME_REMOTE_DEBUGGING_ADDRESS: str | None = os.getenv("CHROME_REMOTE_DEBUGGING_ADDRESS")
    CHROME_PATH: str | None = os.getenv("CHROME_PATH")
    BR_HEADLESS: bool = _env_bool("BR_HEADLESS")
    BR_CDP_TIMEOUT: float | None = _env_float("BR_CDP_TIMEOUT")  # None waits indefinitely

    # logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s")
    LOG_DATE_FORMAT: str = os.getenv("LOG_DATE_FORMAT", "%Y-%m-%d %H:%M:%S")

    @classmethod
    def as_dict(cls) -> dict[str, Any]:
        """
        Return a dictionary of all UPPERCASE class attributes and their values.
        Return:
            dict[str, Any]: A dictionary of all UPPERCASE class attributes and their values.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.isupper()
        }

"""
br_cli/utils/chrome_utils.py

Utilities for launching Chrome with remote debugging for the daemon.
"""

import os
import platform
import shutil
import subprocess
import tempfile
import time

import requests

from br_cli.config import Config
from br_cli.utils.exceptions import BrowserConnectionError
from br_cli.utils.logger import get_logger


logger = get_logger(name=__name__)


# executable names or absolute paths tried in order, per platform.system()
CHROME_CANDIDATES: dict[str, list[str]] = {
    "Darwin": [
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        "/Applications/Chromium.app/Contents/MacOS/Chromium",
    ],
    "Linux": ["google-chrome", "google-chrome-stable", "chromium-browser", "chromium", "chrome"],
    "Windows": [
        r"%ProgramFiles%\Google\Chrome\Application\chrome.exe",
        r"%ProgramFiles(x86)%\Google\Chrome\Application\chrome.exe",
        r"%LocalAppData%\Google\Chrome\Application\chrome.exe",
        "chrome",
    ],
}


def check_chrome_running(port: int = Config.CHROME_DEBUG_PORT) -> bool:
    """True when something answers /json/version on the debugging port."""
    try:
        return requests.get(f"http://127.0.0.1:{port}/json/version", timeout=1).ok
    except requests.RequestException:
        return False


def find_chrome_path() -> str | None:
    """
    Locate a Chrome/Chromium executable. `CHROME_PATH` wins when set;
    otherwise the platform's candidates are tried in order.
    """
    if Config.CHROME_PATH:
        return Config.CHROME_PATH

    for candidate in CHROME_CANDIDATES.get(platform.system(), []):
        expanded = os.path.expandvars(candidate)
        if os.path.isabs(expanded):
            if os.path.isfile(expanded):
                return expanded
            continue
        resolved = shutil.which(expanded)
        if resolved:
            return resolved
    return None


def launch_chrome(port: int = Config.CHROME_DEBUG_PORT, headless: bool = Config.BR_HEADLESS) -> subprocess.Popen:
    """
    Launch Chrome in debug mode with a dedicated profile directory.
    Args:
        port: Remote debugging port.
        headless: Run without a window.
    Returns:
        The Chrome process, once its debugging endpoint answers.
    Raises:
        BrowserConnectionError: If Chrome is not installed or does not come up in time.
    """
    chrome_path = find_chrome_path()
    if not chrome_path:
        raise BrowserConnectionError(
            "Chrome not found. Install Chrome/Chromium or start it yourself with "
            f"--remote-debugging-port={port}"
        )

    chrome_user_dir = os.path.join(tempfile.gettempdir(), "br_cli", "chrome-profile")
    os.makedirs(chrome_user_dir, exist_ok=True)

    chrome_args = [
        chrome_path,
        "--remote-debugging-address=127.0.0.1",
        f"--remote-debugging-port={port}",
        f"--user-data-dir={chrome_user_dir}",
        "--remote-allow-origins=*",
        "--no-first-run",
        "--no-default-browser-check",
    ]
    if headless:
        chrome_args.append("--headless=new")

    logger.info("🚀 Launching Chrome on port %d (headless=%s)...", port, headless)
    creation_flags = 0
    if platform.system() == "Windows":
        creation_flags = subprocess.CREATE_NEW_PROCESS_GROUP
    try:
        process = subprocess.Popen(
            chrome_args,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            creationflags=creation_flags,
        )
    except OSError as e:
        raise BrowserConnectionError(f"Error launching Chrome: {e}") from e

    # wait for the debugging endpoint
    for _ in range(10):
        if check_chrome_running(port):
            logger.info("✅ Chrome is ready on port %d", port)
            return process
        time.sleep(1)

    logger.warning("⚠️ Chrome failed to start within timeout.")
    terminate_chrome(process)
    raise BrowserConnectionError(f"Chrome did not open its debugging port {port} in time")


def terminate_chrome(process: subprocess.Popen, timeout: float = 5) -> None:
    """Stop a Chrome process started by launch_chrome."""
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning("⚠️ Chrome did not exit after terminate, killing it")
        process.kill()


def ensure_chrome_running(
    port: int = Config.CHROME_DEBUG_PORT,
    headless: bool = Config.BR_HEADLESS,
) -> subprocess.Popen | None:
    """
    Ensure Chrome is running in debug mode, launching it if needed.
    Returns:
        The launched process, or None when a browser was already listening on the port.
    """
    if check_chrome_running(port):
        logger.info("🔗 Reusing Chrome already listening on port %d", port)
        return None
    return launch_chrome(port=port, headless=headless)

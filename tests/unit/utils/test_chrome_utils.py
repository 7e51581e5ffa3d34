"""
tests/unit/utils/test_chrome_utils.py

Tests for Chrome discovery and lifecycle helpers.
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from br_cli.utils import chrome_utils
from br_cli.utils.exceptions import BrowserConnectionError


class TestCheckChromeRunning:
    """
    Tests for check_chrome_running.
    """

    def test_running(self) -> None:
        with patch.object(chrome_utils.requests, "get", return_value=MagicMock(ok=True)):
            assert chrome_utils.check_chrome_running(9222) is True

    def test_not_running(self) -> None:
        with patch.object(chrome_utils.requests, "get", side_effect=requests.ConnectionError("refused")):
            assert chrome_utils.check_chrome_running(9222) is False


class TestFindChromePath:
    """
    Tests for find_chrome_path.
    """

    def test_configured_path_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(chrome_utils.Config, "CHROME_PATH", "/opt/chrome/chrome")
        assert chrome_utils.find_chrome_path() == "/opt/chrome/chrome"

    def test_first_candidate_on_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(chrome_utils.Config, "CHROME_PATH", None)
        monkeypatch.setattr(chrome_utils.platform, "system", lambda: "Linux")
        found = {"chromium": "/usr/bin/chromium", "chrome": "/usr/bin/chrome"}
        monkeypatch.setattr(chrome_utils.shutil, "which", found.get)
        assert chrome_utils.find_chrome_path() == "/usr/bin/chromium"

    def test_unknown_platform(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(chrome_utils.Config, "CHROME_PATH", None)
        monkeypatch.setattr(chrome_utils.platform, "system", lambda: "Plan9")
        assert chrome_utils.find_chrome_path() is None


class TestEnsureChromeRunning:
    """
    Tests for ensure_chrome_running and launch_chrome.
    """

    def test_reuses_running_browser(self) -> None:
        with patch.object(chrome_utils, "check_chrome_running", return_value=True), \
                patch.object(chrome_utils, "launch_chrome") as launch:
            assert chrome_utils.ensure_chrome_running(9222) is None
        launch.assert_not_called()

    def test_launches_when_absent(self) -> None:
        process = MagicMock(spec=subprocess.Popen)
        with patch.object(chrome_utils, "check_chrome_running", return_value=False), \
                patch.object(chrome_utils, "launch_chrome", return_value=process) as launch:
            assert chrome_utils.ensure_chrome_running(9222, headless=True) is process
        launch.assert_called_once_with(port=9222, headless=True)

    def test_missing_chrome_binary(self) -> None:
        with patch.object(chrome_utils, "find_chrome_path", return_value=None):
            with pytest.raises(BrowserConnectionError, match="Chrome not found"):
                chrome_utils.launch_chrome(9222)

    def test_headless_flag(self, tmp_path: Path) -> None:
        process = MagicMock(spec=subprocess.Popen)
        with patch.object(chrome_utils, "find_chrome_path", return_value="/usr/bin/chromium"), \
                patch.object(chrome_utils.tempfile, "gettempdir", return_value=str(tmp_path)), \
                patch.object(chrome_utils.subprocess, "Popen", return_value=process) as popen, \
                patch.object(chrome_utils, "check_chrome_running", return_value=True):
            assert chrome_utils.launch_chrome(9333, headless=True) is process

        chrome_args = popen.call_args.args[0]
        assert "--remote-debugging-port=9333" in chrome_args
        assert "--headless=new" in chrome_args


class TestTerminateChrome:
    """
    Tests for terminate_chrome.
    """

    def test_already_exited(self) -> None:
        process = MagicMock(spec=subprocess.Popen)
        process.poll.return_value = 0
        chrome_utils.terminate_chrome(process)
        process.terminate.assert_not_called()

    def test_kills_after_timeout(self) -> None:
        process = MagicMock(spec=subprocess.Popen)
        process.poll.return_value = None
        process.wait.side_effect = subprocess.TimeoutExpired(cmd="chrome", timeout=5)
        chrome_utils.terminate_chrome(process)
        process.terminate.assert_called_once()
        process.kill.assert_called_once()

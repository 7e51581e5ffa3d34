#!/usr/bin/env python3
"""
br_cli/scripts/br.py

Command line client for the br daemon. One subcommand per daemon endpoint,
plus start/stop to manage the daemon process through a PID file.

Usage:
    br start
    br goto https://example.com
    br view-tree
    br click 60
    br fill-secret "#password" MY_PASSWORD_ENV_VAR
    br stop
"""

from __future__ import annotations

import argparse
import os
import signal
import subprocess
import sys
import time
from pathlib import Path
from typing import Any, Callable

import requests
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from br_cli.config import Config
from br_cli.utils.exceptions import BrCliError, DaemonNotRunningError, DaemonResponseError, ValidationError
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)
console = Console()
err_console = Console(stderr=True)

HEALTH_TIMEOUT_SECONDS = 30.0
HEALTH_POLL_INTERVAL_SECONDS = 0.25


class DaemonClient:
    """
    Thin HTTP client for the daemon. Requests wait as long as the daemon needs.
    """

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = (base_url or f"http://{Config.BR_HOST}:{Config.BR_PORT}").rstrip("/")

    def request(self, method: str, path: str, body: dict[str, Any] | None = None) -> requests.Response:
        """
        Send one request to the daemon.
        Raises:
            DaemonNotRunningError: If nothing answers on the daemon address.
            DaemonResponseError: If the daemon answers with a non-2xx status.
        """
        try:
            response = requests.request(method, f"{self.base_url}{path}", json=body)
        except requests.ConnectionError as e:
            raise DaemonNotRunningError(f"daemon not reachable at {self.base_url}; run `br start` first") from e
        if not response.ok:
            raise DaemonResponseError(status_code=response.status_code, message=response.text)
        return response

    def get(self, path: str) -> requests.Response:
        return self.request("GET", path)

    def post(self, path: str, body: dict[str, Any] | None = None) -> requests.Response:
        return self.request("POST", path, body)

    def is_healthy(self) -> bool:
        try:
            return requests.get(f"{self.base_url}/health", timeout=1).ok
        except requests.RequestException:
            return False


# PID file _________________________________________________________________________________________________________________

def read_running_pid(pid_file: Path) -> int | None:
    """
    Return the PID recorded in the PID file if that process is alive.
    A PID file pointing at a dead process is removed.
    """
    try:
        pid = int(pid_file.read_text().strip())
    except FileNotFoundError:
        return None
    except ValueError:
        logger.warning("⚠️ Removing unreadable PID file %s", pid_file)
        pid_file.unlink(missing_ok=True)
        return None

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        logger.info("🧹 Removing stale PID file %s (pid %d is gone)", pid_file, pid)
        pid_file.unlink(missing_ok=True)
        return None
    except PermissionError:
        # alive, owned by another user
        pass
    return pid


# Commands _________________________________________________________________________________________________________________

def cmd_start(client: DaemonClient, args: argparse.Namespace) -> None:
    pid_file = Path(Config.BR_PID_FILE)
    pid = read_running_pid(pid_file)
    if pid is not None:
        console.print(f"[yellow]daemon already running[/yellow] [dim](pid {pid})[/dim]")
        return

    pid_file.parent.mkdir(parents=True, exist_ok=True)
    log_path = pid_file.with_suffix(".log")
    with open(log_path, "ab") as log_file:
        process = subprocess.Popen(
            [sys.executable, "-m", "br_cli.server.daemon"],
            stdin=subprocess.DEVNULL,
            stdout=log_file,
            stderr=log_file,
            start_new_session=True,
        )
    pid_file.write_text(str(process.pid))

    deadline = time.monotonic() + HEALTH_TIMEOUT_SECONDS
    with console.status("starting daemon..."):
        while time.monotonic() < deadline:
            if process.poll() is not None:
                pid_file.unlink(missing_ok=True)
                raise DaemonNotRunningError(f"daemon exited with code {process.returncode}; see {log_path}")
            if client.is_healthy():
                console.print(f"[green]daemon started[/green] [dim](pid {process.pid}, {client.base_url})[/dim]")
                return
            time.sleep(HEALTH_POLL_INTERVAL_SECONDS)
    raise DaemonNotRunningError(f"daemon did not answer /health within {HEALTH_TIMEOUT_SECONDS:g}s; see {log_path}")


def cmd_stop(client: DaemonClient, args: argparse.Namespace) -> None:
    pid_file = Path(Config.BR_PID_FILE)
    pid = read_running_pid(pid_file)
    if pid is None:
        console.print("[yellow]daemon not running[/yellow]")
        return
    os.kill(pid, signal.SIGTERM)
    pid_file.unlink(missing_ok=True)
    console.print(f"[green]daemon stopped[/green] [dim](pid {pid})[/dim]")


def cmd_goto(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/goto", {"url": args.url})
    console.print(f"navigated to {escape(args.url)}")


def cmd_click(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/click", {"selector": args.selector})
    console.print(f"clicked {escape(args.selector)}")


def cmd_fill(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/fill", {"selector": args.selector, "text": args.text})
    console.print(f"filled {escape(args.selector)}")


def cmd_fill_secret(client: DaemonClient, args: argparse.Namespace) -> None:
    secret = os.environ.get(args.env_var)
    if not secret:
        raise ValidationError(f"environment variable {args.env_var} is not set")
    client.post("/fill-secret", {"selector": args.selector, "secret": secret})
    console.print(f"filled secret {escape(args.selector)}")


def cmd_type(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/type", {"selector": args.selector, "text": args.text})
    console.print(f"typed in {escape(args.selector)}")


def cmd_press(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/press", {"key": args.key})
    console.print(f"pressed {escape(args.key)}")


def cmd_scroll_into_view(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/scroll-into-view", {"selector": args.selector})
    console.print(f"scrolled into view {escape(args.selector)}")


def cmd_scroll_to(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/scroll-to", {"percentage": args.percentage})
    console.print(f"scrolled to {args.percentage:g}%")


def cmd_next_chunk(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/next-chunk")
    console.print("scrolled next chunk")


def cmd_prev_chunk(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/prev-chunk")
    console.print("scrolled previous chunk")


def cmd_screenshot(client: DaemonClient, args: argparse.Namespace) -> None:
    path = client.get("/screenshot").text
    console.print(f"screenshot saved to {escape(path)}")


def cmd_view_html(client: DaemonClient, args: argparse.Namespace) -> None:
    console.print(client.get("/html").text, markup=False, highlight=False, soft_wrap=True)


def cmd_history(client: DaemonClient, args: argparse.Namespace) -> None:
    console.print_json(data=client.get("/history").json())


def cmd_clear_history(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/history/clear")
    console.print("history cleared")


def cmd_view_tree(client: DaemonClient, args: argparse.Namespace) -> None:
    tree = client.get("/tree").json()["tree"]
    # tree lines start with "[id]", which rich would read as markup
    console.print(tree, end="", markup=False, highlight=False, soft_wrap=True)


def cmd_xpath_for_id(client: DaemonClient, args: argparse.Namespace) -> None:
    xpath = client.post("/xpath-for-id", {"id": args.id}).json()["xpath"]
    console.print(xpath, markup=False, highlight=False)


def cmd_tabs(client: DaemonClient, args: argparse.Namespace) -> None:
    table = Table(box=box.SIMPLE, show_header=True, padding=(0, 1))
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Title", style="white")
    table.add_column("URL", style="dim")
    for tab in client.get("/tabs").json():
        marker = "*" if tab.get("isActive") else ""
        table.add_row(f"{marker}{tab['index']}", escape(tab.get("title", "")), escape(tab.get("url", "")))
    console.print(table)


def cmd_switch_tab(client: DaemonClient, args: argparse.Namespace) -> None:
    client.post("/tabs/switch", {"index": args.index})
    console.print(f"switched to tab {args.index}")


# Parser ___________________________________________________________________________________________________________________

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="br", description="Control a persistent browser session.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add(name: str, handler: Callable[[DaemonClient, argparse.Namespace], None], summary: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=summary, description=summary)
        sub.set_defaults(handler=handler)
        return sub

    add("start", cmd_start, "start the browser daemon")
    add("stop", cmd_stop, "stop the browser daemon")
    add("goto", cmd_goto, "navigate to url").add_argument("url")

    sub = add("click", cmd_click, "click element by selector or tree id")
    sub.add_argument("selector")

    sub = add("fill", cmd_fill, "fill input with text")
    sub.add_argument("selector")
    sub.add_argument("text")

    sub = add("fill-secret", cmd_fill_secret, "fill input with the secret stored in an environment variable")
    sub.add_argument("selector")
    sub.add_argument("env_var", metavar="ENV_VAR")

    sub = add("type", cmd_type, "type text into input, one key at a time")
    sub.add_argument("selector")
    sub.add_argument("text")

    add("press", cmd_press, "press keyboard key (e.g. Enter, Control+A)").add_argument("key")
    add("scrollIntoView", cmd_scroll_into_view, "scroll element into view").add_argument("selector")
    add("scrollTo", cmd_scroll_to, "scroll to percentage of page height").add_argument("percentage", type=float)
    add("nextChunk", cmd_next_chunk, "scroll down one viewport height")
    add("prevChunk", cmd_prev_chunk, "scroll up one viewport height")
    add("screenshot", cmd_screenshot, "capture screenshot to temp folder")
    add("view-html", cmd_view_html, "output current page html")
    add("history", cmd_history, "print recorded action history")
    add("clear-history", cmd_clear_history, "clear recorded action history")
    add("view-tree", cmd_view_tree, "output combined accessibility and DOM tree")
    add("xpath-for-id", cmd_xpath_for_id, "print the structural path of a tree id").add_argument("id")
    add("tabs", cmd_tabs, "list open tabs")
    add("switch-tab", cmd_switch_tab, "make another tab active").add_argument("index", type=int)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    client = DaemonClient()
    try:
        args.handler(client, args)
    except BrCliError as e:
        err_console.print(f"[bold red]✗ {args.command} failed:[/bold red] [red]{escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()

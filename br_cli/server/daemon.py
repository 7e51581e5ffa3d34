"""
br_cli/server/daemon.py

Daemon entry point: serves the FastAPI app with uvicorn on BR_HOST:BR_PORT.

Usage:
    br-daemon
    python -m br_cli.server.daemon --port 3030 --remote-debugging-address http://127.0.0.1:9222
"""

from argparse import ArgumentParser
from functools import partial

import uvicorn

from br_cli.config import Config
from br_cli.server.app import build_app
from br_cli.session.context import BrowserSessionContext
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)


def main() -> None:
    parser = ArgumentParser(description="Run the br browser daemon.")
    parser.add_argument("--host", type=str, default=Config.BR_HOST, help="Interface to bind.")
    parser.add_argument("--port", type=int, default=Config.BR_PORT, help="Port to listen on.")
    parser.add_argument(
        "--remote-debugging-address",
        type=str,
        default=Config.CHROME_REMOTE_DEBUGGING_ADDRESS,
        help="Attach to an already running Chrome (e.g. http://127.0.0.1:9222) instead of launching one.",
    )
    args = parser.parse_args()

    context_factory = partial(BrowserSessionContext.open, remote_debugging_address=args.remote_debugging_address)
    app = build_app(context_factory=context_factory)

    logger.info("🚀 br daemon listening on %s:%d", args.host, args.port)
    # uvicorn handles SIGINT/SIGTERM and runs the lifespan shutdown, which closes the browser
    config = uvicorn.Config(app, host=args.host, port=args.port, log_level=Config.LOG_LEVEL.lower())
    server = uvicorn.Server(config)
    server.run()


if __name__ == "__main__":
    main()

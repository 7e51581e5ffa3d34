"""
br_cli/utils/logger.py

Logger factory shared by every br-cli module.
"""

import logging
import sys

from br_cli.config import Config

_HANDLER_NAME = "br_cli"


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger configured with the level and format from Config.
    Args:
        name: Logger name, usually __name__ of the calling module.
    Returns:
        The configured logger. Handlers are attached once per logger.
    """
    logger = logging.getLogger(name)
    if not any(getattr(h, "name", None) == _HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(fmt=Config.LOG_FORMAT, datefmt=Config.LOG_DATE_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(Config.LOG_LEVEL)
    return logger

"""Shared logging setup."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure the root logger with a single console handler.

    Args:
        level: Log level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        json_format: Emit JSON lines instead of the plain text format
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    if json_format:
        from txncat.api.middleware.logging import JSONLogFormatter

        console_handler.setFormatter(JSONLogFormatter(datefmt=DATE_FORMAT))
    else:
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Calling twice (reload, tests) must not duplicate output.
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

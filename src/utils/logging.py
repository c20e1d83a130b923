"""
Logging configuration utilities for gofer.
"""

import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


GOFER_LOGGERS = ("src", "src.gofer", "src.utils")
EXTERNAL_LOGGERS = ("urllib3", "requests", "rich")

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEBUG_FORMAT = '%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s'


def setup_logger(
    name: str,
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    use_rich: bool = True
) -> logging.Logger:
    """
    Attach a console handler to the named logger.

    Args:
        name: Logger name
        level: Logging level
        format_string: Format for the plain handler; implies use_rich=False
        use_rich: Render records with rich instead of a plain stream handler

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Repeat calls must not stack handlers
    if logger.handlers:
        return logger

    if use_rich and format_string is None:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter('%(name)s - %(message)s'))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(format_string or PLAIN_FORMAT))

    handler.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def set_global_log_level(level: int) -> None:
    """
    Set the level of the root logger and of gofer's own loggers.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO)
    """
    logging.getLogger().setLevel(level)

    for logger_name in GOFER_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


def configure_debug_logging() -> None:
    """Switch gofer to debug output, with line numbers on plain handlers."""
    set_global_log_level(logging.DEBUG)

    for logger_name in GOFER_LOGGERS:
        for handler in logging.getLogger(logger_name).handlers:
            if not isinstance(handler, RichHandler):
                handler.setFormatter(logging.Formatter(DEBUG_FORMAT))


def silence_external_loggers() -> None:
    """Keep HTTP client libraries quiet below WARNING."""
    for logger_name in EXTERNAL_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

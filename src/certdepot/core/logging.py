"""
Loguru configuration for certdepot.

This module configures loguru with:
- Configurable level and format from settings
- Redirection of standard library logs (pynamodb, botocore) to loguru

Importing certdepot leaves the host's loguru sinks alone; call
configure_logger() to add the depot's own stderr sink.
"""

import logging
import sys

from loguru import logger

from certdepot.config import Settings, settings

_handler_id: int | None = None


def configure_logger(config: Settings | None = None) -> int:
    """
    Configures loguru with library settings.

    This function:
    1. Removes the sink added by a previous call, if any
    2. Adds handler to stderr with the configured level and format

    Sinks added by the host application are kept.

    Returns:
        The loguru handler id of the stderr sink
    """
    global _handler_id

    config = config or settings

    if _handler_id is not None:
        try:
            logger.remove(_handler_id)
        except ValueError:
            logger.debug(f"Logger handler {_handler_id} was already removed")

    _handler_id = logger.add(
        sink=sys.stderr,
        level=config.log_level.upper(),
        format=config.log_format,
        colorize=True,
        serialize=False,
        backtrace=True,
        diagnose=False,
        enqueue=config.logger_enqueue,
    )
    return _handler_id


__all__ = [
    "logger",
    "InterceptHandler",
    "configure_logger",
    "intercept_standard_logging",
]


class InterceptHandler(logging.Handler):
    """
    Handler to redirect standard logging logs to loguru.

    PynamoDB and botocore log through the standard library; this lets their
    records go through the same sink as the depot's own logs.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


def intercept_standard_logging(level: int = logging.WARNING) -> None:
    """
    Configures redirection of standard logging to loguru.

    Intercepts logs from:
    - pynamodb (DynamoDB ORM)
    - botocore (AWS API client)
    """
    for logger_name in ["pynamodb", "botocore"]:
        logging_logger = logging.getLogger(logger_name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.setLevel(level)
        logging_logger.propagate = False

"""Logging setup for the ``model_history`` loggers."""

import logging
import sys
from typing import TextIO

from model_history.config import settings

LOGGER_NAME = "model_history"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None, stream: TextIO | None = None) -> logging.Logger:
    """
    Send model_history log records to a stream.

    Only the package logger is configured; the root logger is left to the
    application. Calling it again updates the level and keeps one handler.

    Args:
        level: Logging level (default: settings.LOG_LEVEL)
        stream: Output stream (default: sys.stdout)

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper()))
    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)
    return logger

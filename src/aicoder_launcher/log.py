"""Logging configuration for AICoder Launcher."""

import logging
import os
import sys

LOGGER_NAME = "aicoder_launcher"
LOG_LEVEL_ENV = "AICODER_LOG_LEVEL"


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure the package logger.

    Args:
        level: Log level name; falls back to $AICODER_LOG_LEVEL, then INFO
        log_file: Optional file path for a second, more detailed handler
    """
    level = level or os.environ.get(LOG_LEVEL_ENV, "INFO")
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    if numeric_level <= logging.DEBUG:
        console_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    else:
        console_format = "[%(levelname)s] %(message)s"
    console_handler.setFormatter(logging.Formatter(console_format, datefmt="%H:%M:%S"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s")
        )
        logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the package logger (pass ``__name__``)."""
    if not name.startswith(LOGGER_NAME):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)

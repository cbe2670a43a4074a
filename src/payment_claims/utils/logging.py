"""Logging setup for the claims workflow."""

import logging

from ..config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """
    Configure the root logger with a single console handler.

    Args:
        settings: Settings supplying ``log_level`` and ``log_format``;
            defaults to the cached settings

    Returns:
        Configured root logger
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(settings.log_format))
    root_logger.addHandler(handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (typically ``__name__``)."""
    return logging.getLogger(name)

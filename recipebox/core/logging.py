"""Logging setup for the application."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_ROOT_LOGGER = "recipebox"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a stream handler to the package logger once and set its level."""

    logger = logging.getLogger(_ROOT_LOGGER)
    if not any(getattr(h, "_recipebox", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._recipebox = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


__all__ = ["LOG_FORMAT", "configure_logging"]

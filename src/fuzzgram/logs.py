"""Logging setup for fuzzgram processes."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "fuzzgram"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach one stderr handler to the ``fuzzgram`` logger at ``level``.

    Calling it again only updates the level. stdout is left alone because the
    stdio MCP transport owns it.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    if not any(getattr(h, "_fuzzgram", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._fuzzgram = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger

"""Structured logger setup shared by repositories, services and handlers."""

import logging
import os
from typing import Optional

from pythonjsonlogger import jsonlogger


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Configure a JSON logger once and reuse it.

    The level comes from ``level`` or the ``LOG_LEVEL`` environment variable,
    defaulting to INFO. Structured fields are passed through ``extra``.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        "%(levelname)s %(name)s %(message)s %(asctime)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel((level or os.environ.get("LOG_LEVEL", "INFO")).upper())
    logger.propagate = False
    return logger

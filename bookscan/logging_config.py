"""Logging setup for the command line and embedding applications."""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from bookscan.constants import LOG_DATE_FORMAT, LOG_FORMAT

_HANDLER_MARKER = "_bookscan_handler"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Attach handlers to the ``bookscan`` logger once.

    Repeated calls only adjust the level.
    """
    logger = logging.getLogger("bookscan")
    logger.setLevel(level)

    if any(getattr(h, _HANDLER_MARKER, False) for h in logger.handlers):
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    setattr(stream, _HANDLER_MARKER, True)
    logger.addHandler(stream)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARKER, True)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger

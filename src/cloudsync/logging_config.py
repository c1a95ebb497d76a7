"""
Logging configuration for cloudsync.

Library modules only call `logging.getLogger(__name__)`; applications call
`setup_logger` once to get JSON output on stdout and, optionally, in a log
directory.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

LOG_FILE_NAME = "cloudsync.log"
_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logger(
    name: str = "cloudsync",
    level: Optional[str] = None,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """
    Configure and return a logger with JSON output.

    Args:
        name: Logger name; "cloudsync" covers every module of the library.
        level: Logging level name. Defaults to CLOUDSYNC_LOG_LEVEL or INFO.
        log_dir: If set, also write to <log_dir>/cloudsync.log.
    """
    if level is None:
        level = os.getenv("CLOUDSYNC_LOG_LEVEL", "INFO").upper()
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    formatter = jsonlogger.JsonFormatter(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")

    if not any(getattr(h, "_cloudsync_stream", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        handler._cloudsync_stream = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    if log_dir:
        set_logfile_dir(log_dir, logger=logger, formatter=formatter)

    logger.setLevel(numeric_level)
    return logger


def set_logfile_dir(
    log_dir: str,
    *,
    logger: Optional[logging.Logger] = None,
    formatter: Optional[logging.Formatter] = None,
) -> str:
    """Route the library's log records to <log_dir>/cloudsync.log. Returns the file path."""
    logger = logger or logging.getLogger("cloudsync")
    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, LOG_FILE_NAME)

    for h in list(logger.handlers):
        if getattr(h, "_cloudsync_file", False):
            logger.removeHandler(h)
            h.close()

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(
        formatter or jsonlogger.JsonFormatter(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    )
    handler._cloudsync_file = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return path

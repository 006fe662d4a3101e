"""Per-module logger factory.

Usage::

    from sessionkit.utils.logs import report
    logger = report.settings(__file__)

Each logger writes to the console and to ``data/logs/<module>.log`` under the
working directory (``SESSIONKIT_LOG_DIR`` overrides it).  The level is taken
from ``SESSIONKIT_LOG_LEVEL`` (default ``INFO``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from sessionkit.utils.paths import logs_dir

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
DATE_FORMAT = "%H:%M:%S"
LEVEL_ENV = "SESSIONKIT_LOG_LEVEL"


def _level() -> int:
    name = os.environ.get(LEVEL_ENV, "INFO").upper()
    return getattr(logging, name, logging.INFO)


def settings(source: str, *, to_file: bool = True) -> logging.Logger:
    """Return a configured logger named after *source* (usually ``__file__``).

    Calling this twice for the same module returns the same logger without
    stacking duplicate handlers.
    """
    name = Path(source).stem if source.endswith(".py") else source
    logger = logging.getLogger(f"sessionkit.{name}")
    logger.setLevel(_level())
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if to_file:
        fh = logging.FileHandler(logs_dir() / f"{name}.log", encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    logger.propagate = False
    return logger

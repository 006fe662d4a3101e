from __future__ import annotations

"""Filesystem helpers shared by the pipelines and loggers.

This module intentionally has **zero** external dependencies so that it can
be imported early (e.g. from the logging setup).  Every location is resolved
against the current working directory, never against the installed package.
"""

import os
from pathlib import Path

LOG_DIR_ENV = "SESSIONKIT_LOG_DIR"


def reports_dir(pipeline: str, base: str | Path | None = None) -> Path:
    """Return (and create) the output directory for *pipeline* reports.

    ``base`` overrides the default ``data/reports/<pipeline>`` location; relative
    paths are resolved against the current working directory, like the CLI
    ``--out-dir``.
    """
    root = Path(base) if base is not None else Path("data/reports") / pipeline
    root.mkdir(parents=True, exist_ok=True)
    return root


def logs_dir() -> Path:
    """Return (and create) ``data/logs`` under the working directory.

    ``SESSIONKIT_LOG_DIR`` overrides the location.
    """
    path = Path(os.environ.get(LOG_DIR_ENV) or "data/logs").resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


__all__ = [
    "reports_dir",
    "logs_dir",
]

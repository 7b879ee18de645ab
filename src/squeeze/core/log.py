"""Logging setup — every module calls ``get_logger(__name__)``.

Log records go to stderr so they never mix with ``--json`` output on stdout.
"""

from __future__ import annotations

import logging
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_ROOT = "squeeze"
_handler: logging.StreamHandler | None = None


def configure_logging(level: str | int = "WARNING") -> None:
    """Attach a stderr handler to the package logger (once) and set its level."""
    global _handler
    root = logging.getLogger(_ROOT)
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
        root.addHandler(_handler)
        root.propagate = False
    else:
        # stderr may have been swapped since the first call
        _handler.setStream(sys.stderr)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger under the ``squeeze`` namespace."""
    return logging.getLogger(name)

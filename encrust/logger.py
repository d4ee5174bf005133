"""
Central logger for encrust.

Goals:
- Redact anything that looks like key material (hex, base64, seed=/key= pairs).
- Remove full tracebacks/locals (keep type+message only).
- Optional rotating log file with 0600 permissions (ENCRUST_LOG_FILE).

Public API: `logger`
"""

from __future__ import annotations

import contextlib
import logging
import os
import sys
from logging import Logger
from logging.handlers import RotatingFileHandler

from .config import LOG_LEVEL, LOG_PATH
from .redactlog import NoLocalsFilter, RedactingFormatter


LOG_FILE_MODE = 0o600


class OwnerOnlyFileHandler(RotatingFileHandler):
    """Rotating log file created owner read/write; rotation renames, so backups keep the mode."""

    def _open(self):
        fd = os.open(self.baseFilename, os.O_WRONLY | os.O_CREAT | os.O_APPEND, LOG_FILE_MODE)
        # an existing file keeps its mode on open
        with contextlib.suppress(OSError):
            os.chmod(self.baseFilename, LOG_FILE_MODE)
        return os.fdopen(fd, "a", encoding=self.encoding, errors=self.errors)


_LEVEL = getattr(logging, LOG_LEVEL, logging.WARNING)


def _build_logger() -> Logger:
    lg = logging.getLogger("encrust")
    lg.setLevel(_LEVEL)

    if lg.handlers:
        return lg

    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(
        RedactingFormatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            enable_colors=sys.stderr.isatty(),
        )
    )
    sh.addFilter(NoLocalsFilter())
    lg.addHandler(sh)

    if LOG_PATH is not None:
        with contextlib.suppress(OSError):
            LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        fh = OwnerOnlyFileHandler(
            LOG_PATH,
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding="utf-8",
            delay=True,
        )
        fh.setFormatter(
            RedactingFormatter(
                fmt="%(asctime)s [%(levelname)s] %(message)s (%(pathname)s:%(lineno)d in %(funcName)s)",
                datefmt="%Y-%m-%d %H:%M:%S%z",
            )
        )
        fh.addFilter(NoLocalsFilter())
        lg.addHandler(fh)

    return lg


logger: Logger = _build_logger()


def get_logger(name: str) -> Logger:
    """Child logger under the project logger (``encrust.<name>``)."""
    short = name.split(".", 1)[1] if name.startswith("encrust.") else name
    return logger.getChild(short)


__all__ = ["logger", "get_logger", "OwnerOnlyFileHandler"]

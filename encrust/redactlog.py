"""
Log hygiene for encrust: nothing that could be key material or an obfuscated
payload should reach a handler verbatim.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Pattern, Union

Replacement = Union[str, Callable[["re.Match[str]"], str]]

# applied in order; key=value pairs first so their values are not half-matched
REDACTIONS: tuple[tuple[Pattern[str], Replacement], ...] = (
    (
        re.compile(r"(?i)\b(seed|nonce|secret|token|key)\s*[=:]\s*([^\s,;]+)"),
        lambda m: f"{m.group(1)}=[redacted]",
    ),
    (re.compile(r"bytes\.fromhex\('[0-9a-fA-F]*'\)"), "bytes.fromhex([redacted])"),
    (re.compile(r"\b(?:0x)?[0-9a-fA-F]{16,}\b"), "[hex_redacted]"),
    (re.compile(r"\b[A-Za-z0-9+/]{32,}={0,2}"), "[b64_redacted]"),
)

_COLORS = (
    (logging.ERROR, "\x1b[31m"),
    (logging.WARNING, "\x1b[33m"),
)
_DIM = "\x1b[90m"
_RESET = "\x1b[0m"


def redact(text: str) -> str:
    """Replace seeds, nonces, long hex and base64 runs in ``text``."""
    for pattern, replacement in REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


class NoLocalsFilter(logging.Filter):
    """Fold exception info into the message; tracebacks (and their frames) never reach handlers."""

    def filter(self, record: logging.LogRecord) -> bool:
        info = record.exc_info
        if info:
            etype, evalue = info[0], info[1]
            if etype is not None:
                record.msg = f"{record.msg} | {etype.__name__}: {evalue}"
            record.exc_info = None
            record.exc_text = None
        return True


class RedactingFormatter(logging.Formatter):
    """Formatter running ``redact`` over every formatted line, optionally coloured by level."""

    def __init__(self, fmt: str, datefmt: str | None = None, enable_colors: bool = False):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._colors = enable_colors

    def format(self, record: logging.LogRecord) -> str:
        out = redact(super().format(record))
        if not self._colors:
            return out
        color = next((c for level, c in _COLORS if record.levelno >= level), _DIM)
        return f"{color}{out}{_RESET}"


__all__ = ["REDACTIONS", "redact", "NoLocalsFilter", "RedactingFormatter"]

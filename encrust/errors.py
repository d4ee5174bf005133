"""Exception taxonomy for encrust."""

from __future__ import annotations

import os
from pathlib import Path


class EncrustError(Exception):
    """Base class for every error raised by encrust."""


class BuildTimeIOError(EncrustError, OSError):
    """A file requested for embedding could not be read. Build-fatal."""

    def __init__(self, path: str | os.PathLike[str], cause: BaseException, *, what: str = "read"):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Error when attempting to {what} `{self.path}`: {cause}")


class MalformedLiteralError(EncrustError, ValueError):
    """Literal syntax is unsupported or out of range. Build-fatal."""

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        col_offset: int | None = None,
        source: str | None = None,
    ):
        self.message = message
        self.lineno = lineno
        self.col_offset = col_offset
        self.source = source
        super().__init__(self._render())

    def _render(self) -> str:
        if self.lineno is None:
            return self.message
        col = (self.col_offset or 0) + 1
        return f"{self.message} (line {self.lineno}, column {col})"


class ConcurrentExposureError(EncrustError, RuntimeError):
    """A container was exposed, rekeyed or wiped while a guard was outstanding."""


class WipedContainerError(EncrustError, RuntimeError):
    """A container was used after its secrets were wiped."""


__all__ = [
    "EncrustError",
    "BuildTimeIOError",
    "MalformedLiteralError",
    "ConcurrentExposureError",
    "WipedContainerError",
]

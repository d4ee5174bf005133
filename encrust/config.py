"""
Central settings for encrust, read once from the environment.

ENCRUST_BACKEND       fast | xchacha  (keystream used for fresh key material)
ENCRUST_PROJECT_ROOT  base directory for relative paths given to the generator
ENCRUST_LOG_LEVEL     standard logging level name (default WARNING)
ENCRUST_LOG_FILE      optional path of a rotating log file
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path


class Backend(Enum):
    FAST = "fast"
    XCHACHA = "xchacha"

    @classmethod
    def parse(cls, name: str | Backend | None) -> Backend:
        if isinstance(name, Backend):
            return name
        if not name:
            return DEFAULT_BACKEND
        try:
            return cls(str(name).strip().lower())
        except ValueError as exc:
            choices = ", ".join(b.value for b in cls)
            raise ValueError(f"Unknown backend '{name}' (expected one of: {choices})") from exc


def _env_backend() -> Backend:
    raw = os.getenv("ENCRUST_BACKEND", Backend.FAST.value).strip().lower()
    try:
        return Backend(raw)
    except ValueError:
        return Backend.FAST


DEFAULT_BACKEND: Backend = _env_backend()

# Generator: relative paths are resolved against this directory
_root = os.getenv("ENCRUST_PROJECT_ROOT")
PROJECT_ROOT: Path | None = Path(_root).expanduser() if _root else None

LOG_LEVEL = os.getenv("ENCRUST_LOG_LEVEL", "WARNING").upper()
_log_file = os.getenv("ENCRUST_LOG_FILE")
LOG_PATH: Path | None = Path(_log_file).expanduser() if _log_file else None

# Keystream block sizes for the fast backend (bytes drawn per refill)
NUMBER_BLOCK = 8
TEXT_BLOCK = 16

SEED_BYTES = 8
XCHACHA_KEY_BYTES = 32
XCHACHA_NONCE_BYTES = 24


def project_root() -> Path:
    """Directory the generator resolves relative paths against."""
    return PROJECT_ROOT if PROJECT_ROOT is not None else Path.cwd()


__all__ = [
    "Backend",
    "DEFAULT_BACKEND",
    "PROJECT_ROOT",
    "LOG_LEVEL",
    "LOG_PATH",
    "NUMBER_BLOCK",
    "TEXT_BLOCK",
    "SEED_BYTES",
    "XCHACHA_KEY_BYTES",
    "XCHACHA_NONCE_BYTES",
    "project_root",
]

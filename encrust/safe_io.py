"""
Atomic writes for generated modules: readers see the old file or the complete
new one, never a truncated module.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Iterator

GENERATED_FILE_MODE = 0o644
DIR_MODE = 0o755


def secure_mkdir(path: str | Path, mode: int = DIR_MODE) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    with contextlib.suppress(OSError):
        os.chmod(path, mode)
    return path


@contextlib.contextmanager
def atomic_writer(path: str | Path, mode: int = GENERATED_FILE_MODE) -> Iterator[BinaryIO]:
    """
    Yield a temporary file beside ``path``; on clean exit it is flushed,
    fsynced and renamed over ``path``. On error the temporary is removed and
    ``path`` is left untouched.
    """
    target = Path(path)
    secure_mkdir(target.parent)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            yield fh
            fh.flush()
            with contextlib.suppress(OSError):
                os.fsync(fh.fileno())
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    with contextlib.suppress(OSError):
        os.chmod(target, mode)


def atomic_write_bytes(path: str | Path, data: bytes, mode: int = GENERATED_FILE_MODE) -> None:
    if not data:
        raise ValueError("Refusing to write an empty file")
    with atomic_writer(path, mode) as fh:
        fh.write(data)


def atomic_write_text(
    path: str | Path, text: str, mode: int = GENERATED_FILE_MODE, encoding: str = "utf-8"
) -> None:
    atomic_write_bytes(path, text.encode(encoding), mode)


__all__ = ["atomic_writer", "atomic_write_bytes", "atomic_write_text", "secure_mkdir"]

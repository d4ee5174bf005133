# secure_bytes.py
"""Wipe primitive for mutable buffers holding obfuscated data or key material."""
from __future__ import annotations

import ctypes
import platform
from typing import Callable, Final, Optional

WIPE_BYTE: Final[int] = 0

_LIBC_NAMES: Final[tuple[str, ...]] = ("libc.so.6", "libc.so.7", "libc.dylib", "libSystem.dylib")

NativeZero = Callable[[int, int], None]


def _windows_zero() -> Optional[NativeZero]:
    try:
        fn = ctypes.windll.kernel32.RtlSecureZeroMemory  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        return None
    fn.argtypes = (ctypes.c_void_p, ctypes.c_size_t)
    fn.restype = ctypes.c_void_p
    return lambda addr, n: fn(addr, n)


def _posix_zero() -> Optional[NativeZero]:
    for name in _LIBC_NAMES:
        try:
            libc = ctypes.CDLL(name)
        except OSError:
            continue
        fn = getattr(libc, "explicit_bzero", None)
        if fn is None:
            continue
        fn.argtypes = (ctypes.c_void_p, ctypes.c_size_t)
        fn.restype = None
        return lambda addr, n: fn(addr, n)
    return None


def _memset_zero(addr: int, n: int) -> None:
    ctypes.memset(addr, WIPE_BYTE, n)


def _resolve_native_zero() -> NativeZero:
    """Pick the strongest zeroing routine once: RtlSecureZeroMemory, explicit_bzero, memset."""
    found = _windows_zero() if platform.system() == "Windows" else _posix_zero()
    return found or _memset_zero


_native_zero: NativeZero = _resolve_native_zero()


def secure_memzero(buf: bytearray) -> None:
    """
    Overwrite ``buf`` with WIPE_BYTE through a native call the optimizer
    cannot drop. Buffers that cannot export their address (for example while
    a memoryview holds them resized) are cleared byte by byte instead.
    """
    n = len(buf)
    if not n:
        return
    try:
        addr = ctypes.addressof(ctypes.c_char.from_buffer(buf))
    except (TypeError, ValueError, BufferError):
        for i in range(n):
            buf[i] = WIPE_BYTE
        return
    _native_zero(addr, n)


def is_wiped(buf: bytearray) -> bool:
    """True if every byte of ``buf`` equals the wipe pattern."""
    return not buf.strip(bytes([WIPE_BYTE]))


__all__ = ["secure_memzero", "is_wiped", "WIPE_BYTE"]

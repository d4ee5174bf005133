# hashstrings.py
"""
Search for strings or byte patterns at run time without keeping the pattern.

Only a keyed 64-bit digest (BLAKE2b, keyed with the seed) and the seed are
stored. Equality recomputes the digest over the candidate and compares the
two in constant time. Matches are probabilistic: distinct inputs can collide.
"""
from __future__ import annotations

import hashlib
import hmac
from enum import Enum
from typing import Union

from .keystream import SEED_MAX
from .secure_bytes import secure_memzero

BytesLike = Union[bytes, bytearray, memoryview]

DIGEST_BYTES = 8


class Sensitivity(Enum):
    """Whether a ``Hashstring`` ignores case when comparing strings."""

    CASE_INSENSITIVE = "case_insensitive"
    CASE_SENSITIVE = "case_sensitive"


def _check_seed(seed: int) -> int:
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise TypeError(f"seed must be an int, got {type(seed).__name__}")
    if not 0 <= seed <= SEED_MAX:
        raise ValueError("seed must fit in 64 unsigned bits")
    return seed


def keyed_hash(data: BytesLike, seed: int) -> int:
    """64-bit BLAKE2b digest of ``data`` keyed with the 8 little-endian seed bytes."""
    h = hashlib.blake2b(digest_size=DIGEST_BYTES, key=seed.to_bytes(8, "little"))
    h.update(data)
    return int.from_bytes(h.digest(), "little")


def _digest_eq(a: int, b: int) -> bool:
    return hmac.compare_digest(a.to_bytes(DIGEST_BYTES, "little"), b.to_bytes(DIGEST_BYTES, "little"))


def _hash_text(text: str, seed: int, sensitivity: Sensitivity) -> int:
    if sensitivity is Sensitivity.CASE_SENSITIVE:
        return keyed_hash(text.encode("utf-8"), seed)
    lowered = bytearray(text.lower().encode("utf-8"))
    try:
        return keyed_hash(lowered, seed)
    finally:
        secure_memzero(lowered)


class Hashstring:
    """
    Keyed digest of a string.

        hs = Hashstring("A string", 0xABCDEF, Sensitivity.CASE_SENSITIVE)
        hs == "A string"   # True
        hs == "a string"   # False

    The case-insensitive variant lower-cases the whole string, so context
    dependent folds such as the Greek final sigma match. Its UTF-8 encoding is
    wiped right after hashing, but the lower-cased ``str`` and the ``text``
    argument are immutable and cannot be wiped. Fingerprints are unhashable:
    they compare equal to plain strings. Use the generator
    (``encrust.generator.hashstring``) to keep the pattern out of the program
    entirely.
    """

    __slots__ = ("_value", "_seed", "_sensitivity")

    def __init__(
        self,
        text: str,
        seed: int,
        sensitivity: Sensitivity = Sensitivity.CASE_SENSITIVE,
    ) -> None:
        if not isinstance(text, str):
            raise TypeError(f"Hashstring requires str, got {type(text).__name__}")
        sensitivity = Sensitivity(sensitivity)
        self._seed = _check_seed(seed)
        self._sensitivity = sensitivity
        self._value = _hash_text(text, seed, sensitivity)

    @classmethod
    def from_raw_value(cls, value: int, seed: int, sensitivity: Sensitivity) -> Hashstring:
        """Rebuild from a stored digest. For generated code only."""
        obj = cls.__new__(cls)
        obj._value = int(value)
        obj._seed = _check_seed(seed)
        obj._sensitivity = Sensitivity(sensitivity)
        return obj

    @property
    def raw_value(self) -> int:
        return self._value

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def sensitivity(self) -> Sensitivity:
        return self._sensitivity

    def matches(self, candidate: str) -> bool:
        return _digest_eq(self._value, _hash_text(candidate, self._seed, self._sensitivity))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return self.matches(other)
        if isinstance(other, Hashstring):
            return (
                self._seed == other._seed
                and self._sensitivity is other._sensitivity
                and _digest_eq(self._value, other._value)
            )
        return NotImplemented

    # equal to plain strings, which hash differently
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<Hashstring {self._sensitivity.value}>"


class Hashbytes:
    """
    Keyed digest of a byte pattern.

        hb = Hashbytes(b"\\x01\\x02\\x03", 0xC0FFEE)
        hb == b"\\x01\\x02\\x03"   # True
    """

    __slots__ = ("_value", "_seed")

    def __init__(self, pattern: BytesLike, seed: int) -> None:
        if not isinstance(pattern, (bytes, bytearray, memoryview)):
            raise TypeError(f"Hashbytes requires bytes-like, got {type(pattern).__name__}")
        self._seed = _check_seed(seed)
        self._value = keyed_hash(pattern, seed)

    @classmethod
    def from_raw_value(cls, value: int, seed: int) -> Hashbytes:
        """Rebuild from a stored digest. For generated code only."""
        obj = cls.__new__(cls)
        obj._value = int(value)
        obj._seed = _check_seed(seed)
        return obj

    @property
    def raw_value(self) -> int:
        return self._value

    @property
    def seed(self) -> int:
        return self._seed

    def matches(self, candidate: BytesLike) -> bool:
        return _digest_eq(self._value, keyed_hash(candidate, self._seed))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (bytes, bytearray, memoryview)):
            return self.matches(other)
        if isinstance(other, Hashbytes):
            return self._seed == other._seed and _digest_eq(self._value, other._value)
        return NotImplemented

    # equal to plain bytes, which hash differently
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "<Hashbytes>"


def fingerprint(
    pattern: str | BytesLike,
    seed: int,
    sensitivity: Sensitivity = Sensitivity.CASE_SENSITIVE,
) -> Hashstring | Hashbytes:
    """Hashstring for text, Hashbytes for byte patterns."""
    if isinstance(pattern, str):
        return Hashstring(pattern, seed, sensitivity)
    return Hashbytes(pattern, seed)


__all__ = [
    "Sensitivity",
    "Hashstring",
    "Hashbytes",
    "fingerprint",
    "keyed_hash",
]

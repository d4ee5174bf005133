# keystream.py
"""
Keystream engines and the key material that seeds them.

Two interchangeable backends share one contract: ``apply(buf, block)`` XORs
``buf`` in place with freshly generated keystream bytes. Engines are single
use; a new engine is built from the key material for every pass, so the same
key material always yields the same keystream from its start.

- FastKeystream: ``random.Random`` seeded with a 64-bit seed. Keystream is drawn
  in blocks of ``block`` bytes, one fresh block per block of payload; the unused
  tail of a short final block is discarded. Obfuscation only.
- XChaChaKeystream: XChaCha20 (PyCryptodome ChaCha20 with a 24-byte nonce).
  Keystream is consumed continuously and ``block`` is ignored.
"""
from __future__ import annotations

import random
import secrets
from abc import ABC, abstractmethod
from typing import Final, Union

from Crypto.Cipher import ChaCha20
from nacl.utils import random as nacl_random

from .config import (
    DEFAULT_BACKEND,
    SEED_BYTES,
    XCHACHA_KEY_BYTES,
    XCHACHA_NONCE_BYTES,
    Backend,
)
from .errors import WipedContainerError
from .log_utils import log_best_effort
from .secure_bytes import secure_memzero

BytesLike = Union[bytes, bytearray, memoryview]

SEED_MAX: Final[int] = (1 << 64) - 1


def _xor_into(buf: bytearray, start: int, key: bytes) -> None:
    for offset, k in enumerate(key):
        buf[start + offset] ^= k


class Keystream(ABC):
    """Single-use keystream engine."""

    @abstractmethod
    def keystream(self, n: int, block: int) -> bytes:
        """Return the next keystream bytes covering ``n`` payload bytes."""

    def apply(self, buf: bytearray, block: int) -> None:
        """XOR ``buf`` in place with the next ``len(buf)`` keystream bytes."""
        if not buf:
            return
        _xor_into(buf, 0, self.keystream(len(buf), block))


class FastKeystream(Keystream):
    __slots__ = ("_rng",)

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(seed)

    def keystream(self, n: int, block: int) -> bytes:
        if block <= 0:
            raise ValueError("block size must be positive")
        out = bytearray()
        remaining = n
        while remaining > 0:
            chunk = self._rng.randbytes(block)
            out += chunk[:remaining]
            remaining -= block
        return bytes(out)


class XChaChaKeystream(Keystream):
    __slots__ = ("_cipher",)

    def __init__(self, key: BytesLike, nonce: BytesLike) -> None:
        self._cipher = ChaCha20.new(key=bytes(key), nonce=bytes(nonce))

    def keystream(self, n: int, block: int) -> bytes:
        # encrypting zeros yields the raw keystream
        return self._cipher.encrypt(bytes(n))


class KeyMaterial(ABC):
    """Owned, wipeable key material that knows how to build its engine."""

    backend: Backend

    @abstractmethod
    def engine(self) -> Keystream:
        """Build a fresh engine positioned at the start of the keystream."""

    @abstractmethod
    def wipe(self) -> None:
        """Overwrite the key bytes. Idempotent."""

    @abstractmethod
    def copy(self) -> KeyMaterial:
        ...

    @abstractmethod
    def to_source(self, prefix: str = "encrust.") -> str:
        """Python expression rebuilding this key material (generator use)."""

    @property
    @abstractmethod
    def wiped(self) -> bool:
        ...

    def _check(self) -> None:
        if self.wiped:
            raise WipedContainerError(f"{type(self).__name__} has been wiped")

    def __del__(self) -> None:
        try:
            self.wipe()
        except Exception as exc:
            log_best_effort(__name__, exc, message="Key material cleanup failed")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} ***>"

    __str__ = __repr__


class SeedKey(KeyMaterial):
    """64-bit seed for the fast backend, held in an 8-byte buffer."""

    backend = Backend.FAST
    __slots__ = ("_buf", "_wiped")

    def __init__(self, seed: int) -> None:
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise TypeError(f"seed must be an int, got {type(seed).__name__}")
        if not 0 <= seed <= SEED_MAX:
            raise ValueError("seed must fit in 64 unsigned bits")
        self._buf = bytearray(seed.to_bytes(SEED_BYTES, "little"))
        self._wiped = False

    @classmethod
    def random(cls) -> SeedKey:
        return cls(secrets.randbits(64))

    @property
    def seed(self) -> int:
        self._check()
        return int.from_bytes(self._buf, "little")

    @property
    def wiped(self) -> bool:
        return self._wiped

    def engine(self) -> FastKeystream:
        return FastKeystream(self.seed)

    def wipe(self) -> None:
        if not getattr(self, "_wiped", True):
            secure_memzero(self._buf)
            self._wiped = True

    def copy(self) -> SeedKey:
        return type(self)(self.seed)

    def to_source(self, prefix: str = "encrust.") -> str:
        return f"{prefix}SeedKey({self.seed:#018x})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SeedKey):
            return NotImplemented
        return not (self._wiped or other._wiped) and self._buf == other._buf

    __hash__ = None  # type: ignore[assignment]


class XChaChaKey(KeyMaterial):
    """256-bit key + 192-bit nonce for the XChaCha20 backend."""

    backend = Backend.XCHACHA
    __slots__ = ("_key", "_nonce", "_wiped")

    def __init__(self, key: BytesLike, nonce: BytesLike) -> None:
        if not isinstance(key, (bytes, bytearray, memoryview)) or not isinstance(
            nonce, (bytes, bytearray, memoryview)
        ):
            raise TypeError("key and nonce must be bytes-like")
        if len(key) != XCHACHA_KEY_BYTES:
            raise ValueError(f"Invalid key length: expected {XCHACHA_KEY_BYTES} bytes")
        if len(nonce) != XCHACHA_NONCE_BYTES:
            raise ValueError(f"Invalid nonce length: expected {XCHACHA_NONCE_BYTES} bytes")
        self._key = bytearray(key)
        self._nonce = bytearray(nonce)
        self._wiped = False

    @classmethod
    def random(cls) -> XChaChaKey:
        return cls(nacl_random(XCHACHA_KEY_BYTES), nacl_random(XCHACHA_NONCE_BYTES))

    @property
    def wiped(self) -> bool:
        return self._wiped

    def engine(self) -> XChaChaKeystream:
        self._check()
        return XChaChaKeystream(self._key, self._nonce)

    def wipe(self) -> None:
        if not getattr(self, "_wiped", True):
            secure_memzero(self._key)
            secure_memzero(self._nonce)
            self._wiped = True

    def copy(self) -> XChaChaKey:
        self._check()
        return type(self)(self._key, self._nonce)

    def to_source(self, prefix: str = "encrust.") -> str:
        self._check()
        return (
            f"{prefix}XChaChaKey(bytes.fromhex({self._key.hex()!r}), "
            f"bytes.fromhex({self._nonce.hex()!r}))"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, XChaChaKey):
            return NotImplemented
        if self._wiped or other._wiped:
            return False
        return self._key == other._key and self._nonce == other._nonce

    __hash__ = None  # type: ignore[assignment]


KeyLike = Union[KeyMaterial, int, "tuple[BytesLike, BytesLike]"]


def as_key_material(key: KeyLike) -> KeyMaterial:
    """
    Coerce caller input into key material.

    int → SeedKey, (key, nonce) → XChaChaKey, KeyMaterial → unchanged.
    """
    if isinstance(key, KeyMaterial):
        return key
    if isinstance(key, int) and not isinstance(key, bool):
        return SeedKey(key)
    if isinstance(key, tuple) and len(key) == 2:
        return XChaChaKey(key[0], key[1])
    raise TypeError(f"Unsupported key material: {type(key).__name__}")


def new_key_material(backend: Backend | str | None = None) -> KeyMaterial:
    """Fresh random key material for ``backend`` (default: configured backend)."""
    chosen = Backend.parse(backend) if backend is not None else DEFAULT_BACKEND
    if chosen is Backend.XCHACHA:
        return XChaChaKey.random()
    return SeedKey.random()


__all__ = [
    "Keystream",
    "FastKeystream",
    "XChaChaKeystream",
    "KeyMaterial",
    "SeedKey",
    "XChaChaKey",
    "as_key_material",
    "new_key_material",
    "SEED_MAX",
]

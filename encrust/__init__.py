"""encrust: public API.

Keeps sensitive literals obfuscated in memory and exposes them only inside a
scoped guard:

    from encrust import Encrusted, SeedKey, U32

    secret = Encrusted(U32(42), SeedKey.random())
    with secret.decrust() as guard:
        assert guard.value == 42

Exports:
- Encrusted / Decrusted (container and exposure guard)
- SeedKey / XChaChaKey / new_key_material / Backend (key material)
- fixed-width integers, ScrambledText, encrustable / encrustable_union
- Hashstring / Hashbytes / Sensitivity (fingerprints)
- error classes; ``encrust.generator`` holds the build-time generator
"""

from __future__ import annotations

from . import generator
from .config import Backend
from .container import Decrusted, Encrusted
from .encrustable import (
    I8,
    I16,
    I32,
    I64,
    I128,
    U8,
    U16,
    U32,
    U64,
    U128,
    FixedInt,
    Isize,
    ScrambledText,
    Usize,
    encrustable,
    encrustable_union,
    toggle_encrust,
    zeroize,
)
from .errors import (
    BuildTimeIOError,
    ConcurrentExposureError,
    EncrustError,
    MalformedLiteralError,
    WipedContainerError,
)
from .hashstrings import Hashbytes, Hashstring, Sensitivity, fingerprint
from .keystream import SeedKey, XChaChaKey, new_key_material

__version__ = "0.4.0"

__all__ = [
    "Backend",
    "Encrusted",
    "Decrusted",
    "SeedKey",
    "XChaChaKey",
    "new_key_material",
    "FixedInt",
    "U8",
    "U16",
    "U32",
    "U64",
    "U128",
    "Usize",
    "I8",
    "I16",
    "I32",
    "I64",
    "I128",
    "Isize",
    "ScrambledText",
    "encrustable",
    "encrustable_union",
    "toggle_encrust",
    "zeroize",
    "Hashstring",
    "Hashbytes",
    "Sensitivity",
    "fingerprint",
    "EncrustError",
    "BuildTimeIOError",
    "MalformedLiteralError",
    "ConcurrentExposureError",
    "WipedContainerError",
    "generator",
]

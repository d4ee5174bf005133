# encrustable.py
"""
Reversible toggle capability.

``toggle_encrust(value, engine)`` XORs the byte representation of ``value`` with
the engine's keystream and returns the toggled value. Running it twice with two
engines built from the same key material restores the original value, as long
as both passes visit the same leaves in the same order:

- fixed-width integers: WIDTH little-endian bytes, 8-byte keystream blocks
- text: UTF-8 bytes, 16-byte keystream blocks; the obfuscated form is an opaque
  ScrambledText and is only decoded right after the inverse toggle
- bytearray: one u8 per element, index order (immutable bytes are rejected:
  they can be neither toggled in place nor wiped)
- tuple (fixed-size array), list (resizable sequence): element by element, index order
- records registered with @encrustable: fields in declaration order
- tagged unions registered with @encrustable_union: the active variant's fields only

Mutable values (bytearray, list, records) are toggled in place and returned;
immutable leaves are returned as new objects, so callers always keep the result.

``zeroize(value)`` overwrites every mutable buffer with the wipe pattern and
returns zero-valued replacements for immutable leaves.
"""
from __future__ import annotations

import dataclasses
import struct
from functools import singledispatch
from typing import Any, Callable, ClassVar, Iterable, Mapping, Sequence, TypeVar

from .config import NUMBER_BLOCK, TEXT_BLOCK
from .keystream import Keystream
from .secure_bytes import secure_memzero

WORD_BYTES = struct.calcsize("P")

# Encoding errors handler: keeps toggling reversible even for a wrong key
_TEXT_ERRORS = "surrogateescape"

C = TypeVar("C", bound=type)


# ───────────────────────── integers ─────────────────────────────────────────
class FixedInt(int):
    """int with an explicit byte width and signedness."""

    WIDTH: ClassVar[int] = 0
    SIGNED: ClassVar[bool] = False
    MIN: ClassVar[int] = 0
    MAX: ClassVar[int] = 0

    __slots__ = ()

    def __init_subclass__(cls, width: int = 0, signed: bool = False, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if width:
            cls.WIDTH = width
            cls.SIGNED = signed
            bits = width * 8
            cls.MIN = -(1 << (bits - 1)) if signed else 0
            cls.MAX = (1 << (bits - 1)) - 1 if signed else (1 << bits) - 1

    def __new__(cls, value: int = 0):
        if not cls.WIDTH:
            raise TypeError("FixedInt is abstract; use U8, I32, ...")
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{cls.__name__} requires an int, got {type(value).__name__}")
        v = int(value)
        if not cls.MIN <= v <= cls.MAX:
            raise OverflowError(f"{v} out of range for {cls.__name__.lower()}")
        return super().__new__(cls, v)

    @classmethod
    def from_le_bytes(cls, data: bytes | bytearray) -> FixedInt:
        if len(data) != cls.WIDTH:
            raise ValueError(f"{cls.__name__} needs exactly {cls.WIDTH} bytes, got {len(data)}")
        return cls(int.from_bytes(data, "little", signed=cls.SIGNED))

    def to_le_bytes(self) -> bytearray:
        return bytearray(int(self).to_bytes(self.WIDTH, "little", signed=self.SIGNED))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"

    def __reduce__(self):
        return (type(self), (int(self),))

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


class U8(FixedInt, width=1):
    __slots__ = ()


class U16(FixedInt, width=2):
    __slots__ = ()


class U32(FixedInt, width=4):
    __slots__ = ()


class U64(FixedInt, width=8):
    __slots__ = ()


class U128(FixedInt, width=16):
    __slots__ = ()


class Usize(FixedInt, width=WORD_BYTES):
    __slots__ = ()


class I8(FixedInt, width=1, signed=True):
    __slots__ = ()


class I16(FixedInt, width=2, signed=True):
    __slots__ = ()


class I32(FixedInt, width=4, signed=True):
    __slots__ = ()


class I64(FixedInt, width=8, signed=True):
    __slots__ = ()


class I128(FixedInt, width=16, signed=True):
    __slots__ = ()


class Isize(FixedInt, width=WORD_BYTES, signed=True):
    __slots__ = ()


INTEGER_TYPES: dict[str, type[FixedInt]] = {
    t.__name__.lower(): t
    for t in (U8, U16, U32, U64, U128, Usize, I8, I16, I32, I64, I128, Isize)
}


# ───────────────────────── text ─────────────────────────────────────────────
class ScrambledText:
    """
    Obfuscated form of a str: a private buffer that may hold invalid UTF-8.

    Never decoded except by the inverse toggle.
    """

    __slots__ = ("_buf",)

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._buf = bytearray(data)

    @classmethod
    def _adopt(cls, buf: bytearray) -> ScrambledText:
        obj = cls.__new__(cls)
        obj._buf = buf
        return obj

    def raw_bytes(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScrambledText):
            return NotImplemented
        return self._buf == other._buf

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "<ScrambledText ***>"

    __str__ = __repr__


# ───────────────────────── toggle visitor ───────────────────────────────────
@singledispatch
def toggle_encrust(value: Any, engine: Keystream) -> Any:
    """Toggle obfuscation of ``value``; see the module docstring for the rules."""
    if isinstance(value, int):
        raise TypeError(
            f"integers need an explicit width to be encrusted (e.g. U32({value!r})), "
            f"got {type(value).__name__}"
        )
    if isinstance(value, bytes):
        raise TypeError("bytes cannot be wiped; encrust a bytearray instead")
    raise TypeError(f"{type(value).__name__} is not encrustable")


@toggle_encrust.register
def _(value: FixedInt, engine: Keystream) -> FixedInt:
    raw = value.to_le_bytes()
    for start in range(0, len(raw), NUMBER_BLOCK):
        chunk = raw[start:start + NUMBER_BLOCK]
        engine.apply(chunk, NUMBER_BLOCK)
        raw[start:start + NUMBER_BLOCK] = chunk
        secure_memzero(chunk)
    try:
        return type(value).from_le_bytes(raw)
    finally:
        secure_memzero(raw)


@toggle_encrust.register
def _(value: str, engine: Keystream) -> ScrambledText:
    buf = bytearray(value.encode("utf-8", _TEXT_ERRORS))
    for start in range(0, len(buf), TEXT_BLOCK):
        chunk = buf[start:start + TEXT_BLOCK]
        engine.apply(chunk, TEXT_BLOCK)
        buf[start:start + TEXT_BLOCK] = chunk
    return ScrambledText._adopt(buf)


@toggle_encrust.register
def _(value: ScrambledText, engine: Keystream) -> str:
    buf = value._buf
    for start in range(0, len(buf), TEXT_BLOCK):
        chunk = buf[start:start + TEXT_BLOCK]
        engine.apply(chunk, TEXT_BLOCK)
        buf[start:start + TEXT_BLOCK] = chunk
        secure_memzero(chunk)
    try:
        return buf.decode("utf-8", _TEXT_ERRORS)
    finally:
        secure_memzero(buf)


@toggle_encrust.register
def _(value: bytearray, engine: Keystream) -> bytearray:
    for i in range(len(value)):
        value[i] ^= engine.keystream(1, NUMBER_BLOCK)[0]
    return value


@toggle_encrust.register
def _(value: tuple, engine: Keystream) -> tuple:
    items = [toggle_encrust(item, engine) for item in value]
    if hasattr(value, "_fields"):
        return type(value)(*items)
    return tuple(items)


@toggle_encrust.register
def _(value: list, engine: Keystream) -> list:
    for i, item in enumerate(value):
        value[i] = toggle_encrust(item, engine)
    return value


# ───────────────────────── zeroize visitor ──────────────────────────────────
@singledispatch
def zeroize(value: Any) -> Any:
    """Overwrite ``value``'s buffers with the wipe pattern; returns the wiped value."""
    return value


@zeroize.register
def _(value: FixedInt) -> FixedInt:
    return type(value)(0)


@zeroize.register
def _(value: str) -> str:
    return ""


@zeroize.register
def _(value: ScrambledText) -> ScrambledText:
    secure_memzero(value._buf)
    return value


@zeroize.register
def _(value: bytearray) -> bytearray:
    secure_memzero(value)
    return value


@zeroize.register
def _(value: tuple) -> tuple:
    items = [zeroize(item) for item in value]
    if hasattr(value, "_fields"):
        return type(value)(*items)
    return tuple(items)


@zeroize.register
def _(value: list) -> list:
    for i, item in enumerate(value):
        value[i] = zeroize(item)
    return value


# ───────────────────────── raw serialization ────────────────────────────────
@singledispatch
def to_raw_bytes(value: Any) -> bytes:
    """Serialized bytes of a (plain or obfuscated) value, leaves in toggle order."""
    raise TypeError(f"{type(value).__name__} is not encrustable")


@to_raw_bytes.register
def _(value: FixedInt) -> bytes:
    return bytes(value.to_le_bytes())


@to_raw_bytes.register
def _(value: str) -> bytes:
    return value.encode("utf-8", _TEXT_ERRORS)


@to_raw_bytes.register
def _(value: ScrambledText) -> bytes:
    return value.raw_bytes()


@to_raw_bytes.register
def _(value: bytearray) -> bytes:
    return bytes(value)


@to_raw_bytes.register(tuple)
@to_raw_bytes.register(list)
def _(value) -> bytes:
    return b"".join(to_raw_bytes(item) for item in value)


# ───────────────────────── records & tagged unions ──────────────────────────
def _field_names(cls: type, fields: Iterable[str] | None) -> tuple[str, ...]:
    if fields is not None:
        names = tuple(fields)
    elif dataclasses.is_dataclass(cls):
        names = tuple(f.name for f in dataclasses.fields(cls))
    else:
        raise TypeError(
            f"{cls.__name__} is not a dataclass; pass fields=(...) to @encrustable"
        )
    if len(set(names)) != len(names):
        raise TypeError(f"{cls.__name__}: duplicate field names in {names}")
    return names


def _visit_fields(value: Any, names: Sequence[str], fn: Callable[[Any], Any]) -> Any:
    for name in names:
        object.__setattr__(value, name, fn(getattr(value, name)))
    return value


def _register(cls: type, toggle: Callable, wipe: Callable, raw: Callable) -> None:
    toggle_encrust.register(cls, toggle)
    zeroize.register(cls, wipe)
    to_raw_bytes.register(cls, raw)


def encrustable(cls: C | None = None, *, fields: Iterable[str] | None = None):
    """
    Register a record type with the toggle visitor.

    Dataclasses contribute their fields in declaration order; other classes
    must name them: ``@encrustable(fields=("user", "token"))``. Every field
    value must itself be encrustable. The order is stored in
    ``__encrust_fields__`` and never changes afterwards.
    """

    def wrap(klass: C) -> C:
        names = _field_names(klass, fields)
        klass.__encrust_fields__ = names

        def _toggle(value, engine):
            return _visit_fields(value, names, lambda v: toggle_encrust(v, engine))

        def _zeroize(value):
            return _visit_fields(value, names, zeroize)

        def _raw(value):
            return b"".join(to_raw_bytes(getattr(value, n)) for n in names)

        _register(klass, _toggle, _zeroize, _raw)
        return klass

    if cls is None:
        return wrap
    return wrap(cls)


def encrustable_union(
    cls: C | None = None,
    *,
    tag: str,
    variants: Mapping[Any, Iterable[str]],
):
    """
    Register a tagged union: ``tag`` names the attribute holding the active
    variant, ``variants`` maps each tag value to that variant's ordered fields.

    Only the active variant's fields are visited; the tag is never toggled.
    A Python class hierarchy of @encrustable dataclasses needs no extra
    registration, since dispatch already selects the concrete variant.
    """
    table = {key: tuple(names) for key, names in variants.items()}

    def wrap(klass: C) -> C:
        klass.__encrust_tag__ = tag
        klass.__encrust_variants__ = table

        def _active(value) -> tuple[str, ...]:
            active = getattr(value, tag)
            try:
                return table[active]
            except KeyError:
                raise TypeError(
                    f"{klass.__name__}: unknown variant {active!r} for tag '{tag}'"
                ) from None

        def _toggle(value, engine):
            return _visit_fields(value, _active(value), lambda v: toggle_encrust(v, engine))

        def _zeroize(value):
            return _visit_fields(value, _active(value), zeroize)

        def _raw(value):
            return b"".join(to_raw_bytes(getattr(value, n)) for n in _active(value))

        _register(klass, _toggle, _zeroize, _raw)
        return klass

    if cls is None:
        return wrap
    return wrap(cls)


def is_encrustable(value: Any) -> bool:
    """True if the toggle visitor has a rule for ``type(value)``."""
    if isinstance(value, int) and not isinstance(value, FixedInt):
        return False
    return toggle_encrust.dispatch(type(value)) is not toggle_encrust.dispatch(object)


__all__ = [
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
    "INTEGER_TYPES",
    "WORD_BYTES",
    "ScrambledText",
    "toggle_encrust",
    "zeroize",
    "to_raw_bytes",
    "encrustable",
    "encrustable_union",
    "is_encrustable",
]

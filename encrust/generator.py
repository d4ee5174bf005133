# generator.py
"""
Build-time embedding generator.

Each function takes literal source (see ``encrust.literals``) or a file path,
obfuscates the value once with fresh, independent random key material, and
returns a Python expression that rebuilds the container through the trusted
constructor:

    encrust.Encrusted.from_encrusted_data(<obfuscated value>, <key material>)

so the plaintext never appears in the generated code. Fingerprint functions
return an expression rebuilding a ``Hashstring``/``Hashbytes`` from its digest.

Failures are build-fatal: ``BuildTimeIOError`` for unreadable files,
``MalformedLiteralError`` for bad literals.
"""
from __future__ import annotations

import keyword
import os
import secrets
from functools import singledispatch
from pathlib import Path
from typing import Any, Iterable, Mapping

from .config import Backend, project_root
from .encrustable import FixedInt, ScrambledText, toggle_encrust, zeroize
from .errors import BuildTimeIOError
from .hashstrings import Hashbytes, Hashstring, Sensitivity
from .keystream import new_key_material
from .literals import parse_byte_pattern, parse_literal, parse_literal_list, parse_text
from .logger import get_logger

DEFAULT_PREFIX = "encrust."

_log = get_logger(__name__)


# ───────────────────────── rendering ────────────────────────────────────────
@singledispatch
def render_value(value: Any, prefix: str = DEFAULT_PREFIX) -> str:
    """Python source for an obfuscated value."""
    raise TypeError(f"Cannot render {type(value).__name__} as source")


@render_value.register
def _(value: FixedInt, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}{type(value).__name__}({int(value)})"


@render_value.register
def _(value: ScrambledText, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}ScrambledText(bytes.fromhex({value.raw_bytes().hex()!r}))"


@render_value.register
def _(value: bytearray, prefix: str = DEFAULT_PREFIX) -> str:
    return f"bytearray.fromhex({value.hex()!r})"


@render_value.register
def _(value: tuple, prefix: str = DEFAULT_PREFIX) -> str:
    items = [render_value(item, prefix) for item in value]
    if len(items) == 1:
        return f"({items[0]},)"
    return "(" + ", ".join(items) + ")"


@render_value.register
def _(value: list, prefix: str = DEFAULT_PREFIX) -> str:
    return "[" + ", ".join(render_value(item, prefix) for item in value) + "]"


def embed_value(
    value: Any,
    *,
    backend: Backend | str | None = None,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """
    Obfuscate an already-typed literal tree and render the trusted constructor
    call. Key material is fresh for every call.
    """
    key = new_key_material(backend)
    obfuscated = None
    try:
        obfuscated = toggle_encrust(value, key.engine())
        return (
            f"{prefix}Encrusted.from_encrusted_data("
            f"{render_value(obfuscated, prefix)}, {key.to_source(prefix)})"
        )
    finally:
        if obfuscated is not None:
            zeroize(obfuscated)
        key.wipe()


# ───────────────────────── literal embedding ────────────────────────────────
def encrust(source: str, *, backend: Backend | str | None = None, prefix: str = DEFAULT_PREFIX) -> str:
    """Embed one literal: integer, text or array."""
    value = parse_literal(source)
    _log.debug("Embedding %s literal", type(value).__name__)
    return embed_value(value, backend=backend, prefix=prefix)


def encrust_vec(source: str, *, backend: Backend | str | None = None, prefix: str = DEFAULT_PREFIX) -> str:
    """Embed a comma-separated list of literals as a list."""
    value = parse_literal_list(source)
    _log.debug("Embedding list of %d literals", len(value))
    return embed_value(value, backend=backend, prefix=prefix)


# ───────────────────────── file embedding ───────────────────────────────────
def resolve_path(path: str | os.PathLike[str], root: str | os.PathLike[str] | None = None) -> Path:
    """Absolute paths are kept; relative ones resolve against ``root`` (default: project root)."""
    p = Path(path)
    if p.is_absolute():
        return p
    base = Path(root) if root is not None else project_root()
    return base / p


def encrust_file_string(
    path: str | os.PathLike[str],
    root: str | os.PathLike[str] | None = None,
    *,
    backend: Backend | str | None = None,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """Read a UTF-8 text file and embed its contents as text, line endings untouched."""
    full = resolve_path(path, root)
    try:
        text = full.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _log.error("Embedding failed for %s", full)
        raise BuildTimeIOError(full, exc, what="read to a str") from exc
    _log.debug("Embedding text file %s", full)
    return embed_value(text, backend=backend, prefix=prefix)


def encrust_file_bytes(
    path: str | os.PathLike[str],
    root: str | os.PathLike[str] | None = None,
    *,
    backend: Backend | str | None = None,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """Read a file and embed its contents as a bytearray."""
    full = resolve_path(path, root)
    try:
        data = bytearray(full.read_bytes())
    except OSError as exc:
        _log.error("Embedding failed for %s", full)
        raise BuildTimeIOError(full, exc, what="read to a byte array") from exc
    _log.debug("Embedding binary file %s (%d bytes)", full, len(data))
    return embed_value(data, backend=backend, prefix=prefix)


# ───────────────────────── fingerprints ─────────────────────────────────────
def _fresh_seed() -> int:
    return secrets.randbits(64)


def embed_hashstring(
    text: str,
    sensitivity: Sensitivity = Sensitivity.CASE_SENSITIVE,
    *,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    seed = _fresh_seed()
    digest = Hashstring(text, seed, sensitivity).raw_value
    return (
        f"{prefix}Hashstring.from_raw_value({digest:#018x}, {seed:#018x}, "
        f"{prefix}Sensitivity.{Sensitivity(sensitivity).name})"
    )


def hashstring(source: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Case-sensitive string fingerprint."""
    return embed_hashstring(parse_text(source), Sensitivity.CASE_SENSITIVE, prefix=prefix)


def hashstring_ci(source: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Case-insensitive string fingerprint."""
    return embed_hashstring(parse_text(source), Sensitivity.CASE_INSENSITIVE, prefix=prefix)


def hashbytes(source: str, *, prefix: str = DEFAULT_PREFIX) -> str:
    """Byte-pattern fingerprint."""
    pattern = parse_byte_pattern(source)
    seed = _fresh_seed()
    digest = Hashbytes(pattern, seed).raw_value
    return f"{prefix}Hashbytes.from_raw_value({digest:#018x}, {seed:#018x})"


# ───────────────────────── modules ──────────────────────────────────────────
MODULE_HEADER = "# Generated by encrust. Do not edit: values are obfuscated.\n"


def render_module(embeddings: Mapping[str, str] | Iterable[tuple[str, str]]) -> str:
    """Render ``NAME = <expression>`` assignments as a complete module."""
    items = list(embeddings.items()) if isinstance(embeddings, Mapping) else list(embeddings)
    lines = [MODULE_HEADER, "import encrust", ""]
    seen: set[str] = set()
    for name, expression in items:
        if not name.isidentifier() or keyword.iskeyword(name):
            raise ValueError(f"Invalid module attribute name: {name!r}")
        if name in seen:
            raise ValueError(f"Duplicate module attribute name: {name!r}")
        seen.add(name)
        lines.append(f"{name} = {expression}")
    lines.append("")
    return "\n".join(lines)


__all__ = [
    "render_value",
    "embed_value",
    "encrust",
    "encrust_vec",
    "resolve_path",
    "encrust_file_string",
    "encrust_file_bytes",
    "embed_hashstring",
    "hashstring",
    "hashstring_ci",
    "hashbytes",
    "render_module",
]

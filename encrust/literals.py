# literals.py
"""
Typed literal syntax accepted by the build-time generator.

Literals are Python expressions, parsed with ``ast`` and never evaluated:

    u8(1)  i32(-7)  usize(0x10)      typed integers (one constructor per width)
    "text"                           text
    [u8(1), u8(2)]  ("a", "b")       fixed-size arrays → tuple
    u8(1), u8(2), u8(3)              sequences (encrust_vec) → list
    [0x01, 2, u8(3), 0b0]            byte patterns (hashbytes), each 0..=255

Errors carry the line/column of the offending node.
"""
from __future__ import annotations

import ast
from typing import Any

from .encrustable import INTEGER_TYPES, U8, FixedInt
from .errors import MalformedLiteralError


def _fail(message: str, node: ast.AST | None, source: str, line_shift: int = 0) -> MalformedLiteralError:
    if node is None:
        return MalformedLiteralError(message, source=source)
    return MalformedLiteralError(
        message,
        lineno=getattr(node, "lineno", 1) - line_shift,
        col_offset=getattr(node, "col_offset", 0),
        source=source,
    )


class _Converter:
    def __init__(self, source: str, line_shift: int = 0) -> None:
        self.source = source
        self.line_shift = line_shift

    def error(self, message: str, node: ast.AST) -> MalformedLiteralError:
        return _fail(message, node, self.source, self.line_shift)

    def int_value(self, node: ast.AST) -> int:
        sign = 1
        inner = node
        if isinstance(inner, ast.UnaryOp) and isinstance(inner.op, (ast.USub, ast.UAdd)):
            sign = -1 if isinstance(inner.op, ast.USub) else 1
            inner = inner.operand
        if (
            isinstance(inner, ast.Constant)
            and isinstance(inner.value, int)
            and not isinstance(inner.value, bool)
        ):
            return sign * inner.value
        raise self.error("Expected an integer literal", node)

    def typed_int(self, node: ast.Call) -> FixedInt:
        name = node.func.id  # type: ignore[attr-defined]
        kind = INTEGER_TYPES[name]
        if node.keywords or len(node.args) != 1:
            raise self.error(f"`{name}` takes exactly one integer literal", node)
        value = self.int_value(node.args[0])
        try:
            return kind(value)
        except OverflowError:
            raise self.error(f"Literal {value} out of range for {name}", node.args[0]) from None

    def literal(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
            if node.func.id in INTEGER_TYPES:
                return self.typed_int(node)
            raise self.error(
                f"Supplied integer type `{node.func.id}` not supported by `encrust`", node
            )
        if isinstance(node, ast.Constant):
            if isinstance(node.value, str):
                return node.value
            if isinstance(node.value, int) and not isinstance(node.value, bool):
                raise self.error("No integer data type supplied; write e.g. u32(7)", node)
        if isinstance(node, ast.UnaryOp) and isinstance(node.operand, ast.Constant):
            raise self.error("No integer data type supplied; write e.g. i32(-7)", node)
        if isinstance(node, (ast.List, ast.Tuple)):
            return tuple(self.literal(elt) for elt in node.elts)
        raise self.error("Unsupported input to `encrust`", node)

    def byte(self, node: ast.AST) -> int:
        if (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id == "u8"
        ):
            return int(self.typed_int(node))
        value = self.int_value(node)
        if not U8.MIN <= value <= U8.MAX:
            raise self.error(f"Byte value {value} does not fit in u8", node)
        return value


def _parse(source: str) -> ast.expr:
    if not isinstance(source, str):
        raise TypeError(f"literal source must be str, got {type(source).__name__}")
    try:
        tree = ast.parse(source.strip(), mode="eval")
    except SyntaxError as exc:
        raise MalformedLiteralError(
            f"Invalid literal syntax: {exc.msg}",
            lineno=exc.lineno,
            col_offset=(exc.offset or 1) - 1,
            source=source,
        ) from None
    return tree.body


def parse_literal(source: str) -> Any:
    """Parse one literal (integer, text or array) into typed Python values."""
    return _Converter(source).literal(_parse(source))


def parse_literal_list(source: str) -> list:
    """Parse a comma-separated list of literals (the ``encrust_vec`` input)."""
    if not source.strip():
        return []
    # wrap on separate lines so column offsets stay those of the caller's text
    wrapped = "[\n" + source + "\n]"
    try:
        tree = ast.parse(wrapped, mode="eval")
    except SyntaxError as exc:
        raise MalformedLiteralError(
            f"Invalid literal syntax: {exc.msg}",
            lineno=(exc.lineno or 2) - 1,
            col_offset=(exc.offset or 1) - 1,
            source=source,
        ) from None
    conv = _Converter(source, line_shift=1)
    return [conv.literal(elt) for elt in tree.body.elts]  # type: ignore[attr-defined]


def parse_text(source: str) -> str:
    """Parse a single string literal (``hashstring`` input)."""
    node = _parse(source)
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    raise _fail("Expected a string literal", node, source)


def parse_byte_pattern(source: str) -> bytes:
    """Parse a byte pattern: ``[0x01, 2, u8(3)]`` or ``b"..."``."""
    node = _parse(source)
    if isinstance(node, ast.Constant) and isinstance(node.value, bytes):
        return node.value
    if not isinstance(node, (ast.List, ast.Tuple)):
        raise _fail("Expected a bracketed list of bytes", node, source)
    conv = _Converter(source)
    return bytes(conv.byte(elt) for elt in node.elts)


__all__ = ["parse_literal", "parse_literal_list", "parse_text", "parse_byte_pattern"]

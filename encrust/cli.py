#!/usr/bin/env python3
"""
Command line front end for the encrust generator.

Commands:
  encrust literal 'u32(42)'
  encrust vec 'u8(1), u8(2)'
  encrust file-string config/banner.txt [--root DIR]
  encrust file-bytes assets/key.der [--root DIR]
  encrust hashstring '"Find me!"'
  encrust hashstring-ci '"Find me!"'
  encrust hashbytes '[0x01, 2, 3]'
  encrust module TOKEN=literal:'"s3cr3t"' BANNER=file-string:banner.txt --out secrets_gen.py

Each command prints one Python expression (or a whole module for ``module``).
``--out`` writes the result atomically instead.
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Sequence

from . import generator
from .config import Backend
from .errors import EncrustError
from .logger import logger
from .safe_io import atomic_write_text

KINDS = (
    "literal",
    "vec",
    "file-string",
    "file-bytes",
    "hashstring",
    "hashstring-ci",
    "hashbytes",
)


def _producer(kind: str, args: argparse.Namespace) -> Callable[[str], str]:
    backend = args.backend
    prefix = args.prefix
    root = getattr(args, "root", None)
    table: dict[str, Callable[[str], str]] = {
        "literal": lambda src: generator.encrust(src, backend=backend, prefix=prefix),
        "vec": lambda src: generator.encrust_vec(src, backend=backend, prefix=prefix),
        "file-string": lambda p: generator.encrust_file_string(p, root, backend=backend, prefix=prefix),
        "file-bytes": lambda p: generator.encrust_file_bytes(p, root, backend=backend, prefix=prefix),
        "hashstring": lambda src: generator.hashstring(src, prefix=prefix),
        "hashstring-ci": lambda src: generator.hashstring_ci(src, prefix=prefix),
        "hashbytes": lambda src: generator.hashbytes(src, prefix=prefix),
    }
    return table[kind]


def parse_module_spec(spec: str) -> tuple[str, str, str]:
    """Split ``NAME=KIND:ARG`` into its parts."""
    name, sep, rest = spec.partition("=")
    kind, sep2, arg = rest.partition(":")
    if not sep or not sep2 or not name:
        raise ValueError(f"Expected NAME=KIND:ARG, got {spec!r}")
    if kind not in KINDS:
        raise ValueError(f"Unknown kind {kind!r} in {spec!r} (expected one of: {', '.join(KINDS)})")
    return name.strip(), kind, arg


def _emit(text: str, out: str | None) -> None:
    if out:
        atomic_write_text(out, text)
        logger.info("Wrote %s", out)
    else:
        sys.stdout.write(text)


def cmd_single(args: argparse.Namespace) -> int:
    expression = _producer(args.command, args)(args.input)
    _emit(expression + "\n", args.out)
    return 0


def cmd_module(args: argparse.Namespace) -> int:
    entries = []
    for spec in args.specs:
        name, kind, arg = parse_module_spec(spec)
        entries.append((name, _producer(kind, args)(arg)))
    _emit(generator.render_module(entries), args.out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="encrust",
        description="Embed obfuscated literals, files and fingerprints as Python source.",
    )
    parser.add_argument(
        "--backend",
        choices=[b.value for b in Backend],
        default=None,
        help="keystream backend for fresh key material (default: ENCRUST_BACKEND or fast)",
    )
    parser.add_argument(
        "--prefix",
        default=generator.DEFAULT_PREFIX,
        help="qualifier for encrust names in the output (default: %(default)s)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for kind in KINDS:
        sp = sub.add_parser(kind, help=f"embed a {kind.replace('-', ' ')}")
        sp.add_argument("input", help="path" if kind.startswith("file-") else "literal source")
        if kind.startswith("file-"):
            sp.add_argument("--root", default=None, help="base directory for relative paths")
        sp.add_argument("--out", default=None, help="write to this file instead of stdout")
        sp.set_defaults(func=cmd_single)

    mod = sub.add_parser("module", help="render a module of NAME=KIND:ARG embeddings")
    mod.add_argument("specs", nargs="+", metavar="NAME=KIND:ARG")
    mod.add_argument("--root", default=None, help="base directory for relative paths")
    mod.add_argument("--out", default=None, help="write to this file instead of stdout")
    mod.set_defaults(func=cmd_module)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except (EncrustError, ValueError) as exc:
        logger.debug("Generation failed: %s", exc)
        print(f"encrust: error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

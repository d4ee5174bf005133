import copy

import pytest

import encrust
from encrust.cli import build_parser, main, parse_module_spec


def _exposed(expression):
    container = eval(expression, {"encrust": encrust})
    with container.decrust() as guard:
        return copy.deepcopy(guard.value)


def test_literal_command(capsys):
    assert main(["literal", "u32(42)"]) == 0
    out = capsys.readouterr().out
    assert out.endswith("\n")
    assert _exposed(out.strip()) == 42


def test_backend_flag(capsys):
    assert main(["--backend", "xchacha", "literal", '"hi there"']) == 0
    out = capsys.readouterr().out
    assert "XChaChaKey" in out
    assert _exposed(out.strip()) == "hi there"


def test_hashstring_ci_command(capsys):
    assert main(["hashstring-ci", '"Find me!"']) == 0
    hs = eval(capsys.readouterr().out, {"encrust": encrust})
    assert hs == "FIND ME!"


def test_file_bytes_with_root(tmp_path, capsys):
    (tmp_path / "key.der").write_bytes(b"\x30\x82\x01\x0a")
    assert main(["file-bytes", "key.der", "--root", str(tmp_path)]) == 0
    assert _exposed(capsys.readouterr().out.strip()) == bytearray(b"\x30\x82\x01\x0a")


def test_missing_file_reports_error(tmp_path, capsys):
    assert main(["file-string", "missing.txt", "--root", str(tmp_path)]) == 1
    err = capsys.readouterr().err
    assert err.startswith("encrust: error:")
    assert "missing.txt" in err


def test_malformed_literal_reports_position(capsys):
    assert main(["vec", "u8(1), 300"]) == 1
    assert "line 1" in capsys.readouterr().err


def test_module_command_writes_file(tmp_path):
    (tmp_path / "banner.txt").write_text("hello banner", encoding="utf-8")
    out = tmp_path / "gen" / "secrets_gen.py"
    code = main(
        [
            "module",
            'TOKEN=literal:"s3cr3t"',
            "BANNER=file-string:banner.txt",
            "MAGIC=hashbytes:[0xCA, 0xFE]",
            "--root",
            str(tmp_path),
            "--out",
            str(out),
        ]
    )
    assert code == 0
    source = out.read_text(encoding="utf-8")
    assert "s3cr3t" not in source and "hello banner" not in source

    namespace = {}
    exec(compile(source, str(out), "exec"), namespace)
    with namespace["BANNER"].decrust() as guard:
        assert guard.value == "hello banner"
    assert namespace["MAGIC"] == b"\xca\xfe"


def test_module_spec_parsing():
    assert parse_module_spec("NAME=literal:u8(1)") == ("NAME", "literal", "u8(1)")
    assert parse_module_spec("X=hashbytes:[1, 2]") == ("X", "hashbytes", "[1, 2]")
    with pytest.raises(ValueError, match="NAME=KIND:ARG"):
        parse_module_spec("no-separators")
    with pytest.raises(ValueError, match="Unknown kind"):
        parse_module_spec("X=bogus:1")


def test_bad_module_spec_exit_code(capsys):
    assert main(["module", "X=bogus:1"]) == 1
    assert "Unknown kind" in capsys.readouterr().err


def test_unknown_backend_is_rejected_by_argparse():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--backend", "rot13", "literal", "u8(1)"])

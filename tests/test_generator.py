import copy

import pytest

import encrust
import encrust.generator as gen
from encrust import (
    I32, U8, U32, BuildTimeIOError, Encrusted, Hashbytes, Hashstring, MalformedLiteralError,
    ScrambledText, Sensitivity,
)

from conftest import TEST_STRING


def _load(expression):
    return eval(expression, {"encrust": encrust})


def _exposed(expression):
    container = _load(expression)
    assert isinstance(container, Encrusted)
    with container.decrust() as guard:
        return copy.deepcopy(guard.value)


def test_integer_embedding():
    expression = gen.encrust("u32(42)")
    assert expression.startswith("encrust.Encrusted.from_encrusted_data(encrust.U32(")
    assert "U32(42)" not in expression
    assert _exposed(expression) == U32(42)


def test_text_embedding_hides_plaintext():
    expression = gen.encrust(repr(TEST_STRING))
    assert "quick" not in expression
    assert TEST_STRING.encode("utf-8").hex() not in expression
    assert _exposed(expression) == TEST_STRING


def test_array_embedding():
    assert _exposed(gen.encrust("[u8(1), u8(2), u8(3), u8(4)]")) == (U8(1), U8(2), U8(3), U8(4))
    assert _exposed(gen.encrust('("only",)')) == ("only",)


def test_vec_embedding():
    value = _exposed(gen.encrust_vec('i32(-1), i32(2), "three"'))
    assert value == [I32(-1), I32(2), "three"]
    assert isinstance(value, list)


def test_fresh_key_material_per_call():
    assert gen.encrust('"same input"') != gen.encrust('"same input"')


def test_xchacha_backend():
    expression = gen.encrust('"stream cipher"', backend="xchacha")
    assert "XChaChaKey" in expression
    assert _exposed(expression) == "stream cipher"


def test_custom_prefix():
    expression = gen.encrust("u8(1)", prefix="enc.")
    assert expression.startswith("enc.Encrusted.from_encrusted_data(")
    container = eval(expression, {"enc": encrust})
    with container.decrust() as guard:
        assert guard.value == 1


def test_malformed_literal_is_build_fatal():
    with pytest.raises(MalformedLiteralError):
        gen.encrust("42")
    with pytest.raises(MalformedLiteralError):
        gen.encrust_vec("u8(1), u9(2)")


def test_file_string(tmp_path):
    (tmp_path / "banner.txt").write_text("Welcome, operator 😊\n", encoding="utf-8")
    expression = gen.encrust_file_string("banner.txt", root=tmp_path)
    assert "Welcome" not in expression
    assert _exposed(expression) == "Welcome, operator 😊\n"


def test_file_string_keeps_line_endings(tmp_path):
    raw = "first line\r\nsecond ünïcode line\rthird\n".encode("utf-8")
    (tmp_path / "crlf.txt").write_bytes(raw)
    value = _exposed(gen.encrust_file_string("crlf.txt", root=tmp_path))
    assert value == "first line\r\nsecond ünïcode line\rthird\n"
    assert value.encode("utf-8") == raw


def test_file_string_rejects_invalid_utf8(tmp_path):
    (tmp_path / "latin1.txt").write_bytes(b"caf\xe9")
    with pytest.raises(BuildTimeIOError):
        gen.encrust_file_string("latin1.txt", root=tmp_path)


def test_file_bytes(tmp_path):
    payload = bytes(range(256))
    (tmp_path / "blob.bin").write_bytes(payload)
    value = _exposed(gen.encrust_file_bytes("blob.bin", tmp_path))
    assert isinstance(value, bytearray)
    assert bytes(value) == payload


def test_absolute_path_ignores_root(tmp_path):
    target = tmp_path / "abs.bin"
    target.write_bytes(b"absolute")
    value = _exposed(gen.encrust_file_bytes(str(target), root="/nonexistent"))
    assert value == bytearray(b"absolute")


def test_relative_path_uses_project_root(tmp_path, monkeypatch):
    (tmp_path / "root.txt").write_text("from the project root", encoding="utf-8")
    monkeypatch.setattr(gen, "project_root", lambda: tmp_path)
    assert _exposed(gen.encrust_file_string("root.txt")) == "from the project root"


def test_missing_file(tmp_path):
    with pytest.raises(BuildTimeIOError) as exc_info:
        gen.encrust_file_bytes("missing.bin", tmp_path)
    err = exc_info.value
    assert err.path == tmp_path / "missing.bin"
    assert isinstance(err.cause, FileNotFoundError)
    assert "missing.bin" in str(err)
    assert "read to a byte array" in str(err)


def test_invalid_utf8_file(tmp_path):
    (tmp_path / "latin1.txt").write_bytes(b"caf\xe9")
    with pytest.raises(BuildTimeIOError, match="read to a str"):
        gen.encrust_file_string("latin1.txt", tmp_path)


def test_hashstring_embedding():
    expression = gen.hashstring('"Find me!"')
    assert "Find" not in expression
    hs = _load(expression)
    assert isinstance(hs, Hashstring)
    assert hs.sensitivity is Sensitivity.CASE_SENSITIVE
    assert hs == "Find me!"
    assert hs != "fInD Me!"


def test_hashstring_ci_embedding():
    hs = _load(gen.hashstring_ci('"Find me!"'))
    assert hs == "fInD Me!"
    assert hs != "Lose me!"


def test_hashbytes_embedding():
    hb = _load(gen.hashbytes("[0x0, 0b1, 2, 3, 4, 5]"))
    assert isinstance(hb, Hashbytes)
    assert hb == bytes([0, 1, 2, 3, 4, 5])
    assert hb != bytes([0, 1, 2, 3, 4])


def test_render_value():
    scrambled = ScrambledText(b"\x01\x02")
    assert gen.render_value(U8(7)) == "encrust.U8(7)"
    assert gen.render_value(scrambled) == "encrust.ScrambledText(bytes.fromhex('0102'))"
    assert gen.render_value((I32(-1),)) == "(encrust.I32(-1),)"
    assert gen.render_value([bytearray(b"\xff")]) == "[bytearray.fromhex('ff')]"
    with pytest.raises(TypeError):
        gen.render_value(1.5)


def test_render_module(tmp_path):
    source = gen.render_module(
        {
            "TOKEN": gen.encrust('"s3cr3t-t0k3n"'),
            "PORT": gen.encrust("u16(8443)"),
            "NEEDLE": gen.hashstring('"needle"'),
        }
    )
    assert source.startswith("# Generated by encrust.")
    assert "s3cr3t" not in source

    namespace = {}
    exec(compile(source, str(tmp_path / "secrets_gen.py"), "exec"), namespace)
    with namespace["TOKEN"].decrust() as guard:
        assert guard.value == "s3cr3t-t0k3n"
    with namespace["PORT"].decrust() as guard:
        assert guard.value == 8443
    assert namespace["NEEDLE"] == "needle"


def test_render_module_rejects_bad_names():
    with pytest.raises(ValueError, match="Invalid"):
        gen.render_module({"not-an-identifier": "None"})
    with pytest.raises(ValueError, match="Invalid"):
        gen.render_module([("class", "None")])
    with pytest.raises(ValueError, match="Duplicate"):
        gen.render_module([("A", "None"), ("A", "None")])

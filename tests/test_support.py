import os

import pytest

from encrust.config import Backend, project_root
from encrust.safe_io import atomic_write_bytes, atomic_write_text, atomic_writer
from encrust.secure_bytes import is_wiped, secure_memzero


def test_backend_parse():
    assert Backend.parse("XChaCha") is Backend.XCHACHA
    assert Backend.parse(" fast ") is Backend.FAST
    assert Backend.parse(Backend.FAST) is Backend.FAST
    with pytest.raises(ValueError, match="Unknown backend"):
        Backend.parse("aes")


def test_project_root_defaults_to_cwd(tmp_path, monkeypatch):
    import encrust.config as config

    monkeypatch.setattr(config, "PROJECT_ROOT", None)
    monkeypatch.chdir(tmp_path)
    assert project_root() == tmp_path

    monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path / "elsewhere")
    assert project_root() == tmp_path / "elsewhere"


def test_secure_memzero():
    buf = bytearray(os.urandom(64))
    secure_memzero(buf)
    assert is_wiped(buf)
    secure_memzero(bytearray())


def test_atomic_write_creates_parents(tmp_path):
    target = tmp_path / "nested" / "out.py"
    atomic_write_text(target, "import encrust\n")
    assert target.read_text(encoding="utf-8") == "import encrust\n"
    assert [p.name for p in target.parent.iterdir()] == ["out.py"]


def test_atomic_write_refuses_empty(tmp_path):
    with pytest.raises(ValueError):
        atomic_write_bytes(tmp_path / "empty.py", b"")


def test_atomic_writer_keeps_old_file_on_error(tmp_path):
    target = tmp_path / "secrets_gen.py"
    target.write_text("OLD = 1\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        with atomic_writer(target) as fh:
            fh.write(b"NEW = ")
            raise RuntimeError("generation failed halfway")
    assert target.read_text(encoding="utf-8") == "OLD = 1\n"
    assert [p.name for p in tmp_path.iterdir()] == ["secrets_gen.py"]

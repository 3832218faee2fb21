"""
Tests for brambl_core.cli — the brambl-keys command.

Covers:
  - generate / sign / verify through main()
  - Keyfile directory from the command line and from configuration
  - Logging installed from the [logging] config section
  - Import failures reported through the exit code
"""

import logging
from pathlib import Path

import pytest

from brambl_core.cli import EXIT_ERROR, EXIT_INVALID, EXIT_OK, main
from brambl_core.hashing import hash_file, hash_string
from brambl_core.logging_config import _JSONFormatter

PASSWORD = "correct-horse"


@pytest.fixture(autouse=True)
def cli_env(monkeypatch):
    """Cheap scrypt and a password in the environment; root logger restored afterwards."""
    monkeypatch.setenv("BRAMBL_SCRYPT_N", "1024")
    monkeypatch.setenv("BRAMBL_PASSWORD", PASSWORD)
    for name in ("BRAMBL_CIPHER", "BRAMBL_KEYFILE_DIR", "BRAMBL_LOG_LEVEL", "BRAMBL_LOG_FMT"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    yield
    root.handlers[:] = saved[1]
    root.setLevel(saved[0])


def _generate(capsys, *args):
    assert main(["generate", *args]) == EXIT_OK
    public_key, path = capsys.readouterr().out.split()
    return public_key, path


class TestGenerate:

    def test_writes_keyfile(self, tmp_path, capsys):
        public_key, path = _generate(capsys, "--keyfile-dir", str(tmp_path))
        assert Path(path).parent == tmp_path
        assert Path(path).name.endswith(f"-{public_key}.json")

    def test_keyfile_dir_from_config(self, tmp_path, monkeypatch, capsys):
        target = tmp_path / "keys"
        monkeypatch.setenv("BRAMBL_KEYFILE_DIR", str(target))
        _, path = _generate(capsys)
        assert Path(path).parent == target


class TestSignVerify:

    def test_roundtrip(self, tmp_path, capsys):
        public_key, path = _generate(capsys, "--keyfile-dir", str(tmp_path))

        assert main(["sign", path, "hello"]) == EXIT_OK
        signature = capsys.readouterr().out.strip()

        assert main(["verify", public_key, "hello", signature]) == EXIT_OK
        assert capsys.readouterr().out.strip() == "valid"

        assert main(["verify", public_key, "goodbye", signature]) == EXIT_INVALID
        assert capsys.readouterr().out.strip() == "invalid"

    def test_sign_wrong_password(self, tmp_path, monkeypatch, capsys):
        _, path = _generate(capsys, "--keyfile-dir", str(tmp_path))
        monkeypatch.setenv("BRAMBL_PASSWORD", "wrong-horse")
        assert main(["sign", path, "hello"]) == EXIT_ERROR
        assert capsys.readouterr().out == ""

    def test_sign_missing_keyfile(self, tmp_path):
        assert main(["sign", str(tmp_path / "absent.json"), "hello"]) == EXIT_ERROR

    def test_password_env_option(self, tmp_path, monkeypatch, capsys):
        monkeypatch.delenv("BRAMBL_PASSWORD")
        monkeypatch.setenv("KEYSTORE_SECRET", PASSWORD)
        code = main(["--password-env", "KEYSTORE_SECRET", "generate", "--keyfile-dir", str(tmp_path)])
        assert code == EXIT_OK
        _, path = capsys.readouterr().out.split()
        assert main(["--password-env", "KEYSTORE_SECRET", "sign", path, "x"]) == EXIT_OK


class TestHash:

    def test_text(self, capsys):
        assert main(["hash", "abc"]) == EXIT_OK
        assert capsys.readouterr().out.strip() == hash_string("abc")

    def test_file_hex(self, tmp_path, capsys):
        path = tmp_path / "data.bin"
        path.write_bytes(b"\x00\x01\x02")
        assert main(["hash", "--file", str(path), "--encoding", "hex"]) == EXIT_OK
        assert capsys.readouterr().out.strip() == hash_file(path, "hex")

    def test_requires_input(self):
        with pytest.raises(SystemExit):
            main(["hash"])


class TestLoggingFromConfig:

    def test_toml_logging_section(self, tmp_path, capsys):
        cfg = tmp_path / "brambl.toml"
        cfg.write_text('[logging]\nlevel = "DEBUG"\nformat = "json"\n', encoding="utf-8")
        assert main(["--config", str(cfg), "hash", "abc"]) == EXIT_OK
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, _JSONFormatter)

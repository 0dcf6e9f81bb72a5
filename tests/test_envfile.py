"""Tests for line classification, env file round trips and atomic writes."""

import os
import stat

import pytest

from wc_envc.core.crypto import Direction
from wc_envc.core.envfile import (
    Assignment,
    Blank,
    Comment,
    EnvFile,
    LineCodec,
    Malformed,
    atomic_write_text,
)
from wc_envc.core.errors import InputNotFoundError, InvalidEncodingError, UnreadableFileError, WrongPasswordOrCorruptError


SAMPLE = (
    "# Database\n"
    "DB_HOST=localhost\n"
    "\n"
    "DB_PASS= s3cret \r\n"
    "export PATH=/usr/bin\n"
    "  # indented comment\n"
    "URL=https://x.io/?a=1&b=2\r"
    "LAST=tail"
)


# --- Classification ---

class TestClassify:
    @pytest.mark.parametrize("raw", ["", "   ", "\t"])
    def test_blank(self, raw):
        assert LineCodec.classify(raw) == Blank(raw)

    @pytest.mark.parametrize("raw", ["# comment", "   # indented", "#KEY=value"])
    def test_comment(self, raw):
        assert LineCodec.classify(raw) == Comment(raw)

    def test_assignment_splits_on_first_equals(self):
        line = LineCodec.classify("URL=a=b=c")
        assert isinstance(line, Assignment)
        assert (line.key, line.value) == ("URL", "a=b=c")

    def test_empty_value(self):
        line = LineCodec.classify("EMPTY=")
        assert isinstance(line, Assignment)
        assert line.value == ""

    @pytest.mark.parametrize("raw", [
        "export KEY=value",
        "KEY = value",
        " KEY=value",
        "1KEY=value",
        "KEY-NAME=value",
        "=value",
        "just some text",
    ])
    def test_malformed(self, raw):
        assert LineCodec.classify(raw) == Malformed(raw)

    def test_assignment_repr_hides_value(self):
        assert "hunter2" not in repr(Assignment.build("PASSWORD", "hunter2"))


# --- Transform ---

class TestTransform:
    def test_non_assignments_untouched(self, engine, key):
        codec = LineCodec(engine)
        for line in (Blank(""), Comment("# c"), Malformed("export A=b")):
            assert codec.transform(line, Direction.ENCRYPT, key) is line
            assert codec.transform(line, Direction.DECRYPT, key) is line

    def test_key_kept_value_encrypted(self, engine, key):
        codec = LineCodec(engine)
        encrypted = codec.transform(LineCodec.classify("API_KEY=abc"), Direction.ENCRYPT, key)
        assert encrypted.key == "API_KEY"
        assert encrypted.raw == f"API_KEY={encrypted.value}"
        assert engine.decrypt_value(encrypted.value, key) == "abc"

    def test_value_is_trimmed_before_encrypting(self, engine, key):
        codec = LineCodec(engine)
        encrypted = codec.transform(LineCodec.classify("A=  padded  "), Direction.ENCRYPT, key)
        decrypted = codec.transform(encrypted, Direction.DECRYPT, key)
        assert decrypted.raw == "A=padded"

    def test_decrypt_error_names_key(self, engine, key, other_key):
        codec = LineCodec(engine)
        with pytest.raises(InvalidEncodingError, match="DB_HOST"):
            codec.transform(LineCodec.classify("DB_HOST=localhost"), Direction.DECRYPT, key)

        encrypted = codec.transform(LineCodec.classify("TOKEN=t"), Direction.ENCRYPT, key)
        with pytest.raises(WrongPasswordOrCorruptError, match="TOKEN"):
            codec.transform(encrypted, Direction.DECRYPT, other_key)

    def test_transform_file_round_trip(self, engine, key):
        codec = LineCodec(engine)
        original = EnvFile.parse(SAMPLE)
        encrypted = codec.transform_file(original, Direction.ENCRYPT, key)
        decrypted = codec.transform_file(encrypted, Direction.DECRYPT, key)

        assert len(encrypted.lines) == len(original.lines)
        assert encrypted.endings == original.endings
        assert "localhost" not in encrypted.render()
        assert "# Database\n" in encrypted.render()
        assert "export PATH=/usr/bin\n" in encrypted.render()
        # Only the padding around " s3cret " is lost
        assert decrypted.render() == SAMPLE.replace("DB_PASS= s3cret ", "DB_PASS=s3cret")


# --- Parsing and rendering ---

class TestEnvFile:
    def test_terminators_preserved(self):
        env_file = EnvFile.parse(SAMPLE)
        assert env_file.render() == SAMPLE
        assert env_file.endings == ["\n", "\n", "\n", "\r\n", "\n", "\n", "\r", ""]

    def test_trailing_newline_preserved(self):
        assert EnvFile.parse("A=1\n").render() == "A=1\n"
        assert EnvFile.parse("A=1").render() == "A=1"

    def test_empty_text(self):
        env_file = EnvFile.parse("")
        assert env_file.lines == []
        assert env_file.render() == ""

    def test_variable_count(self):
        assert EnvFile.parse(SAMPLE).variable_count == 4

    def test_with_lines_requires_same_count(self):
        env_file = EnvFile.parse("A=1\nB=2\n")
        with pytest.raises(ValueError):
            env_file.with_lines(env_file.lines[:1])

    def test_read_missing(self, tmp_path):
        with pytest.raises(InputNotFoundError, match="File not found"):
            EnvFile.read(tmp_path / ".env")

    def test_read_directory(self, tmp_path):
        with pytest.raises(InputNotFoundError):
            EnvFile.read(tmp_path)

    def test_read_binary(self, tmp_path):
        path = tmp_path / ".env"
        path.write_bytes(b"A=\xff\xfe\n")
        with pytest.raises(UnreadableFileError):
            EnvFile.read(path)

    def test_read_keeps_crlf(self, tmp_path):
        path = tmp_path / ".env"
        path.write_bytes(b"A=1\r\nB=2\r\n")
        env_file = EnvFile.read(path)
        assert env_file.endings == ["\r\n", "\r\n"]
        out = tmp_path / "copy"
        env_file.write_atomic(out)
        assert out.read_bytes() == b"A=1\r\nB=2\r\n"

    def test_byte_order_mark_set_aside(self):
        env_file = EnvFile.parse("\ufeffDB_PASSWORD=secret_123\nDB_HOST=localhost\n")
        assert env_file.bom is True
        assert env_file.lines[0] == Assignment("DB_PASSWORD", "secret_123", "DB_PASSWORD=secret_123")
        assert env_file.variable_count == 2
        assert env_file.render() == "\ufeffDB_PASSWORD=secret_123\nDB_HOST=localhost\n"

    def test_repr_hides_content(self, tmp_path):
        env_file = EnvFile.parse("SECRET=value", tmp_path / ".env")
        assert "value" not in repr(env_file)


# --- Atomic writes ---

class TestAtomicWrite:
    def test_creates_file(self, tmp_path):
        target = tmp_path / "sub" / "out.env"
        atomic_write_text(target, "A=1\n")
        assert target.read_text() == "A=1\n"
        assert os.listdir(tmp_path / "sub") == ["out.env"]

    def test_keeps_existing_permissions(self, tmp_path):
        target = tmp_path / "out.env"
        target.write_text("old")
        os.chmod(target, 0o640)
        atomic_write_text(target, "new")
        assert target.read_text() == "new"
        assert stat.S_IMODE(target.stat().st_mode) == 0o640

    @pytest.mark.parametrize("exc", [KeyboardInterrupt, OSError])
    def test_interrupted_write_leaves_destination(self, tmp_path, monkeypatch, exc):
        target = tmp_path / "out.env"
        target.write_text("original")

        def failing_replace(src, dst):
            raise exc()

        monkeypatch.setattr(os, "replace", failing_replace)
        with pytest.raises(exc):
            atomic_write_text(target, "replacement")

        assert target.read_text() == "original"
        assert os.listdir(tmp_path) == ["out.env"]

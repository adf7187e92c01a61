"""Tests for file_handler module: byte-preserving read/write and mtimes."""

from pathlib import Path

from vault_sync.file_handler import (
    decode_text,
    get_mtime_ms,
    read_file,
    set_mtime_ms,
    write_file,
)

# =============================================================================
# decode_text / read_file
# =============================================================================


class TestDecodeText:
    """Tests for decode_text(raw)."""

    def test_utf8(self):
        raw = "# Überschrift\n\nNotiz über Café.\n".encode("utf-8")
        content, encoding = decode_text(raw)
        assert content == "# Überschrift\n\nNotiz über Café.\n"
        assert encoding.replace("-", "_").lower() in ("utf_8", "utf8")

    def test_ascii_reported_as_utf8(self):
        content, encoding = decode_text(b"just ascii text in a note\n")
        assert content == "just ascii text in a note\n"
        assert encoding in ("utf-8", "utf_8")

    def test_empty(self):
        assert decode_text(b"") == ("", "utf-8")


class TestReadFile:
    """Tests for read_file(path)."""

    def test_returns_stored_bytes_and_text(self, tmp_path: Path):
        f = tmp_path / "note.md"
        raw = "Grüße aus dem Café, das ist ein längerer Satz.\n".encode("utf-8")
        f.write_bytes(raw)
        data, text = read_file(f)
        assert data == raw
        assert text == raw.decode("utf-8")

    def test_binary_bytes_untouched(self, tmp_path: Path):
        f = tmp_path / "img.png"
        raw = b"\x89PNG\r\n\x1a\n" + bytes(range(256))
        f.write_bytes(raw)
        data, _ = read_file(f)
        assert data == raw


# =============================================================================
# write_file
# =============================================================================


class TestWriteFile:
    """Tests for write_file(path, content, encoding, mtime_ms)."""

    def test_creates_parents(self, tmp_path: Path):
        f = tmp_path / "a" / "b" / "note.md"
        written = write_file(f, "héllo")
        assert f.read_text(encoding="utf-8") == "héllo"
        assert written == len("héllo".encode("utf-8"))

    def test_bytes_written_verbatim(self, tmp_path: Path):
        f = tmp_path / "latin.md"
        raw = "naïve".encode("latin-1")
        assert write_file(f, raw) == len(raw)
        assert f.read_bytes() == raw

    def test_sets_mtime(self, tmp_path: Path):
        f = tmp_path / "note.md"
        write_file(f, "x", mtime_ms=1_600_000_000_123)
        assert get_mtime_ms(f) == 1_600_000_000_123

    def test_overwrites(self, tmp_path: Path):
        f = tmp_path / "note.md"
        write_file(f, "first version")
        write_file(f, "v2")
        assert f.read_text() == "v2"


class TestMtime:
    """Tests for get_mtime_ms / set_mtime_ms."""

    def test_round_trip(self, tmp_path: Path):
        f = tmp_path / "note.md"
        f.write_text("x")
        set_mtime_ms(f, 1_234_567_890_000)
        assert get_mtime_ms(f) == 1_234_567_890_000

"""Note file I/O for folder-backed vaults and remotes.

Files travel as raw bytes so attachments (images, PDFs) and notes in
legacy encodings are copied untouched. A decoded text view, produced with
charset-normalizer, is kept alongside for diffs and merges. Timestamps are
handled in integer milliseconds, the unit the sync records use.
"""

import os
from pathlib import Path

from charset_normalizer import from_bytes

# -- content --------------------------------------------------------------


def decode_text(raw: bytes) -> tuple[str, str]:
    """Decode *raw*, guessing its encoding.

    Returns ``(text, encoding)``. Empty input and undetectable bytes are
    treated as UTF-8 (with replacement characters); pure ASCII is reported
    as UTF-8 too.
    """
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")
    encoding = result.encoding
    if encoding == "ascii":
        encoding = "utf-8"
    return (str(result), encoding)


def read_file(path: Path) -> tuple[bytes, str]:
    """Return the stored bytes of *path* and their decoded text view."""
    raw = path.read_bytes()
    text, _ = decode_text(raw)
    return (raw, text)


def write_file(
    path: Path,
    content: str | bytes,
    encoding: str = "utf-8",
    mtime_ms: int | None = None,
) -> int:
    """Write *content* to *path*, creating missing folders on the way.

    Bytes are written verbatim; text is encoded with *encoding*. With
    *mtime_ms* the file is stamped with that modification time, so a
    transferred note keeps the timestamp of its source. Returns the number
    of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content if isinstance(content, bytes) else content.encode(encoding)
    path.write_bytes(data)
    if mtime_ms is not None:
        set_mtime_ms(path, mtime_ms)
    return len(data)


# -- timestamps -----------------------------------------------------------


def get_mtime_ms(path: Path) -> int:
    """Return the modification time of *path* in milliseconds since epoch."""
    return path.stat().st_mtime_ns // 1_000_000


def set_mtime_ms(path: Path, mtime_ms: int) -> None:
    """Set both atime and mtime of *path* to *mtime_ms*."""
    ns = mtime_ms * 1_000_000
    os.utime(path, ns=(ns, ns))

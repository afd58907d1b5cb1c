"""In-memory zip construction for escript payloads.

Design goals:
- Byte-reproducible output: fixed member timestamps and permissions, entries
  written in the order given (callers pass them path-sorted).
- Paths stored exactly as given; no further normalization happens here.
- Directory members stored uncompressed with directory attributes so that
  readers which create directories on first sight see parents first.
"""

from __future__ import annotations

import hashlib
import io
import stat
import zipfile
from collections.abc import Iterable

from escript_builder.errors import FatalArchiveError
from escript_builder.logging import get_logger
from escript_builder.package.entries import ArchiveEntry

log = get_logger(__name__)

ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
FILE_MODE = stat.S_IFREG | 0o644
DIR_MODE = stat.S_IFDIR | 0o755
MSDOS_DIR_ATTR = 0x10


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _zipinfo(entry: ArchiveEntry) -> zipfile.ZipInfo:
    zi = zipfile.ZipInfo(filename=entry.path, date_time=ZIP_EPOCH)
    zi.create_system = 3  # unix, so external_attr carries the mode bits
    if entry.is_dir:
        zi.external_attr = (DIR_MODE << 16) | MSDOS_DIR_ATTR
        zi.compress_type = zipfile.ZIP_STORED
    else:
        zi.external_attr = FILE_MODE << 16
        zi.compress_type = zipfile.ZIP_DEFLATED
    return zi


def _check_path(path: str, seen: set[str]) -> None:
    if not path or path == "/":
        raise FatalArchiveError("Archive entry with empty path")
    if path.startswith("/") or ".." in path.split("/"):
        raise FatalArchiveError(f"Unsafe archive entry path: {path}")
    if path in seen:
        raise FatalArchiveError(f"Duplicate archive entry: {path}")
    seen.add(path)


def build_archive(entries: Iterable[ArchiveEntry]) -> bytes:
    """Pack *entries* into a zip and return its bytes.

    Raises
    ------
    FatalArchiveError
        If an entry path is empty, absolute, escapes the root, appears twice,
        or the zip writer rejects it.
    """
    buf = io.BytesIO()
    seen: set[str] = set()
    try:
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as z:
            for entry in entries:
                _check_path(entry.path, seen)
                if entry.is_dir and entry.content:
                    raise FatalArchiveError(f"Directory entry with content: {entry.path}")
                z.writestr(_zipinfo(entry), entry.content)
    except (ValueError, OverflowError, zipfile.LargeZipFile) as exc:
        raise FatalArchiveError(f"Archive construction failed: {exc}") from exc

    data = buf.getvalue()
    log.info("packaged %d entries (%d bytes, sha256 %s)", len(seen), len(data), sha256_bytes(data))
    return data

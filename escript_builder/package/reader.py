"""Read an emitted escript back: preamble lines plus archive members.

Guards against members that would not survive extraction:
- Absolute paths and ``..`` traversal
- Oversized members (basic cap, applied by ``read_archive_entries`` only)
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path, PurePosixPath

from escript_builder.errors import FatalArchiveError, FatalIOError

PREAMBLE_LINES = 3
MAX_MEMBER_BYTES = 128 * 1024 * 1024  # 128 MiB per member


def split_script(data: bytes) -> tuple[list[str], bytes]:
    """Split *data* into its preamble lines and the archive bytes."""
    lines: list[str] = []
    offset = 0
    for _ in range(PREAMBLE_LINES):
        end = data.find(b"\n", offset)
        if end < 0:
            raise FatalArchiveError("Script preamble is truncated")
        lines.append(data[offset:end].decode("utf-8"))
        offset = end + 1
    if not lines[0].startswith("#!"):
        raise FatalArchiveError(f"Missing shebang line: {lines[0]!r}")
    return lines, data[offset:]


def read_archive_entries(archive: bytes) -> dict[str, bytes]:
    """Return ``{member path: content}`` for every member, directories included."""
    out: dict[str, bytes] = {}
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as z:
            for m in z.infolist():
                fn = PurePosixPath(m.filename)
                if fn.is_absolute() or ".." in fn.parts:
                    raise FatalArchiveError(f"Unsafe member path: {m.filename}")
                if m.file_size > MAX_MEMBER_BYTES:
                    raise FatalArchiveError(f"Member too large: {m.filename} ({m.file_size} bytes)")
                out[m.filename] = b"" if m.is_dir() else z.read(m)
    except zipfile.BadZipFile as exc:
        raise FatalArchiveError(f"Embedded archive is unreadable: {exc}") from exc
    return out


def _script_archive(script: Path) -> bytes:
    try:
        data = script.read_bytes()
    except OSError as exc:
        raise FatalIOError(f"Cannot read {script}: {exc}") from exc
    return split_script(data)[1]


def read_script_entries(script: Path) -> dict[str, bytes]:
    return read_archive_entries(_script_archive(script))


def read_script_names(script: Path) -> list[str]:
    """Return member names from the central directory without decompressing anything."""
    archive = _script_archive(script)
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as z:
            return z.namelist()
    except zipfile.BadZipFile as exc:
        raise FatalArchiveError(f"Embedded archive is unreadable: {exc}") from exc

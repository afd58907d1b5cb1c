"""Archive entry collection.

Turns the files under a build-output directory into the flat, deduplicated
and path-sorted set of archive members that the zip builder consumes:

- one file entry per matched file, rooted at ``<app>/<base_dir>/<name>``
- one directory entry (trailing ``/``, empty content) per ancestor directory

Sorting by path keeps parents ahead of children and makes the resulting
archive byte-reproducible for identical inputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from escript_builder.errors import FatalIOError
from escript_builder.logging import get_logger

log = get_logger(__name__)

DIR_MARKER = "/"


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    content: bytes = b""

    @property
    def is_dir(self) -> bool:
        return self.path.endswith(DIR_MARKER)


def enumerate_paths(root_dir: Path, pattern: str) -> Iterator[str]:
    """Yield posix relative paths of the regular files under *root_dir* matching *pattern*."""
    for p in root_dir.glob(pattern):
        if p.is_file():
            yield p.relative_to(root_dir).as_posix()


def ancestors(path: str) -> list[str]:
    """Return the prefix-joins of *path*'s segments, shallowest first.

    >>> ancestors("foo/bar/baz")
    ['foo', 'foo/bar', 'foo/bar/baz']
    """
    out: list[str] = []
    for segment in (s for s in path.split("/") if s):
        out.append(f"{out[-1]}/{segment}" if out else segment)
    return out


def dir_entries(archive_path: str) -> list[ArchiveEntry]:
    parent = PurePosixPath(archive_path).parent.as_posix()
    if parent == ".":
        return []
    return [ArchiveEntry(d + DIR_MARKER) for d in ancestors(parent)]


def dedup_sorted(entries: Iterable[ArchiveEntry]) -> list[ArchiveEntry]:
    """First entry seen for a path wins; result is sorted by path."""
    by_path: dict[str, ArchiveEntry] = {}
    for e in entries:
        by_path.setdefault(e.path, e)
    return [by_path[k] for k in sorted(by_path)]


def collect_entries(
    app: str,
    base_dir: str | Path,
    pattern: str,
    *,
    root: Path | None = None,
) -> list[ArchiveEntry]:
    """Read every file matching *pattern* under *base_dir* into archive entries.

    *base_dir* is relative to *root* (default: the current directory) and is
    kept verbatim in the archive path, so ``ebin/a.beam`` for app ``enc``
    becomes ``enc/ebin/a.beam``. Any read failure aborts the whole collection.
    """
    root = Path.cwd() if root is None else root
    base = PurePosixPath(Path(base_dir).as_posix())
    source_dir = root / Path(base_dir)

    collected: list[ArchiveEntry] = []
    for name in enumerate_paths(source_dir, pattern):
        try:
            content = (source_dir / name).read_bytes()
        except OSError as exc:
            raise FatalIOError(f"Cannot read {source_dir / name}: {exc}") from exc
        arcname = (PurePosixPath(app) / base / name).as_posix()
        log.debug("collected %s (%d bytes)", arcname, len(content))
        collected.append(ArchiveEntry(arcname, content))
        collected.extend(dir_entries(arcname))

    return dedup_sorted(collected)

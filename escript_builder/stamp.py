"""Build stamps baked into the compiled modules: build time and VCS revision."""

from __future__ import annotations

import subprocess
from datetime import UTC, datetime
from pathlib import Path

NO_VCS_INFO = "No VCS info available."

# (id, marker directory, describe command), first match wins
VCS_PROBES: list[tuple[str, str, list[str]]] = [
    ("hg", ".hg", ["hg", "identify", "-i"]),
    ("git", ".git", ["git", "describe", "--always", "--tags"]),
]


def build_time(now: datetime | None = None) -> str:
    """Return *now* (default: current UTC time) as ``YYYYMMDD_HHMMSS``."""
    now = datetime.now(UTC) if now is None else now.astimezone(UTC)
    return now.strftime("%Y%m%d_%H%M%S")


def vcs_info(root: Path, probes: list[tuple[str, str, list[str]]] | None = None) -> str:
    for vcs_id, marker, cmd in VCS_PROBES if probes is None else probes:
        if not (root / marker).is_dir():
            continue
        try:
            proc = subprocess.run(cmd, cwd=root, capture_output=True, text=True)
        except FileNotFoundError:
            return f"{vcs_id} {cmd[0]}: command not found"
        return f"{vcs_id} {(proc.stdout or proc.stderr).strip()}"
    return NO_VCS_INFO

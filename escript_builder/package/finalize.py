"""Platform finalization of an emitted script.

POSIX hosts get execute bits OR-ed into the existing mode; Windows hosts get a
``<name>.cmd`` wrapper, since they resolve runnable commands by extension.
The variant is chosen once, from the configured platform string.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from escript_builder.errors import FatalIOError
from escript_builder.logging import get_logger

log = get_logger(__name__)

EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH

WINDOWS_WRAPPER = (
    "@echo off\r\n"
    "setlocal\r\n"
    "set script=%~f0\r\n"
    'escript.exe "%script:.cmd=%" %*\r\n'
)


class Finalizer(Protocol):
    def finalize(self, script: Path) -> list[Path]: ...


@dataclass(frozen=True)
class PosixPermissionFinalizer:
    exec_bits: int = EXEC_BITS

    def finalize(self, script: Path) -> list[Path]:
        try:
            mode = stat.S_IMODE(os.stat(script).st_mode)
            os.chmod(script, mode | self.exec_bits)
        except OSError as exc:
            raise FatalIOError(f"Cannot make {script} executable: {exc}") from exc
        log.info("set mode %o on %s", mode | self.exec_bits, script)
        return [script]


@dataclass(frozen=True)
class WindowsWrapperFinalizer:
    body: str = WINDOWS_WRAPPER

    def finalize(self, script: Path) -> list[Path]:
        wrapper = script.with_name(f"{script.name}.cmd")
        try:
            # newline="" keeps the CRLF endings exactly as written
            with open(wrapper, "w", encoding="ascii", newline="") as f:
                f.write(self.body)
        except OSError as exc:
            raise FatalIOError(f"Cannot write {wrapper}: {exc}") from exc
        log.info("wrote wrapper %s", wrapper)
        return [script, wrapper]


def is_windows(platform: str) -> bool:
    return platform in {"win32", "nt"}


def select_finalizer(platform: str, exec_bits: int = EXEC_BITS) -> Finalizer:
    if is_windows(platform):
        return WindowsWrapperFinalizer()
    return PosixPermissionFinalizer(exec_bits=exec_bits)

"""Escript emission: preamble lines followed by the raw zip bytes."""

from __future__ import annotations

from pathlib import Path

from escript_builder.errors import FatalIOError
from escript_builder.logging import get_logger

log = get_logger(__name__)

DEFAULT_INTERPRETER = "escript"


def default_emu_args(app: str) -> str:
    # Code path inside the archive is <script name>/<app>/ebin.
    return f"-pa {app}/{app}/ebin -noshell -noinput"


def render_preamble(app: str, interpreter: str = DEFAULT_INTERPRETER, emu_args: str | None = None) -> bytes:
    """Return the shebang, comment and emulator-argument lines."""
    args = default_emu_args(app) if emu_args is None else emu_args
    return f"#!/usr/bin/env {interpreter}\n%%\n%%! {args}\n".encode()


def emit_script(
    archive: bytes,
    output_path: Path,
    *,
    app: str | None = None,
    interpreter: str = DEFAULT_INTERPRETER,
    emu_args: str | None = None,
) -> Path:
    """Write the self-executing script to *output_path*, replacing any existing file.

    *app* defaults to the output file name.
    """
    preamble = render_preamble(app or output_path.name, interpreter, emu_args)
    try:
        output_path.write_bytes(preamble + archive)
    except OSError as exc:
        raise FatalIOError(f"Cannot write {output_path}: {exc}") from exc
    log.info("wrote script %s (%d bytes)", output_path, len(preamble) + len(archive))
    return output_path

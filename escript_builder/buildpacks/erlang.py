"""Erlang buildpack: select sources, clean stale beams, drive the compiler.

The compiler itself is a collaborator behind the ``Compiler`` protocol.
``ErlcCompiler`` shells out to ``erlc``; tests substitute a fake that writes
beam files directly.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from escript_builder.errors import FatalCompileError, FatalIOError
from escript_builder.logging import get_logger

log = get_logger(__name__)

ERLC = os.environ.get("ERLC", "erlc")
ERL = os.environ.get("ERL", "erl")

_OTP_RELEASE_EVAL = 'io:format("~s", [erlang:system_info(otp_release)]), halt().'


@dataclass
class CompileOptions:
    outdir: Path
    include_dirs: list[Path] = field(default_factory=list)
    debug_info: bool = False
    defines: dict[str, str] = field(default_factory=dict)


@dataclass
class CompileResult:
    ok: bool
    beams: list[Path]
    output: str = ""


class Compiler(Protocol):
    def compile(self, sources: list[Path], options: CompileOptions) -> CompileResult: ...

    def otp_release(self) -> str: ...


def _define_flag(name: str, value: str) -> str:
    # erlc reads the value as an Erlang term, so string values are quoted
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'-D{name}="{escaped}"'


@dataclass
class ErlcCompiler:
    executable: str = ERLC
    runtime: str = ERL

    def argv(self, sources: list[Path], options: CompileOptions) -> list[str]:
        cmd = [self.executable, "-o", str(options.outdir)]
        for inc in options.include_dirs:
            cmd += ["-I", str(inc)]
        if options.debug_info:
            cmd.append("+debug_info")
        cmd += [_define_flag(k, v) for k, v in options.defines.items()]
        cmd += [str(s) for s in sources]
        return cmd

    def compile(self, sources: list[Path], options: CompileOptions) -> CompileResult:
        cmd = self.argv(sources, options)
        log.debug("running %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise FatalCompileError(f"Compiler not found: {self.executable}") from exc
        beams = [options.outdir / f"{s.stem}.beam" for s in sources]
        return CompileResult(ok=proc.returncode == 0, beams=beams, output=proc.stdout + proc.stderr)

    def otp_release(self) -> str:
        cmd = [self.runtime, "-noshell", "-eval", _OTP_RELEASE_EVAL]
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise FatalCompileError(f"Erlang runtime not found: {self.runtime}") from exc
        if proc.returncode != 0:
            raise FatalCompileError("Cannot determine OTP release", output=proc.stderr)
        return proc.stdout.strip()


def select_sources(src_dir: Path) -> list[Path]:
    """Return ``*.erl`` under *src_dir* whose name starts with a letter.

    The letter check drops resource-fork files such as ``._foo.erl``.
    """
    return sorted(p for p in src_dir.glob("*.erl") if p.name[:1].isalpha())


def clean_beams(ebin: Path, force: bool, stamp_module: str | None = None) -> list[Path]:
    """Delete all beams when *force*, else only the stamp module's beam."""
    targets = sorted(ebin.glob("*.beam")) if force else []
    if not force and stamp_module:
        targets = [p for p in [ebin / f"{stamp_module}.beam"] if p.exists()]
    for p in targets:
        try:
            p.unlink()
        except OSError as exc:
            raise FatalIOError(f"Cannot remove {p}: {exc}") from exc
    if targets:
        log.info("removed %d beam(s) from %s", len(targets), ebin)
    return targets


def stale_sources(sources: list[Path], ebin: Path) -> list[Path]:
    stale = []
    for src in sources:
        beam = ebin / f"{src.stem}.beam"
        if not beam.exists() or beam.stat().st_mtime < src.stat().st_mtime:
            stale.append(src)
    return stale


def compile_sources(
    compiler: Compiler,
    sources: list[Path],
    options: CompileOptions,
) -> CompileResult:
    """Compile the stale subset of *sources*; raise on compiler failure."""
    options.outdir.mkdir(parents=True, exist_ok=True)
    todo = stale_sources(sources, options.outdir)
    if not todo:
        log.info("%d source(s) up to date", len(sources))
        return CompileResult(ok=True, beams=[])

    result = compiler.compile(todo, options)
    if not result.ok:
        raise FatalCompileError(f"Failed to compile {len(todo)} source file(s)", output=result.output)
    log.info("compiled %d module(s) into %s", len(result.beams), options.outdir)
    return result

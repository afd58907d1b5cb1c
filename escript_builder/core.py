"""Bootstrap orchestration: clean → compile → validate .app → package → finalize."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from escript_builder.buildpacks.erlang import (
    CompileOptions,
    CompileResult,
    Compiler,
    ErlcCompiler,
    clean_beams,
    compile_sources,
    select_sources,
)
from escript_builder.errors import FatalArchiveError
from escript_builder.logging import get_logger, set_verbose
from escript_builder.package.entries import ArchiveEntry, collect_entries
from escript_builder.package.finalize import EXEC_BITS, select_finalizer
from escript_builder.package.reader import read_script_names
from escript_builder.package.script import DEFAULT_INTERPRETER, emit_script
from escript_builder.package.zip import build_archive, sha256_bytes
from escript_builder.stamp import build_time, vcs_info
from escript_builder.types import BuildReport
from escript_builder.validator import check_app_modules, load_app_resource

log = get_logger(__name__)


@dataclass
class BootstrapFlags:
    force: bool = False
    debug: bool = False
    passthrough: list[str] = field(default_factory=list)


def parse_flags(args: list[str]) -> BootstrapFlags:
    """Recognize ``force=1`` and ``debug``; ``debug`` is not forwarded downstream."""
    return BootstrapFlags(
        force="force=1" in args,
        debug="debug" in args,
        passthrough=[a for a in args if a != "debug"],
    )


def parse_build_vars(args: list[str]) -> dict[str, str]:
    """Collect ``key=value`` tokens; anything else is ignored."""
    out: dict[str, str] = {}
    for a in args:
        if "=" in a:
            k, v = a.split("=", 1)
            out[k] = v
    return out


@dataclass
class BuildContext:
    root: Path
    app: str
    src_dir: str = "src"
    include_dir: str = "include"
    ebin_dir: str = "ebin"
    pattern: str = "**/*"
    force: bool = False
    debug_info: bool = False
    stamp_module: str | None = None
    interpreter: str = DEFAULT_INTERPRETER
    emu_args: str | None = None
    exec_bits: int = EXEC_BITS
    platform: str = sys.platform
    extra_args: list[str] = field(default_factory=list)

    @classmethod
    def from_args(cls, root: Path, app: str | None, args: list[str], **overrides) -> BuildContext:
        flags = parse_flags(args)
        return cls(
            root=root,
            app=app or root.resolve().name,
            force=flags.force,
            debug_info=flags.debug,
            extra_args=flags.passthrough,
            **overrides,
        )

    @property
    def ebin(self) -> Path:
        return self.root / self.ebin_dir

    @property
    def script_path(self) -> Path:
        return self.root / self.app


def compile_app(ctx: BuildContext, compiler: Compiler, stamps: dict[str, str]) -> CompileResult:
    """Clean, then compile the stale sources under ``src/`` into ``ebin/`` with *stamps* defined."""
    clean_beams(ctx.ebin, ctx.force, ctx.stamp_module)
    options = CompileOptions(
        outdir=ctx.ebin,
        include_dirs=[ctx.root / ctx.include_dir],
        debug_info=ctx.debug_info,
        defines=stamps,
    )
    return compile_sources(compiler, select_sources(ctx.root / ctx.src_dir), options)


def package(ctx: BuildContext) -> tuple[Path, list[ArchiveEntry], bytes]:
    """Collect ``ebin/`` into an archive and write the escript.

    Returns the script path, the packaged entries and the archive bytes.
    """
    entries = collect_entries(ctx.app, ctx.ebin_dir, ctx.pattern, root=ctx.root)
    archive = build_archive(entries)
    script = emit_script(
        archive,
        ctx.script_path,
        app=ctx.app,
        interpreter=ctx.interpreter,
        emu_args=ctx.emu_args,
    )
    # The script must list every entry before we call it done
    if read_script_names(script) != [e.path for e in entries]:
        raise FatalArchiveError(f"{script} does not contain the collected entries")
    return script, entries, archive


def build_pipeline(
    ctx: BuildContext,
    compiler: Compiler | None = None,
    vcs: Callable[[Path], str] = vcs_info,
) -> BuildReport:
    compiler = compiler or ErlcCompiler()
    finalizer = select_finalizer(ctx.platform, ctx.exec_bits)
    build_vars = parse_build_vars(ctx.extra_args)
    set_verbose(build_vars.get("verbose", "0") not in {"", "0"})

    stamps = {
        "BUILD_TIME": build_time(),
        "VCS_INFO": vcs(ctx.root),
        "OTP_INFO": compiler.otp_release(),
    }
    log.debug("build stamps %s", stamps)

    result = compile_app(ctx, compiler, stamps)

    resource = load_app_resource(ctx.ebin / f"{ctx.app}.app", app=ctx.app)
    check_app_modules(resource, ctx.ebin)

    script, entries, archive = package(ctx)
    finalized = finalizer.finalize(script)

    dirs = sum(1 for e in entries if e.is_dir)
    return BuildReport(
        app=ctx.app,
        vsn=resource.vsn,
        script=script,
        sha256=sha256_bytes(archive),
        files=len(entries) - dirs,
        directories=dirs,
        compiled=[b.stem for b in result.beams],
        build_time=stamps["BUILD_TIME"],
        vcs_info=stamps["VCS_INFO"],
        otp_info=stamps["OTP_INFO"],
        finalized=finalized,
        extra_args=ctx.extra_args,
    )

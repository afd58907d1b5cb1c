from __future__ import annotations

import os
import sys
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from escript_builder.buildpacks.erlang import (
    CompileOptions,
    CompileResult,
    ErlcCompiler,
    clean_beams,
    compile_sources,
    select_sources,
    stale_sources,
)
from escript_builder.errors import FatalCompileError
from escript_builder.stamp import NO_VCS_INFO, build_time, vcs_info


class RecordingCompiler:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.calls: list[list[Path]] = []

    def compile(self, sources: list[Path], options: CompileOptions) -> CompileResult:
        self.calls.append(list(sources))
        beams = []
        for s in sources:
            beam = options.outdir / f"{s.stem}.beam"
            beam.write_bytes(b"FOR1")
            beams.append(beam)
        return CompileResult(ok=self.ok, beams=beams, output="" if self.ok else "bad.erl:3: syntax error")

    def otp_release(self) -> str:
        return "26"


def _touch(p: Path, mtime: float | None = None) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(b"")
    if mtime is not None:
        os.utime(p, (mtime, mtime))
    return p


def test_select_sources_skips_resource_forks(tmp_path: Path) -> None:
    for name in ("b.erl", "a.erl", "._a.erl", "_x.erl", "1x.erl", "notes.txt"):
        _touch(tmp_path / name)

    assert [p.name for p in select_sources(tmp_path)] == ["a.erl", "b.erl"]


def test_clean_beams(tmp_path: Path) -> None:
    for name in ("a.beam", "b_core.beam", "a.app"):
        _touch(tmp_path / name)

    assert clean_beams(tmp_path, force=False) == []
    assert [p.name for p in clean_beams(tmp_path, force=False, stamp_module="b_core")] == ["b_core.beam"]
    assert (tmp_path / "a.beam").exists()

    _touch(tmp_path / "b_core.beam")
    removed = clean_beams(tmp_path, force=True)
    assert sorted(p.name for p in removed) == ["a.beam", "b_core.beam"]
    assert (tmp_path / "a.app").exists()


def test_stale_sources(tmp_path: Path) -> None:
    src, ebin = tmp_path / "src", tmp_path / "ebin"
    fresh = _touch(src / "fresh.erl", 1_000)
    old = _touch(src / "old.erl", 2_000)
    missing = _touch(src / "missing.erl", 1_000)
    _touch(ebin / "fresh.beam", 1_500)
    _touch(ebin / "old.beam", 1_500)

    assert stale_sources([fresh, old, missing], ebin) == [old, missing]


def test_compile_sources_up_to_date_skips_compiler(tmp_path: Path) -> None:
    src = _touch(tmp_path / "src" / "a.erl", 1_000)
    _touch(tmp_path / "ebin" / "a.beam", 2_000)
    compiler = RecordingCompiler()

    result = compile_sources(compiler, [src], CompileOptions(outdir=tmp_path / "ebin"))

    assert result.ok and result.beams == []
    assert compiler.calls == []


def test_compile_sources_failure_is_fatal(tmp_path: Path) -> None:
    src = _touch(tmp_path / "src" / "bad.erl")

    with pytest.raises(FatalCompileError) as info:
        compile_sources(RecordingCompiler(ok=False), [src], CompileOptions(outdir=tmp_path / "ebin"))
    assert "syntax error" in info.value.output


def test_erlc_argv() -> None:
    opts = CompileOptions(
        outdir=Path("ebin"),
        include_dirs=[Path("include")],
        debug_info=True,
        defines={"BUILD_TIME": "20260101_000000", "VCS_INFO": 'git "v1"'},
    )
    argv = ErlcCompiler(executable="erlc").argv([Path("src/a.erl")], opts)

    assert argv == [
        "erlc",
        "-o",
        "ebin",
        "-I",
        "include",
        "+debug_info",
        '-DBUILD_TIME="20260101_000000"',
        '-DVCS_INFO="git \\"v1\\""',
        str(Path("src/a.erl")),
    ]


def test_erlc_missing_executable(tmp_path: Path) -> None:
    compiler = ErlcCompiler(executable=str(tmp_path / "no-such-erlc"), runtime=str(tmp_path / "no-erl"))
    with pytest.raises(FatalCompileError):
        compiler.compile([tmp_path / "a.erl"], CompileOptions(outdir=tmp_path))
    with pytest.raises(FatalCompileError):
        compiler.otp_release()


def test_build_time_format() -> None:
    assert build_time(datetime(2026, 3, 4, 5, 6, 7, tzinfo=UTC)) == "20260304_050607"
    shifted = datetime(2026, 3, 4, 7, 6, 7, tzinfo=timezone(timedelta(hours=2)))
    assert build_time(shifted) == "20260304_050607"
    assert len(build_time()) == 15


def test_vcs_info(tmp_path: Path) -> None:
    assert vcs_info(tmp_path) == NO_VCS_INFO

    (tmp_path / ".git").mkdir()
    probes = [
        ("hg", ".hg", [sys.executable, "-c", "print('hg-rev')"]),
        ("git", ".git", [sys.executable, "-c", "print('v1.2-3-gabc\\n')"]),
    ]
    assert vcs_info(tmp_path, probes=probes) == "git v1.2-3-gabc"

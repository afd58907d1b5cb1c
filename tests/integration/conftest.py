from __future__ import annotations

from pathlib import Path

import pytest

from escript_builder.buildpacks.erlang import CompileOptions, CompileResult

APP_FILE = """\
{application, enc,
 [{description, "Encoder"},
  {vsn, "1.0.0"},
  {modules, [enc, enc_core]},
  {registered, []},
  {applications, [kernel, stdlib]}]}.
"""


class FakeCompiler:
    """Writes a beam per source instead of invoking erlc."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.calls: list[tuple[list[Path], CompileOptions]] = []

    def compile(self, sources: list[Path], options: CompileOptions) -> CompileResult:
        self.calls.append((list(sources), options))
        if not self.ok:
            return CompileResult(ok=False, beams=[], output="src/enc.erl:1: syntax error before: '.'")
        beams = []
        for s in sources:
            beam = options.outdir / f"{s.stem}.beam"
            beam.write_bytes(b"FOR1" + s.read_bytes())
            beams.append(beam)
        return CompileResult(ok=True, beams=beams)

    def otp_release(self) -> str:
        return "26"


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Minimal application tree: two sources, a resource fork, ebin/enc.app."""
    root = tmp_path / "enc"
    (root / "src").mkdir(parents=True)
    (root / "ebin").mkdir()
    (root / "include").mkdir()
    (root / "src" / "enc.erl").write_text("-module(enc).\n", encoding="utf-8")
    (root / "src" / "enc_core.erl").write_text("-module(enc_core).\n", encoding="utf-8")
    (root / "src" / "._enc.erl").write_bytes(b"\x00\x05\x16\x07")
    (root / "ebin" / "enc.app").write_text(APP_FILE, encoding="utf-8")
    return root


@pytest.fixture
def fake_compiler() -> type[FakeCompiler]:
    """The FakeCompiler class; call it (optionally with ok=False) for a fresh instance."""
    return FakeCompiler

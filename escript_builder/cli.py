"""escript-bootstrap CLI.

Free-form arguments, as the classic bootstrap script takes them:
- force=1 (delete every compiled beam first)
- debug (compile with +debug_info; not forwarded downstream)
- anything else is passed through; ``verbose=1`` turns on debug logging
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from escript_builder.buildpacks.erlang import Compiler, ErlcCompiler
from escript_builder.core import BuildContext, build_pipeline
from escript_builder.errors import BootstrapError, FatalCompileError
from escript_builder.logging import get_logger

app = typer.Typer(add_completion=False, help="Build a self-contained escript")
console = Console()
log = get_logger(__name__)

EPILOG = "Flags: force=1  unconditional build.  debug  add debug information."


def make_compiler() -> Compiler:
    return ErlcCompiler()


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
    epilog=EPILOG,
)
def bootstrap(
    ctx: typer.Context,
    app_name: str | None = typer.Option(
        None, "--app", help="Application name (default: name of the root directory)"
    ),
    root: str = typer.Option(".", "--root", help="Application root containing src/ and ebin/"),
    stamp_module: str | None = typer.Option(
        None, "--stamp-module", help="Module always recompiled so build stamps stay current"
    ),
) -> None:
    """Compile src/, validate ebin/<app>.app and package ebin/ into an escript.

    Run it as: escript-bootstrap force=1 debug ARGS...
    """
    build_ctx = BuildContext.from_args(
        Path(root), app_name, list(ctx.args), stamp_module=stamp_module
    )
    try:
        report = build_pipeline(build_ctx, compiler=make_compiler())
    except BootstrapError as exc:
        log.error("bootstrap failed: %s", exc)
        console.print(str(exc), style="red", markup=False, highlight=False)
        if isinstance(exc, FatalCompileError) and exc.output:
            console.print(exc.output, markup=False, highlight=False)
        raise typer.Exit(code=exc.exit_code) from exc

    table = Table(title="Build Summary")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("script", str(report.script))
    table.add_row("version", report.vsn or "")
    table.add_row("entries", f"{report.files} files, {report.directories} directories")
    table.add_row("compiled", ", ".join(report.compiled) or "(up to date)")
    table.add_row("archive sha256", report.sha256)
    table.add_row("build time", report.build_time)
    table.add_row("vcs", report.vcs_info)
    for f in report.finalized[1:]:
        table.add_row("wrapper", str(f))
    console.print(table)

    rprint(
        f'[green]Congratulations![/green] You now have a self-contained script called "{report.app}" '
        "in your working directory. Place it anywhere in your path and run it directly."
    )


if __name__ == "__main__":
    app()

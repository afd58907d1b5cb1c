"""Fatal error taxonomy for the bootstrap pipeline.

Nothing in the pipeline recovers locally: every failure is raised as one of
these and surfaces to the CLI, which prints it and exits non-zero.
"""

from __future__ import annotations


class BootstrapError(RuntimeError):
    exit_code: int = 1


class FatalCompileError(BootstrapError):
    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class FatalManifestError(BootstrapError):
    pass


class FatalIOError(BootstrapError):
    pass


class FatalArchiveError(BootstrapError):
    pass

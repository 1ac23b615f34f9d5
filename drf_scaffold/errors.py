"""Exception hierarchy for the scaffolding pipeline.

Every failure that should stop a run derives from ``ScaffoldError`` so the CLI
entry point can report it with a single ``except`` clause and pick the right
exit code.
"""

from __future__ import annotations


class ScaffoldError(Exception):
    """Base class for all scaffolding failures."""

    exit_code: int = 1


class ProjectNameError(ScaffoldError):
    """Raised when the requested project name is empty, taken, or unusable."""


class StageError(ScaffoldError):
    """Raised when a pipeline stage fails its pre- or postcondition."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"Stage '{stage}': {message}")


class CommandError(ScaffoldError):
    """Raised when an external command exits non-zero or times out.

    The CLI exits with ``returncode`` so the caller sees the same status the
    failing command produced.
    """

    def __init__(self, cmd: list[str], returncode: int, stderr: str = "") -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        self.exit_code = returncode if returncode > 0 else 1
        detail = f": {stderr.strip().splitlines()[-1]}" if stderr.strip() else ""
        super().__init__(
            f"Command failed with exit code {returncode}: {' '.join(cmd)}{detail}"
        )

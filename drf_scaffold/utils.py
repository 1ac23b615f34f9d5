"""Shared helpers for drf-scaffold.

External commands (``python -m venv``, ``pip``, ``django-admin``) run through
:func:`run_command` / :func:`run_checked`.  Everything printed for the user
goes through the Rich console helpers at the bottom of this module; logging
is reserved for diagnostics.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from drf_scaffold.errors import CommandError

console = Console()
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# External commands
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run *cmd* without a shell and collect its output.

    Args:
        cmd: Program and arguments.
        cwd: Directory the program runs in.
        timeout: Seconds to wait before killing the program.
        env: Variables added to the inherited environment.

    Returns:
        ``(returncode, stdout, stderr)`` with both streams decoded and
        stripped.  A killed program reports ``-1`` and a timeout message as
        stderr.
    """
    child_env = {**os.environ, **env} if env else None
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd or ".")

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env=child_env,
    )
    try:
        raw_out, raw_err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning("Killed %s after %ss", cmd[0], timeout)
        return -1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}"

    return (
        process.returncode or 0,
        _decode(raw_out),
        _decode(raw_err),
    )


async def run_checked(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float = 120,
    env: dict[str, str] | None = None,
) -> str:
    """Run *cmd* and return its stdout, raising ``CommandError`` on failure."""
    returncode, stdout, stderr = await run_command(cmd, cwd=cwd, timeout=timeout, env=env)
    if returncode != 0:
        raise CommandError(cmd, returncode, stderr)
    return stdout


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# Virtual environment helpers
# ---------------------------------------------------------------------------


def venv_bin(venv_path: str | Path, executable: str) -> Path:
    """Return the path of *executable* inside a virtual environment.

    Examples::

        venv_bin("venv", "pip")  -> venv/bin/pip         (POSIX)
        venv_bin("venv", "pip")  -> venv/Scripts/pip.exe (Windows)
    """
    if sys.platform == "win32":
        return Path(venv_path) / "Scripts" / f"{executable}.exe"
    return Path(venv_path) / "bin" / executable


def activate_hint(venv_dir: str) -> str:
    """Shell command a user runs to activate the generated venv."""
    if sys.platform == "win32":
        return f"{venv_dir}\\Scripts\\activate"
    return f"source {venv_dir}/bin/activate"


def touch(path: str | Path) -> Path:
    """Create an empty marker file (``__init__.py``, ``.gitkeep``) and its parents."""
    marker = Path(path)
    marker.parent.mkdir(parents=True, exist_ok=True)
    marker.touch()
    return marker


def format_duration(seconds: float) -> str:
    """``3.7`` -> ``"3.7s"``, ``65.2`` -> ``"1m 5s"``; negatives read as zero."""
    minutes, secs = divmod(max(seconds, 0.0), 60)
    if minutes:
        return f"{int(minutes)}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


def print_banner(title: str, body: str) -> None:
    console.print(Panel(body, title=f"[bold]{title}[/bold]", border_style="bright_blue"))


def print_stage_header(index: int, total: int, name: str) -> None:
    """Print ``[index/total] name`` as a horizontal rule."""
    console.print(
        Rule(f"[bold bright_green] [{index}/{total}] {name} [/bold bright_green]", style="green")
    )


def print_summary_table(rows: dict[str, str], title: str) -> None:
    """Print *rows* as a two-column table."""
    table = Table(title=title, header_style="bold cyan")
    table.add_column("", style="dim", no_wrap=True)
    table.add_column("Location")
    for label, value in rows.items():
        table.add_row(label, escape(str(value)))
    console.print(table)


def print_success(message: str) -> None:
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")

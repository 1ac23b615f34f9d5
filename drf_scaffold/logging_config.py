"""Logging configuration, set up once by the CLI entry point.

Every module that does ``logger = logging.getLogger(__name__)`` inherits this
config. Levels are resolved in precedence order:
    --log-level flag  >  DRF_SCAFFOLD_LOG_LEVEL env var  >  WARNING

User-facing progress goes through the Rich helpers in ``drf_scaffold.utils``;
log records are diagnostics (commands run, files written) and go to stderr.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

_DEFAULT_LEVEL = "WARNING"

# Third-party loggers that are noisy at INFO/DEBUG
_NOISY_LOGGERS = ("asyncio", "markdown_it")


def setup_logging(level: str | None = None, quiet_third_party: bool = True) -> int:
    """Configure Python logging for the whole process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL). Falls
            back to ``DRF_SCAFFOLD_LOG_LEVEL`` and then WARNING.
        quiet_third_party: Keep noisy third-party loggers at WARNING unless
            we're at DEBUG level.

    Returns:
        The numeric level that was applied.
    """
    numeric_level = _parse_level(
        level or os.environ.get("DRF_SCAFFOLD_LOG_LEVEL") or _DEFAULT_LEVEL
    )

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=numeric_level <= logging.DEBUG,
        rich_tracebacks=True,
    )
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return numeric_level


def _parse_level(level: str) -> int:
    """Convert a level name to its numeric value, defaulting to WARNING."""
    numeric = logging.getLevelName(level.strip().upper())
    if isinstance(numeric, int):
        return numeric
    return logging.WARNING

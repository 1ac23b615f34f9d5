"""Environment file generation (``envs/.env`` and ``envs/.env.example``).

``.env`` receives a freshly generated Django secret key and the default
database credentials.  ``.env.example`` is meant to be committed, so by
default it carries the same keys with placeholder credentials; a byte-for-byte
copy is still available for callers that ask for it.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any

from django.core.management.utils import get_random_secret_key

from drf_scaffold.config import EnvFileSettings

from .templates import TemplateRenderer

logger = logging.getLogger(__name__)

ENV_FILE = ".env"
ENV_EXAMPLE_FILE = ".env.example"


def generate_secret_key() -> str:
    """Return a new random value for ``SECRET_KEY``."""
    return get_random_secret_key()


class EnvFileGenerator:
    """Writes the generated project's environment files."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    async def generate(
        self,
        envs_dir: Path,
        settings: EnvFileSettings,
        *,
        redact_example: bool = True,
    ) -> dict[str, Path]:
        """Write ``.env`` and ``.env.example`` into *envs_dir*.

        Args:
            envs_dir: The project's ``envs/`` directory.
            settings: Values for ``.env``.
            redact_example: Write placeholder credentials to ``.env.example``
                instead of copying ``.env``.

        Returns:
            ``{"env": Path(...), "example": Path(...)}``.
        """
        env_path = await self.renderer.render_to_file(
            "project/dotenv.j2", envs_dir / ENV_FILE, _context(settings)
        )
        logger.debug("Wrote %s", env_path)

        example_path = envs_dir / ENV_EXAMPLE_FILE
        if redact_example:
            await self.renderer.render_to_file(
                "project/dotenv.j2",
                example_path,
                _context(
                    settings.placeholder(),
                    header="Copy to envs/.env and replace every change-me value.",
                ),
            )
        else:
            await asyncio.to_thread(shutil.copyfile, env_path, example_path)
        logger.debug("Wrote %s (redacted=%s)", example_path, redact_example)

        return {"env": env_path, "example": example_path}


def read_env_file(path: Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines, skipping blanks and comments."""
    values: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip()
    return values


def _context(settings: EnvFileSettings, header: str = "") -> dict[str, Any]:
    return {"env_lines": settings.as_env_lines(), "header": header}

"""Virtual environment creation and package installation.

Every step is an external command run through :func:`run_checked`, so the
first failure raises ``CommandError`` with that command's exit code and the
remaining steps never run.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from drf_scaffold.config import ScaffoldConfig
from drf_scaffold.scaffolder.templates import TemplateRenderer, write_file
from drf_scaffold.utils import run_checked, venv_bin

logger = logging.getLogger(__name__)

# Keeps pip output to what the run needs.
PIP_ENV: dict[str, str] = {"PIP_DISABLE_PIP_VERSION_CHECK": "1", "PIP_NO_INPUT": "1"}


class EnvironmentBootstrapper:
    """Creates ``<project>/venv`` and installs the project's packages into it."""

    def __init__(self, config: ScaffoldConfig) -> None:
        self.config = config

    @property
    def pip(self) -> Path:
        return venv_bin(self.config.venv_path, "pip")

    @property
    def python(self) -> Path:
        return venv_bin(self.config.venv_path, "python")

    async def create_venv(self) -> Path:
        """Run ``<python> -m venv venv`` inside the project root."""
        await run_checked(
            [self.config.python, "-m", "venv", self.config.venv_dir],
            cwd=self.config.project_root,
            timeout=self.config.command_timeout,
        )
        logger.info("Created virtual environment at %s", self.config.venv_path)
        return self.config.venv_path

    async def install(self) -> list[str]:
        """Upgrade pip, then install every configured package."""
        await run_checked(
            [str(self.python), "-m", "pip", "install", "--upgrade", "pip"],
            cwd=self.config.project_root,
            timeout=self.config.command_timeout,
            env=PIP_ENV,
        )
        await run_checked(
            [str(self.pip), "install", *self.config.packages],
            cwd=self.config.project_root,
            timeout=self.config.command_timeout,
            env=PIP_ENV,
        )
        logger.info("Installed %s", ", ".join(self.config.packages))
        return list(self.config.packages)

    async def freeze(self, renderer: TemplateRenderer) -> Path:
        """Write ``requirements.txt``.

        With an installed environment this is the ``pip freeze`` snapshot;
        otherwise the unpinned package list.
        """
        target = self.config.requirements_path
        if self.config.install:
            output = await run_checked(
                [str(self.pip), "freeze"],
                cwd=self.config.project_root,
                timeout=self.config.command_timeout,
                env=PIP_ENV,
            )
            await asyncio.to_thread(write_file, target, output + "\n")
        else:
            await renderer.render_to_file(
                "project/requirements.txt.j2",
                target,
                {"packages": self.config.packages},
            )
        logger.debug("Wrote %s", target)
        return target

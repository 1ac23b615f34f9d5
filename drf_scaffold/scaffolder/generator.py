"""File-writing side of the scaffold.

``ProjectGenerator`` owns the template renderer and the specialised
generators, and exposes one coroutine per pipeline stage that writes files
into the project root.  It never runs external commands; those live in
``drf_scaffold.bootstrap`` and ``SkeletonGenerator.startproject``.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from drf_scaffold.config import EnvFileSettings, ScaffoldConfig
from drf_scaffold.utils import touch

from .docker_gen import DockerGenerator
from .env_gen import EnvFileGenerator, generate_secret_key
from .settings_gen import SettingsGenerator, SettingsLayout
from .skeleton import EntryPointRewriter, SkeletonGenerator
from .templates import TemplateRenderer

DJANGO_DOCS_VERSION = "stable"
WEB_PORT = 8000
WSGI_TARGET = "config.wsgi:application"
ENV_FILE_PATH = "envs/.env"

# Directory -> marker file that keeps it in place ("" for none).
PROVISIONED_DIRS: dict[str, str] = {
    "apps": "__init__.py",
    "common": "__init__.py",
    "envs": "",
    "logs": ".gitkeep",
}


class ProjectGenerator:
    """Writes every generated file of a scaffolded project.

    Given a ``ScaffoldConfig``, produces:
    - the ``startproject`` skeleton renamed to ``config/`` (offline mode)
    - the ``config/settings/`` package (base, dev, prod)
    - ``apps/``, ``common/``, ``envs/``, ``logs/``
    - ``envs/.env`` and ``envs/.env.example``
    - ``Dockerfile``, ``docker-compose.yml``, ``docker-compose.prod.yml``
    - ``.gitignore``
    """

    def __init__(
        self,
        config: ScaffoldConfig,
        renderer: TemplateRenderer | None = None,
        layout: SettingsLayout | None = None,
    ) -> None:
        self.config = config
        self.renderer = renderer or TemplateRenderer()
        self.skeleton = SkeletonGenerator(self.renderer)
        self.settings_gen = SettingsGenerator(self.renderer, layout)
        self.env_gen = EnvFileGenerator(self.renderer)
        self.docker_gen = DockerGenerator(self.renderer)
        self.entry_points = EntryPointRewriter(config.project_name)
        self.env_settings: EnvFileSettings = config.env_file_settings(generate_secret_key())

    # -- Context building --------------------------------------------------

    def build_context(self) -> dict[str, Any]:
        """Build the Jinja2 template context from the config."""
        return {
            "project_name": self.config.project_name,
            "docs_version": DJANGO_DOCS_VERSION,
            "python_image": self.config.python_image,
            "postgres_image": self.config.postgres_image,
            "web_port": WEB_PORT,
            "wsgi_target": WSGI_TARGET,
            "env_file": ENV_FILE_PATH,
            "venv_dir": self.config.venv_dir,
            "database_user": self.env_settings.database_user,
            "database_password": self.env_settings.database_password,
        }

    # -- Stages ------------------------------------------------------------

    async def render_skeleton(self) -> Path:
        """Render the ``startproject`` layout without Django (offline mode)."""
        return await self.skeleton.render(
            self.config.project_root, self.config.project_name, self.build_context()
        )

    async def generate_settings(self) -> list[Path]:
        """Replace ``config/settings.py`` with the layered settings package."""
        return await self.settings_gen.generate(self.config.config_dir, self.build_context())

    async def provision_directories(self) -> list[Path]:
        """Create ``apps/``, ``common/``, ``envs/`` and ``logs/``.

        Returns the directories that did not exist before the call.
        """
        created: list[Path] = []
        for name, marker in PROVISIONED_DIRS.items():
            directory = self.config.project_root / name
            if not directory.exists():
                created.append(directory)
            await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
            if marker:
                await asyncio.to_thread(touch, directory / marker)
        return created

    async def write_env_files(self) -> dict[str, Path]:
        """Write ``envs/.env`` and ``envs/.env.example``."""
        return await self.env_gen.generate(
            self.config.envs_dir,
            self.env_settings,
            redact_example=self.config.redact_env_example,
        )

    async def rewrite_entry_points(self) -> list[Path]:
        """Point ``manage.py`` at dev settings and WSGI/ASGI at prod settings."""
        return await self.entry_points.rewrite(self.config.project_root)

    async def generate_container_artifacts(self) -> dict[str, Path]:
        """Write the Dockerfile and both Compose files."""
        return await self.docker_gen.generate_all(self.config.project_root, self.build_context())

    async def write_gitignore(self) -> Path:
        return await self.renderer.render_to_file(
            "project/gitignore.j2", self.config.project_root / ".gitignore", self.build_context()
        )

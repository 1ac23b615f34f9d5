"""Django project skeleton and entry-point rewriting.

``SkeletonGenerator`` produces the default ``startproject`` layout, either by
running ``django-admin`` from the project's virtual environment or, offline,
by rendering the same files from bundled templates.  Either way the inner
package is renamed to ``config``.

``EntryPointRewriter`` then points ``manage.py`` at the development settings
and the WSGI/ASGI modules at the production settings.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any

from django.core.management.utils import get_random_secret_key

from drf_scaffold.errors import StageError
from drf_scaffold.utils import run_checked, touch, venv_bin

from .settings_gen import DJANGO_DEFAULT_APPS, DJANGO_DEFAULT_MIDDLEWARE
from .templates import TemplateRenderer, output_name

logger = logging.getLogger(__name__)

CONFIG_PACKAGE = "config"
DEV_SETTINGS_MODULE = "config.settings.dev"
PROD_SETTINGS_MODULE = "config.settings.prod"

SKELETON_FILES: tuple[str, ...] = ("settings.py", "urls.py", "wsgi.py", "asgi.py")


class SkeletonGenerator:
    """Creates ``manage.py`` and the ``config/`` package in a project root."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    async def startproject(
        self, project_root: Path, project_name: str, venv_path: Path, timeout: int = 120
    ) -> Path:
        """Run ``django-admin startproject <name> .`` and rename to ``config``."""
        django_admin = venv_bin(venv_path, "django-admin")
        await run_checked(
            [str(django_admin), "startproject", project_name, "."],
            cwd=project_root,
            timeout=timeout,
        )
        return await self.rename_to_config(project_root, project_name)

    async def render(
        self, project_root: Path, project_name: str, context: dict[str, Any]
    ) -> Path:
        """Render the ``startproject`` layout without invoking Django."""
        skeleton_ctx = {
            **context,
            "secret_key": "django-insecure-" + get_random_secret_key(),
            "installed_apps": DJANGO_DEFAULT_APPS,
            "middleware": DJANGO_DEFAULT_MIDDLEWARE,
        }
        package_dir = project_root / project_name
        await asyncio.to_thread(touch, package_dir / "__init__.py")
        for template_name in self.renderer.list_templates("skeleton"):
            filename = output_name(template_name)
            # manage.py sits beside the package, everything else inside it.
            target_dir = project_root if filename == "manage.py" else package_dir
            await self.renderer.render_to_file(
                template_name, target_dir / filename, skeleton_ctx
            )
        return await self.rename_to_config(project_root, project_name)

    async def rename_to_config(self, project_root: Path, project_name: str) -> Path:
        """Rename the inner ``<project_name>/`` package to ``config/``."""
        source = project_root / project_name
        target = project_root / CONFIG_PACKAGE
        if not source.is_dir():
            raise StageError("skeleton", f"expected package directory {source} was not created")
        if target.exists():
            raise StageError("skeleton", f"{target} already exists")
        await asyncio.to_thread(source.rename, target)
        logger.debug("Renamed %s -> %s", source, target)
        return target


def verify_skeleton(project_root: Path) -> None:
    """Raise ``StageError`` unless the renamed skeleton is complete."""
    config_dir = project_root / CONFIG_PACKAGE
    expected = [config_dir / name for name in SKELETON_FILES] + [project_root / "manage.py"]
    missing = [str(path.relative_to(project_root)) for path in expected if not path.is_file()]
    if missing:
        raise StageError("skeleton", f"missing files: {', '.join(missing)}")


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


class EntryPointRewriter:
    """Points the generated entry points at the layered settings modules.

    ``manage.py`` defaults to development settings; ``config/wsgi.py`` and
    ``config/asgi.py`` default to production settings.
    """

    def __init__(self, project_name: str) -> None:
        self.project_name = project_name
        self._pattern = re.compile(
            r"""(['"])""" + re.escape(f"{project_name}.settings") + r"\1"
        )

    def targets(self, project_root: Path) -> dict[Path, str]:
        """Map each entry-point file to the settings module it should use."""
        return {
            project_root / "manage.py": DEV_SETTINGS_MODULE,
            project_root / CONFIG_PACKAGE / "wsgi.py": PROD_SETTINGS_MODULE,
            project_root / CONFIG_PACKAGE / "asgi.py": PROD_SETTINGS_MODULE,
        }

    def rewrite_file(self, path: Path, module: str) -> int:
        """Replace the ``<name>.settings`` reference in *path* with *module*.

        Returns:
            The number of replacements made.

        Raises:
            StageError: If the file holds no reference to replace.
        """
        source = path.read_text(encoding="utf-8")
        updated, count = self._pattern.subn(lambda m: f"{m.group(1)}{module}{m.group(1)}", source)
        if count == 0:
            raise StageError(
                "entry-points",
                f"no reference to '{self.project_name}.settings' found in {path.name}",
            )
        path.write_text(updated, encoding="utf-8")
        logger.debug("Pointed %s at %s", path, module)
        return count

    async def rewrite(self, project_root: Path) -> list[Path]:
        """Rewrite every entry point; returns the rewritten paths."""
        rewritten: list[Path] = []
        for path, module in self.targets(project_root).items():
            await asyncio.to_thread(self.rewrite_file, path, module)
            rewritten.append(path)
        return rewritten

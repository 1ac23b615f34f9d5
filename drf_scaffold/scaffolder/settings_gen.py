"""Layered settings generation (``config/settings/{base,dev,prod}.py``).

The monolithic ``settings.py`` produced by ``startproject`` is replaced by a
settings package rendered from templates.  The app and middleware lists are
built here from Django's defaults so the insertion rules (DRF and CORS apps
after ``staticfiles``, CORS middleware before ``CommonMiddleware``) are
enforced in code rather than by matching text in a generated file.

After rendering, :func:`validate_settings_package` parses the three modules
with :mod:`ast` and checks the override contract of ``dev`` and ``prod``.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from drf_scaffold.errors import StageError

from .templates import TemplateRenderer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Django defaults and insertions
# ---------------------------------------------------------------------------

DJANGO_DEFAULT_APPS: list[str] = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
]

DJANGO_DEFAULT_MIDDLEWARE: list[str] = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

STATICFILES_APP = "django.contrib.staticfiles"
COMMON_MIDDLEWARE = "django.middleware.common.CommonMiddleware"
CORS_MIDDLEWARE = "corsheaders.middleware.CorsMiddleware"

EXTRA_APPS: list[str] = ["rest_framework", "corsheaders", "common"]

DEV_DATABASE_FILE = "db.sqlite3"

# Settings names dev.py / prod.py may assign after ``from .base import *``.
OVERRIDABLE_SETTINGS: frozenset[str] = frozenset(
    {
        "DEBUG",
        "ALLOWED_HOSTS",
        "CORS_ALLOW_ALL_ORIGINS",
        "CORS_ALLOWED_ORIGINS",
        "DATABASES",
    }
)

DEV_OVERRIDES: frozenset[str] = OVERRIDABLE_SETTINGS
PROD_OVERRIDES: frozenset[str] = frozenset({"DEBUG", "ALLOWED_HOSTS", "DATABASES"})

# DATABASES['default'] key -> environment variable, in rendered order.
PROD_DATABASE_ENV: dict[str, str] = {
    "NAME": "DATABASE_NAME",
    "USER": "DATABASE_USER",
    "HOST": "DATABASE_HOST",
    "PORT": "DATABASE_PORT",
    "PASSWORD": "DATABASE_PASSWORD",
}

SETTINGS_MODULES: tuple[str, ...] = ("__init__.py", "base.py", "dev.py", "prod.py")


def insert_after(items: list[str], anchor: str, new_items: list[str]) -> list[str]:
    """Return a copy of *items* with *new_items* placed right after *anchor*.

    Raises:
        ValueError: If *anchor* is not in *items*.
    """
    index = items.index(anchor)
    return items[: index + 1] + list(new_items) + items[index + 1 :]


def insert_before(items: list[str], anchor: str, new_items: list[str]) -> list[str]:
    """Return a copy of *items* with *new_items* placed right before *anchor*.

    Raises:
        ValueError: If *anchor* is not in *items*.
    """
    index = items.index(anchor)
    return items[:index] + list(new_items) + items[index:]


# ---------------------------------------------------------------------------
# Layout model
# ---------------------------------------------------------------------------


@dataclass
class SettingsLayout:
    """App and middleware ordering for the generated ``base.py``."""

    base_apps: list[str] = field(default_factory=lambda: list(DJANGO_DEFAULT_APPS))
    base_middleware: list[str] = field(
        default_factory=lambda: list(DJANGO_DEFAULT_MIDDLEWARE)
    )
    extra_apps: list[str] = field(default_factory=lambda: list(EXTRA_APPS))

    @property
    def installed_apps(self) -> list[str]:
        """Django's apps with DRF, CORS and ``common`` after ``staticfiles``."""
        return insert_after(self.base_apps, STATICFILES_APP, self.extra_apps)

    @property
    def middleware(self) -> list[str]:
        """Django's middleware with CORS handling ahead of ``CommonMiddleware``.

        ``CorsMiddleware`` has to see the request before ``CommonMiddleware``
        can redirect or answer it, otherwise those responses lack CORS
        headers.
        """
        return insert_before(self.base_middleware, COMMON_MIDDLEWARE, [CORS_MIDDLEWARE])

    def context(self) -> dict[str, Any]:
        return {
            "installed_apps": self.installed_apps,
            "middleware": self.middleware,
            "root_urlconf": "config.urls",
            "wsgi_application": "config.wsgi.application",
            "dev_database_file": DEV_DATABASE_FILE,
            "database_env": dict(PROD_DATABASE_ENV),
        }


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class SettingsGenerator:
    """Replaces ``config/settings.py`` with the ``config/settings/`` package."""

    _TEMPLATES: dict[str, str] = {
        "settings/base.py.j2": "base.py",
        "settings/dev.py.j2": "dev.py",
        "settings/prod.py.j2": "prod.py",
    }

    def __init__(
        self, renderer: TemplateRenderer, layout: SettingsLayout | None = None
    ) -> None:
        self.renderer = renderer
        self.layout = layout or SettingsLayout()

    async def generate(self, config_dir: Path, context: dict[str, Any]) -> list[Path]:
        """Render the settings package inside *config_dir*.

        The old single-file ``settings.py`` is removed first.  Returns every
        written path, ``__init__.py`` included.
        """
        monolithic = config_dir / "settings.py"
        if monolithic.exists():
            monolithic.unlink()
            logger.debug("Removed %s", monolithic)

        settings_dir = config_dir / "settings"
        settings_dir.mkdir(parents=True, exist_ok=True)
        init_file = settings_dir / "__init__.py"
        init_file.touch()

        settings_ctx = {**context, **self.layout.context()}
        written = [init_file]
        for template_name, output_name in self._TEMPLATES.items():
            path = await self.renderer.render_to_file(
                template_name, settings_dir / output_name, settings_ctx
            )
            logger.debug("Wrote %s", path)
            written.append(path)
        return written


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def top_level_assignments(source: str) -> list[str]:
    """Return the names bound at module level, in source order.

    Covers plain, annotated, augmented and unpacking assignments, ``for``
    and ``with ... as`` targets, and the bodies of module-level ``if``,
    ``for``, ``while``, ``with`` and ``try`` blocks.  Imports and
    function or class definitions are not counted.
    """
    names: list[str] = []
    _collect_bindings(ast.parse(source).body, names)
    return names


def _collect_bindings(body: list[ast.stmt], names: list[str]) -> None:
    for node in body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            continue
        targets: list[ast.expr] = []
        if isinstance(node, ast.Assign):
            targets = list(node.targets)
        elif isinstance(node, (ast.AnnAssign, ast.AugAssign)):
            targets = [node.target]
        elif isinstance(node, (ast.For, ast.AsyncFor)):
            targets = [node.target]
        elif isinstance(node, (ast.With, ast.AsyncWith)):
            targets = [item.optional_vars for item in node.items if item.optional_vars]
        for target in targets:
            names.extend(_target_names(target))
        _collect_bindings(getattr(node, "body", None) or [], names)
        for handler in getattr(node, "handlers", None) or []:
            if handler.name:
                names.append(handler.name)
            _collect_bindings(handler.body, names)
        _collect_bindings(getattr(node, "orelse", None) or [], names)
        _collect_bindings(getattr(node, "finalbody", None) or [], names)


def _target_names(target: ast.expr) -> list[str]:
    if isinstance(target, ast.Name):
        return [target.id]
    if isinstance(target, ast.Starred):
        return _target_names(target.value)
    if isinstance(target, (ast.Tuple, ast.List)):
        return [name for elt in target.elts for name in _target_names(elt)]
    return []


def imports_everything_from_base(source: str) -> bool:
    """Return ``True`` if *source* contains ``from .base import *``."""
    for node in ast.parse(source).body:
        if (
            isinstance(node, ast.ImportFrom)
            and node.module == "base"
            and node.level == 1
            and any(alias.name == "*" for alias in node.names)
        ):
            return True
    return False


def validate_settings_package(settings_dir: Path) -> None:
    """Check the rendered settings package, raising ``StageError`` on any defect.

    * exactly ``__init__.py``, ``base.py``, ``dev.py``, ``prod.py`` exist;
    * every module parses;
    * ``dev`` and ``prod`` import everything from ``base`` and assign exactly
      their override sets.
    """
    present = sorted(p.name for p in settings_dir.glob("*.py"))
    if present != sorted(SETTINGS_MODULES):
        raise StageError(
            "settings", f"expected {sorted(SETTINGS_MODULES)} in {settings_dir}, found {present}"
        )

    sources: dict[str, str] = {}
    for name in SETTINGS_MODULES:
        source = (settings_dir / name).read_text(encoding="utf-8")
        try:
            ast.parse(source)
        except SyntaxError as exc:
            raise StageError("settings", f"{name} does not parse: {exc}") from exc
        sources[name] = source

    for name, expected in (("dev.py", DEV_OVERRIDES), ("prod.py", PROD_OVERRIDES)):
        source = sources[name]
        if not imports_everything_from_base(source):
            raise StageError("settings", f"{name} must start from 'from .base import *'")
        assigned = set(top_level_assignments(source))
        if assigned != expected:
            raise StageError(
                "settings",
                f"{name} overrides {sorted(assigned)}, expected {sorted(expected)}",
            )

"""drf-scaffold configuration.

Centralised, typed configuration for a scaffolding run. All settings use
Pydantic v2 models so they can be validated at construction time and built
from CLI flags or environment variables without boiler-plate.
"""

from __future__ import annotations

import importlib.util
import keyword
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from drf_scaffold.errors import ProjectNameError


# Packages installed into every generated project's virtual environment.
DEFAULT_PACKAGES: list[str] = [
    "django",
    "djangorestframework",
    "django-cors-headers",
    "python-dotenv",
    "psycopg2-binary",
    "gunicorn",
]

# Names the generated layout already uses at the project root or for the
# inner configuration package.
RESERVED_NAMES: frozenset[str] = frozenset(
    {"config", "apps", "common", "envs", "logs", "venv"}
)

PLACEHOLDER_VALUE = "change-me"


# ---------------------------------------------------------------------------
# Project name validation
# ---------------------------------------------------------------------------


def validate_project_name(name: str) -> str:
    """Return *name* stripped, or raise ``ProjectNameError``.

    The name becomes a Python package during ``startproject`` and a
    component of Docker volume names, so it must be an identifier that is not
    a keyword, not one of the layout's own directory names, and not already
    importable (the same check ``django-admin startproject`` performs).
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise ProjectNameError("Project name is required!")
    if not cleaned.isidentifier():
        raise ProjectNameError(
            f"'{cleaned}' is not a valid project name. Use letters, digits and "
            "underscores, and do not start with a digit."
        )
    if keyword.iskeyword(cleaned):
        raise ProjectNameError(f"'{cleaned}' is a Python keyword.")
    if cleaned.lower() in RESERVED_NAMES:
        raise ProjectNameError(
            f"'{cleaned}' clashes with a directory the generated layout uses."
        )
    if _is_importable(cleaned):
        raise ProjectNameError(
            f"'{cleaned}' conflicts with the name of an existing Python module."
        )
    return cleaned


def _is_importable(name: str) -> bool:
    # find_spec raises ValueError for modules already imported with no __spec__.
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError):
        return True


# ---------------------------------------------------------------------------
# Environment file model
# ---------------------------------------------------------------------------


class EnvFileSettings(BaseModel):
    """Values written to ``envs/.env`` for the generated project.

    Field order is the line order of the rendered file.
    """

    secret_key: str = Field(..., min_length=1)
    debug: bool = Field(default=True)
    allowed_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])
    cors_allow_all_origins: bool = Field(default=True)
    database_name: str = Field(..., min_length=1)
    database_user: str = Field(default="postgres")
    database_password: str = Field(default="postgres")
    database_host: str = Field(default="db")
    database_port: int = Field(default=5432, ge=1, le=65535)

    def as_dict(self) -> dict[str, str]:
        """Return the ``{KEY: value}`` mapping exactly as it is written."""
        return {
            "SECRET_KEY": self.secret_key,
            "DEBUG": _env_bool(self.debug),
            "ALLOWED_HOSTS": ",".join(self.allowed_hosts),
            "CORS_ALLOW_ALL_ORIGINS": _env_bool(self.cors_allow_all_origins),
            "DATABASE_NAME": self.database_name,
            "DATABASE_USER": self.database_user,
            "DATABASE_PASSWORD": self.database_password,
            "DATABASE_HOST": self.database_host,
            "DATABASE_PORT": str(self.database_port),
        }

    def as_env_lines(self) -> list[str]:
        """Return ``KEY=VALUE`` lines."""
        return [f"{key}={value}" for key, value in self.as_dict().items()]

    def placeholder(self) -> "EnvFileSettings":
        """Return a copy with every credential replaced by a placeholder."""
        return self.model_copy(
            update={
                "secret_key": PLACEHOLDER_VALUE,
                "database_password": PLACEHOLDER_VALUE,
            }
        )


def _env_bool(value: bool) -> str:
    # Generated settings compare against the exact string 'True'.
    return "True" if value else "False"


# ---------------------------------------------------------------------------
# Scaffold configuration
# ---------------------------------------------------------------------------


class ScaffoldConfig(BaseModel):
    """Global configuration for one scaffolding run.

    Instances are created once by the CLI entry point and passed through the
    pipeline and every generator.
    """

    project_name: str = Field(..., description="Name of the project directory")
    output_dir: Path = Field(default=Path("."))
    python: str = Field(
        default=sys.executable,
        description="Interpreter used to create the virtual environment",
    )
    venv_dir: str = Field(default="venv")
    packages: list[str] = Field(default_factory=lambda: list(DEFAULT_PACKAGES))

    # Stage control
    install: bool = Field(
        default=True, description="Create the virtual environment and install packages"
    )
    use_startproject: bool = Field(
        default=True, description="Delegate the skeleton to django-admin startproject"
    )
    redact_env_example: bool = Field(
        default=True, description="Write placeholders instead of secrets to .env.example"
    )
    rollback_on_failure: bool = Field(default=True)
    command_timeout: int = Field(
        default=600, ge=10, description="Per-command timeout in seconds"
    )

    # Container images
    python_image: str = Field(default="python:3.11-slim")
    postgres_image: str = Field(default="postgres:15")

    @field_validator("project_name")
    @classmethod
    def _check_project_name(cls, value: str) -> str:
        try:
            return validate_project_name(value)
        except ProjectNameError as exc:
            raise ValueError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def project_root(self) -> Path:
        """Root of the generated project."""
        return self.output_dir / self.project_name

    @property
    def venv_path(self) -> Path:
        return self.project_root / self.venv_dir

    @property
    def config_dir(self) -> Path:
        """The inner configuration package (``config/``)."""
        return self.project_root / "config"

    @property
    def settings_dir(self) -> Path:
        return self.config_dir / "settings"

    @property
    def envs_dir(self) -> Path:
        return self.project_root / "envs"

    @property
    def requirements_path(self) -> Path:
        return self.project_root / "requirements.txt"

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, project_name: str, **overrides: Any) -> "ScaffoldConfig":
        """Build a ``ScaffoldConfig`` from environment variables.

        Recognised variables (all optional):
            DRF_SCAFFOLD_OUTPUT_DIR, DRF_SCAFFOLD_PYTHON, DRF_SCAFFOLD_TIMEOUT,
            DRF_SCAFFOLD_NO_INSTALL.

        Keyword *overrides* (typically CLI flags) win over the environment.
        ``None`` overrides are ignored.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("DRF_SCAFFOLD_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["DRF_SCAFFOLD_OUTPUT_DIR"])
        if os.environ.get("DRF_SCAFFOLD_PYTHON"):
            kwargs["python"] = os.environ["DRF_SCAFFOLD_PYTHON"]
        if os.environ.get("DRF_SCAFFOLD_TIMEOUT"):
            kwargs["command_timeout"] = os.environ["DRF_SCAFFOLD_TIMEOUT"]
        if os.environ.get("DRF_SCAFFOLD_NO_INSTALL", "").lower() in ("1", "true", "yes"):
            kwargs["install"] = False
            kwargs["use_startproject"] = False

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(project_name=project_name, **kwargs)

    def env_file_settings(self, secret_key: str) -> EnvFileSettings:
        """Default ``.env`` values for this project."""
        return EnvFileSettings(secret_key=secret_key, database_name=self.project_name)

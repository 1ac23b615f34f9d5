"""End-to-end scaffold runs through the CLI entry point.

These tests call ``main()`` in offline mode (``--no-install``), so the
skeleton is rendered from bundled templates and no virtual environment,
pip or django-admin is involved.  They check the generated tree as a whole:
layout, settings layering, the values ``base.py`` reads from the
environment, environment files, entry points and re-runs.

No external services (Docker, PostgreSQL, network) are required.
"""

from __future__ import annotations

import ast
import hashlib
import json
import logging
import os
import subprocess
import sys
from pathlib import Path

import pytest
import yaml

from drf_scaffold.config import PLACEHOLDER_VALUE
from drf_scaffold.pipeline import main
from drf_scaffold.scaffolder.env_gen import read_env_file
from drf_scaffold.scaffolder.settings_gen import (
    DEV_OVERRIDES,
    PROD_OVERRIDES,
    imports_everything_from_base,
    top_level_assignments,
)

pytestmark = pytest.mark.integration

PROJECT = "shop_api"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    for name in ("DRF_SCAFFOLD_OUTPUT_DIR", "DRF_SCAFFOLD_NO_INSTALL", "DRF_SCAFFOLD_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _scaffold(output_dir: Path, *extra: str) -> Path:
    main([PROJECT, "-o", str(output_dir), "--no-install", *extra])
    return output_dir / PROJECT


def _snapshot(root: Path) -> dict[str, str]:
    """Map every file under *root* to a digest of its contents."""
    return {
        str(path.relative_to(root)): hashlib.sha256(path.read_bytes()).hexdigest()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def project(tmp_path: Path) -> Path:
    return _scaffold(tmp_path)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestInputValidation:
    def test_empty_name_creates_nothing(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["", "-o", str(tmp_path), "--no-install"])
        assert exc_info.value.code != 0
        assert list(tmp_path.iterdir()) == []

    def test_existing_directory_left_unmodified(self, tmp_path):
        existing = tmp_path / PROJECT
        existing.mkdir()
        (existing / "notes.txt").write_text("keep me")
        before = _snapshot(existing)

        with pytest.raises(SystemExit) as exc_info:
            _scaffold(tmp_path)

        assert exc_info.value.code != 0
        assert _snapshot(existing) == before


class TestGeneratedLayout:
    def test_tree(self, project):
        settings = project / "config" / "settings"
        assert sorted(p.name for p in settings.iterdir()) == [
            "__init__.py",
            "base.py",
            "dev.py",
            "prod.py",
        ]
        for name in ("apps", "common", "envs", "logs"):
            assert (project / name).is_dir()
        for name in ("Dockerfile", "docker-compose.yml", "docker-compose.prod.yml", ".gitignore"):
            assert (project / name).is_file()
        assert (project / "requirements.txt").is_file()
        assert not (project / "config" / "settings.py").exists()
        assert not (project / PROJECT).exists()

    def test_every_python_file_parses(self, project):
        for path in project.rglob("*.py"):
            ast.parse(path.read_text(), filename=str(path))

    def test_compose_files_are_yaml(self, project):
        for name in ("docker-compose.yml", "docker-compose.prod.yml"):
            compose = yaml.safe_load((project / name).read_text())
            assert set(compose["services"]) == {"web", "db"}


class TestSettingsLayering:
    @pytest.mark.parametrize("module,expected", [("dev.py", DEV_OVERRIDES), ("prod.py", PROD_OVERRIDES)])
    def test_overrides(self, project, module, expected):
        source = (project / "config" / "settings" / module).read_text()
        assert imports_everything_from_base(source)
        assert set(top_level_assignments(source)) == expected


class TestBaseSettingsValues:
    """Imports the generated ``config.settings.base`` in a child interpreter."""

    ENV_KEYS = ("DEBUG", "ALLOWED_HOSTS", "CORS_ALLOW_ALL_ORIGINS", "CORS_ALLOWED_ORIGINS")
    READ_BASE = (
        "import json\n"
        "from config.settings import base\n"
        "print(json.dumps([base.DEBUG, base.ALLOWED_HOSTS,"
        " base.CORS_ALLOW_ALL_ORIGINS, base.CORS_ALLOWED_ORIGINS]))\n"
    )

    @pytest.fixture(autouse=True)
    def _require_dotenv(self):
        pytest.importorskip("dotenv")

    def _load_base(self, project: Path, env: dict[str, str]) -> list:
        child_env = {k: v for k, v in os.environ.items() if k not in self.ENV_KEYS}
        result = subprocess.run(
            [sys.executable, "-c", self.READ_BASE],
            cwd=project,
            env={**child_env, **env},
            capture_output=True,
            text=True,
            timeout=60,
        )
        assert result.returncode == 0, result.stderr
        return json.loads(result.stdout.splitlines()[-1])

    def test_values_from_generated_env_file(self, project):
        debug, hosts, allow_all, origins = self._load_base(project, {})
        assert debug is True
        assert hosts == ["localhost", "127.0.0.1"]
        assert allow_all is True
        assert origins == []

    @pytest.mark.parametrize(
        "env,expected",
        [
            (
                {"CORS_ALLOW_ALL_ORIGINS": "True", "CORS_ALLOWED_ORIGINS": "http://a,http://b"},
                [False, ["localhost"], True, []],
            ),
            (
                {"CORS_ALLOW_ALL_ORIGINS": "False", "CORS_ALLOWED_ORIGINS": "http://a,,http://b"},
                [False, ["localhost"], False, ["http://a", "http://b"]],
            ),
            (
                {"CORS_ALLOW_ALL_ORIGINS": "true", "DEBUG": "true"},
                [False, ["localhost"], False, []],
            ),
            (
                {"DEBUG": "True", "ALLOWED_HOSTS": "api.example.com,www.example.com"},
                [True, ["api.example.com", "www.example.com"], False, []],
            ),
            ({}, [False, ["localhost"], False, []]),
        ],
    )
    def test_values_from_environment(self, project, env, expected):
        (project / "envs" / ".env").unlink()
        assert self._load_base(project, env) == expected


class TestEnvironmentFiles:
    def test_secret_key_generated(self, project):
        env = read_env_file(project / "envs" / ".env")
        assert len(env["SECRET_KEY"]) >= 50
        assert len(set(env["SECRET_KEY"])) > 10
        assert env["SECRET_KEY"] != PLACEHOLDER_VALUE

    def test_example_redacted_by_default(self, project):
        env = read_env_file(project / "envs" / ".env")
        example = read_env_file(project / "envs" / ".env.example")
        assert list(example) == list(env)
        assert example["SECRET_KEY"] == PLACEHOLDER_VALUE

    def test_example_byte_identical_on_request(self, tmp_path):
        project = _scaffold(tmp_path, "--copy-env-example")
        env = (project / "envs" / ".env").read_bytes()
        assert (project / "envs" / ".env.example").read_bytes() == env
        assert len(read_env_file(project / "envs" / ".env")["SECRET_KEY"]) >= 50

    def test_secrets_differ_between_projects(self, tmp_path):
        first = _scaffold(tmp_path / "a")
        second = _scaffold(tmp_path / "b")
        assert (
            read_env_file(first / "envs" / ".env")["SECRET_KEY"]
            != read_env_file(second / "envs" / ".env")["SECRET_KEY"]
        )


class TestEntryPoints:
    def test_settings_modules(self, project):
        assert "config.settings.dev" in (project / "manage.py").read_text()
        for name in ("wsgi.py", "asgi.py"):
            text = (project / "config" / name).read_text()
            assert "config.settings.prod" in text
            assert f"{PROJECT}.settings" not in text


class TestRerun:
    def test_second_run_fails_without_touching_output(self, tmp_path):
        project = _scaffold(tmp_path)
        before = _snapshot(project)

        with pytest.raises(SystemExit) as exc_info:
            _scaffold(tmp_path)

        assert exc_info.value.code == 1
        assert _snapshot(project) == before

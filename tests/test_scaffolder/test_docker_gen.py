"""Tests for Dockerfile and Compose generation.

Tests cover:
- The three generated files and their labels
- Dockerfile base image and gunicorn command
- Development compose: runserver, source mount, env file, database service
- Production compose: gunicorn, restart policy, static/media volumes
"""

from __future__ import annotations

import pytest
import yaml

from drf_scaffold.scaffolder.docker_gen import DockerGenerator

pytestmark = pytest.mark.unit


@pytest.fixture
async def artifacts(tmp_path, renderer, template_context):
    return await DockerGenerator(renderer).generate_all(tmp_path, template_context)


class TestDockerGenerator:
    async def test_files_written(self, tmp_path, artifacts):
        assert artifacts == {
            "image": tmp_path / "Dockerfile",
            "development": tmp_path / "docker-compose.yml",
            "production": tmp_path / "docker-compose.prod.yml",
        }
        for path in artifacts.values():
            assert path.is_file()

    async def test_dockerfile(self, artifacts):
        text = artifacts["image"].read_text()
        assert text.startswith("FROM python:3.11-slim\n")
        assert "WORKDIR /app" in text
        assert "pip install --no-cache-dir -r requirements.txt" in text
        assert 'CMD ["gunicorn", "--bind", "0.0.0.0:8000", "config.wsgi:application"]' in text

    async def test_custom_images(self, tmp_path, renderer, template_context):
        context = {**template_context, "python_image": "python:3.12-slim", "postgres_image": "postgres:16"}
        written = await DockerGenerator(renderer).generate_all(tmp_path, context)
        assert written["image"].read_text().startswith("FROM python:3.12-slim\n")
        compose = yaml.safe_load(written["development"].read_text())
        assert compose["services"]["db"]["image"] == "postgres:16"


class TestDevelopmentCompose:
    async def test_parses(self, artifacts, project_name):
        compose = yaml.safe_load(artifacts["development"].read_text())
        web = compose["services"]["web"]
        db = compose["services"]["db"]

        assert "version" not in compose
        assert web["build"] == "."
        assert web["command"] == "python manage.py runserver 0.0.0.0:8000"
        assert web["volumes"] == [".:/app"]
        assert web["ports"] == ["8000:8000"]
        assert web["env_file"] == ["envs/.env"]
        assert web["depends_on"] == ["db"]
        assert db["image"] == "postgres:15"
        assert f"POSTGRES_DB={project_name}" in db["environment"]
        assert "postgres_data" in compose["volumes"]


class TestProductionCompose:
    async def test_parses(self, artifacts):
        compose = yaml.safe_load(artifacts["production"].read_text())
        web = compose["services"]["web"]

        assert web["restart"] == "always"
        assert web["command"] == "gunicorn --bind 0.0.0.0:8000 config.wsgi:application"
        assert "static_volume:/app/static" in web["volumes"]
        assert "media_volume:/app/media" in web["volumes"]
        assert ".:/app" not in web["volumes"]
        assert compose["services"]["db"]["restart"] == "always"
        assert set(compose["volumes"]) == {"postgres_data", "static_volume", "media_volume"}

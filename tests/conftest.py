"""Shared pytest fixtures for the drf-scaffold test suite.

Provides reusable fixtures for:
- Offline scaffold configurations rooted in ``tmp_path``
- A real template renderer and project generator
- A project root that already holds the renamed skeleton
- Mocked external commands
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from drf_scaffold.config import ScaffoldConfig
from drf_scaffold.scaffolder.generator import ProjectGenerator
from drf_scaffold.scaffolder.templates import TemplateRenderer


PROJECT_NAME = "shop_api"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def project_name() -> str:
    return PROJECT_NAME


@pytest.fixture
def offline_config(tmp_path: Path) -> ScaffoldConfig:
    """A config that never runs venv, pip or django-admin."""
    return ScaffoldConfig(
        project_name=PROJECT_NAME,
        output_dir=tmp_path,
        install=False,
        use_startproject=False,
    )


@pytest.fixture
def install_config(tmp_path: Path) -> ScaffoldConfig:
    """A config with every external-command stage enabled."""
    return ScaffoldConfig(project_name=PROJECT_NAME, output_dir=tmp_path)


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------

@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def generator(offline_config: ScaffoldConfig) -> ProjectGenerator:
    return ProjectGenerator(offline_config)


@pytest.fixture
def template_context(generator: ProjectGenerator) -> dict[str, Any]:
    return generator.build_context()


@pytest.fixture
async def skeleton_root(generator: ProjectGenerator, offline_config: ScaffoldConfig) -> Path:
    """Project root holding ``manage.py`` and the renamed ``config/`` package."""
    offline_config.project_root.mkdir(parents=True)
    await generator.render_skeleton()
    return offline_config.project_root


# ---------------------------------------------------------------------------
# External commands
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_run_checked():
    """Patch ``run_checked`` in the bootstrap module; returns the AsyncMock."""
    with patch("drf_scaffold.bootstrap.run_checked", new_callable=AsyncMock) as mocked:
        mocked.return_value = ""
        yield mocked

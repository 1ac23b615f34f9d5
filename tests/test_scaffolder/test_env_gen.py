"""Tests for environment file generation.

Tests cover:
- Secret key generation
- envs/.env contents and key order
- Redacted envs/.env.example (default)
- Byte-identical envs/.env.example when redaction is off
- read_env_file parsing
"""

from __future__ import annotations

from pathlib import Path

import pytest

from drf_scaffold.config import PLACEHOLDER_VALUE, EnvFileSettings
from drf_scaffold.scaffolder.env_gen import (
    ENV_EXAMPLE_FILE,
    ENV_FILE,
    EnvFileGenerator,
    generate_secret_key,
    read_env_file,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def env_settings() -> EnvFileSettings:
    return EnvFileSettings(secret_key=generate_secret_key(), database_name="shop_api")


class TestGenerateSecretKey:
    def test_length_and_uniqueness(self):
        first, second = generate_secret_key(), generate_secret_key()
        assert len(first) >= 50
        assert first != second


class TestEnvFileGenerator:
    async def test_writes_both_files(self, tmp_path, renderer, env_settings):
        written = await EnvFileGenerator(renderer).generate(tmp_path / "envs", env_settings)
        assert written == {
            "env": tmp_path / "envs" / ENV_FILE,
            "example": tmp_path / "envs" / ENV_EXAMPLE_FILE,
        }

    async def test_env_contents(self, tmp_path, renderer, env_settings):
        written = await EnvFileGenerator(renderer).generate(tmp_path, env_settings)
        text = written["env"].read_text()

        assert text == "\n".join(env_settings.as_env_lines()) + "\n"
        assert read_env_file(written["env"]) == env_settings.as_dict()

    async def test_example_redacted_by_default(self, tmp_path, renderer, env_settings):
        written = await EnvFileGenerator(renderer).generate(tmp_path, env_settings)
        example_text = written["example"].read_text()
        example = read_env_file(written["example"])

        assert example_text.startswith("# ")
        assert env_settings.secret_key not in example_text
        assert list(example) == list(env_settings.as_dict())
        assert example["SECRET_KEY"] == PLACEHOLDER_VALUE
        assert example["DATABASE_PASSWORD"] == PLACEHOLDER_VALUE
        assert example["DATABASE_NAME"] == "shop_api"

    async def test_example_copied_verbatim(self, tmp_path, renderer, env_settings):
        written = await EnvFileGenerator(renderer).generate(
            tmp_path, env_settings, redact_example=False
        )
        assert written["example"].read_bytes() == written["env"].read_bytes()


class TestReadEnvFile:
    def test_skips_comments_and_blanks(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("# comment\n\nA=1\nB = two\nC=x=y\nnot a pair\n")
        assert read_env_file(path) == {"A": "1", "B": "two", "C": "x=y"}

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / ".env"
        path.write_text("")
        assert read_env_file(path) == {}

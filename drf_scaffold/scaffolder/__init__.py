"""drf-scaffold file generators.

This package renders every file of a generated Django + DRF project: the
renamed ``startproject`` skeleton, the layered settings package, environment
files and container artifacts.

Quick usage::

    from drf_scaffold.config import ScaffoldConfig
    from drf_scaffold.scaffolder import ProjectGenerator

    config = ScaffoldConfig(project_name="shop", output_dir=Path("/tmp"))
    generator = ProjectGenerator(config)
    await generator.generate_settings()
"""

from drf_scaffold.scaffolder.generator import ProjectGenerator
from drf_scaffold.scaffolder.settings_gen import SettingsLayout
from drf_scaffold.scaffolder.templates import TemplateRenderer

__all__ = [
    "ProjectGenerator",
    "SettingsLayout",
    "TemplateRenderer",
]

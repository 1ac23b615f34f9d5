"""Jinja2 rendering of the bundled project templates.

Every generated file starts as a ``.j2`` template under
``drf_scaffold/scaffolder/templates/``, grouped by the stage that writes it
(``skeleton/``, ``settings/``, ``project/``, ``docker/``).  The output name is
the template name without its ``.j2`` suffix.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATE_SUFFIX = ".j2"

_BUNDLED_TEMPLATES = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders bundled (or caller-supplied) templates into project files.

    Generated files are Python, YAML and dotenv sources, so autoescaping is
    off.  ``StrictUndefined`` turns a missing context key into an error.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else _BUNDLED_TEMPLATES
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["py_list"] = py_list

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render *template_path* (e.g. ``"settings/dev.py.j2"``) to a string."""
        return self.env.get_template(template_path).render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template into *output_path*, creating missing parents."""
        target = Path(output_path)
        await asyncio.to_thread(write_file, target, self.render(template_path, context))
        return target

    def list_templates(self, group: str) -> list[str]:
        """Return the template paths in *group*, sorted, e.g. ``skeleton/urls.py.j2``."""
        group_dir = self.template_dir / group
        if not group_dir.is_dir():
            return []
        return sorted(
            path.relative_to(self.template_dir).as_posix()
            for path in group_dir.glob(f"*{TEMPLATE_SUFFIX}")
        )


def output_name(template_path: str) -> str:
    """``"skeleton/wsgi.py.j2"`` -> ``"wsgi.py"``."""
    name = template_path.rsplit("/", 1)[-1]
    return name[: -len(TEMPLATE_SUFFIX)] if name.endswith(TEMPLATE_SUFFIX) else name


def py_list(values: list[str], indent: int = 4) -> str:
    """Render strings as a Django-style multi-line list literal.

    ``["a", "b"]`` becomes::

        [
            'a',
            'b',
        ]
    """
    pad = " " * indent
    return "[\n" + "".join(f"{pad}{value!r},\n" for value in values) + "]"


def write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")

"""Container artifacts: ``Dockerfile``, ``docker-compose.yml`` and
``docker-compose.prod.yml``.

The development compose file mounts the source tree and runs ``runserver``;
the production one runs gunicorn with a restart policy and named volumes for
static and media files.  Both start a PostgreSQL ``db`` service whose
credentials match the generated ``envs/.env``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .templates import TemplateRenderer, output_name

logger = logging.getLogger(__name__)

# Output file -> label used by callers.
ARTIFACT_LABELS: dict[str, str] = {
    "Dockerfile": "image",
    "docker-compose.yml": "development",
    "docker-compose.prod.yml": "production",
}


class DockerGenerator:
    """Renders every template in ``templates/docker/`` into the project root."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    async def generate_all(self, output_dir: Path, context: dict[str, Any]) -> dict[str, Path]:
        """Write the container artifacts into *output_dir*.

        Returns:
            ``{"image": ..., "development": ..., "production": ...}``.
        """
        written: dict[str, Path] = {}
        for template_name in self.renderer.list_templates("docker"):
            filename = output_name(template_name)
            path = await self.renderer.render_to_file(
                template_name, output_dir / filename, context
            )
            written[ARTIFACT_LABELS[filename]] = path
            logger.debug("Wrote %s", path)
        return written

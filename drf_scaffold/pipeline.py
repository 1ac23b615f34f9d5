"""drf-scaffold pipeline orchestrator.

Scaffolds a Django + Django REST Framework project as an ordered list of
stages:

 1. Create project directory
 2. Create virtual environment          (skipped with --no-install)
 3. Install packages                    (skipped with --no-install)
 4. Generate Django skeleton            (django-admin or bundled templates)
 5. Restructure settings                (config/settings/{base,dev,prod}.py)
 6. Provision directories               (apps/, common/, envs/, logs/)
 7. Write environment files             (envs/.env, envs/.env.example)
 8. Rewrite entry points                (manage.py, wsgi.py, asgi.py)
 9. Write container artifacts           (Dockerfile, compose files, .gitignore)
10. Snapshot requirements               (requirements.txt)

Each stage checks a precondition, runs, then checks a postcondition.  When a
stage fails, every path created so far is removed again (newest first) so a
failed run leaves nothing behind.

Usage::

    drf-scaffold my_project
    python -m drf_scaffold my_project --output ./work --no-install
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import sys
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.panel import Panel
from rich.prompt import Prompt

from drf_scaffold.bootstrap import EnvironmentBootstrapper
from drf_scaffold.config import ScaffoldConfig, validate_project_name
from drf_scaffold.errors import ProjectNameError, ScaffoldError, StageError
from drf_scaffold.logging_config import setup_logging
from drf_scaffold.scaffolder.env_gen import ENV_EXAMPLE_FILE, ENV_FILE, read_env_file
from drf_scaffold.scaffolder.generator import PROVISIONED_DIRS, ProjectGenerator
from drf_scaffold.scaffolder.settings_gen import validate_settings_package
from drf_scaffold.scaffolder.skeleton import CONFIG_PACKAGE, verify_skeleton
from drf_scaffold.utils import (
    activate_hint,
    console,
    format_duration,
    print_banner,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
    venv_bin,
)

logger = logging.getLogger(__name__)

MIN_SECRET_KEY_LENGTH = 50


# ---------------------------------------------------------------------------
# Stage model
# ---------------------------------------------------------------------------


@dataclass
class Stage:
    """One step of the scaffold.

    Attributes:
        name: Display name.
        action: Coroutine function doing the work.
        precondition: Raises ``StageError`` if the stage must not run.
        postcondition: Raises ``StageError`` if the stage did not produce
            what it promised.
        outputs: Paths the stage creates; removed on rollback.
    """

    name: str
    action: Callable[[], Awaitable[Any]]
    precondition: Callable[[], None] | None = None
    postcondition: Callable[[], None] | None = None
    outputs: list[Path] = field(default_factory=list)

    def rollback(self) -> list[Path]:
        """Remove this stage's outputs, newest first. Returns removed paths."""
        removed: list[Path] = []
        for path in reversed(self.outputs):
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            elif path.exists() or path.is_symlink():
                path.unlink()
            else:
                continue
            removed.append(path)
        return removed


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """Runs the scaffold stages for one ``ScaffoldConfig``.

    Attributes:
        config: Run configuration.
        generator: Writes every generated file.
        bootstrapper: Runs the venv / pip commands.
        stages: The ordered stage list built from ``config``.
    """

    def __init__(
        self,
        config: ScaffoldConfig,
        generator: ProjectGenerator | None = None,
        bootstrapper: EnvironmentBootstrapper | None = None,
    ) -> None:
        self.config = config
        self.generator = generator or ProjectGenerator(config)
        self.bootstrapper = bootstrapper or EnvironmentBootstrapper(config)
        # Stage 1 prepends the output directories it had to create.
        self._project_dir_outputs: list[Path] = [config.project_root]
        self.stages = self.build_stages()

    # ------------------------------------------------------------------
    # Stage list
    # ------------------------------------------------------------------

    def build_stages(self) -> list[Stage]:
        cfg = self.config
        root = cfg.project_root
        container_files = [
            root / "Dockerfile",
            root / "docker-compose.yml",
            root / "docker-compose.prod.yml",
            root / ".gitignore",
        ]
        stages = [
            Stage(
                name="Create project directory",
                action=self._create_project_dir,
                precondition=self._require_absent_project_dir,
                postcondition=lambda: _require_dir(root, "project"),
                outputs=self._project_dir_outputs,
            ),
        ]

        if cfg.install:
            stages += [
                Stage(
                    name="Create virtual environment",
                    action=self.bootstrapper.create_venv,
                    postcondition=lambda: _require_file(self.bootstrapper.python, "venv"),
                    outputs=[cfg.venv_path],
                ),
                Stage(
                    name="Install packages",
                    action=self.bootstrapper.install,
                    precondition=lambda: _require_file(self.bootstrapper.pip, "install"),
                ),
            ]

        stages += [
            Stage(
                name="Generate Django skeleton",
                action=self._generate_skeleton,
                precondition=self._require_skeleton_tools,
                postcondition=lambda: verify_skeleton(root),
                outputs=[root / "manage.py", cfg.config_dir, root / cfg.project_name],
            ),
            Stage(
                name="Restructure settings",
                action=self.generator.generate_settings,
                precondition=lambda: _require_file(cfg.config_dir / "settings.py", "settings"),
                postcondition=lambda: validate_settings_package(cfg.settings_dir),
                outputs=[cfg.settings_dir],
            ),
            Stage(
                name="Provision directories",
                action=self.generator.provision_directories,
                postcondition=self._verify_directories,
                outputs=[root / name for name in PROVISIONED_DIRS],
            ),
            Stage(
                name="Write environment files",
                action=self.generator.write_env_files,
                postcondition=self._verify_env_files,
                outputs=[cfg.envs_dir / ENV_FILE, cfg.envs_dir / ENV_EXAMPLE_FILE],
            ),
            Stage(
                name="Rewrite entry points",
                action=self.generator.rewrite_entry_points,
                postcondition=self._verify_entry_points,
            ),
            Stage(
                name="Write container artifacts",
                action=self._write_container_artifacts,
                postcondition=lambda: _require_files(container_files, "container"),
                outputs=container_files,
            ),
            Stage(
                name="Snapshot requirements",
                action=self._freeze_requirements,
                postcondition=lambda: _require_file(cfg.requirements_path, "requirements"),
                outputs=[cfg.requirements_path],
            ),
        ]
        return stages

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> dict[str, Any]:
        """Execute every stage in order.

        Returns:
            A summary dictionary with the project root, completed stage
            names and total duration.

        Raises:
            ScaffoldError: The first stage failure, after rollback.
        """
        start = time.monotonic()
        started: list[Stage] = []
        total = len(self.stages)

        for index, stage in enumerate(self.stages, 1):
            print_stage_header(index, total, stage.name)
            try:
                if stage.precondition is not None:
                    stage.precondition()
                started.append(stage)
                await stage.action()
                if stage.postcondition is not None:
                    stage.postcondition()
            except Exception as exc:
                print_error(f"{stage.name} failed: {exc}")
                if self.config.rollback_on_failure:
                    self.rollback(started)
                else:
                    print_warning(
                        f"Leaving partial output in {self.config.project_root}; "
                        "delete it before re-running."
                    )
                raise
            logger.info("Stage '%s' completed", stage.name)

        return {
            "project_root": self.config.project_root,
            "stages": [stage.name for stage in self.stages],
            "duration": format_duration(time.monotonic() - start),
        }

    def rollback(self, stages: list[Stage]) -> list[Path]:
        """Undo *stages* newest first. Returns every removed path."""
        removed: list[Path] = []
        for stage in reversed(stages):
            try:
                removed.extend(stage.rollback())
            except OSError as exc:
                print_warning(f"Could not roll back '{stage.name}': {exc}")
        if removed:
            print_warning(f"Rolled back {len(removed)} path(s).")
        return removed

    # ------------------------------------------------------------------
    # Stage actions
    # ------------------------------------------------------------------

    async def _create_project_dir(self) -> Path:
        self._project_dir_outputs[:-1] = _missing_dirs(self.config.output_dir)
        await asyncio.to_thread(self.config.output_dir.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(self.config.project_root.mkdir)
        return self.config.project_root

    async def _generate_skeleton(self) -> Path:
        if self.config.use_startproject:
            return await self.generator.skeleton.startproject(
                self.config.project_root,
                self.config.project_name,
                self.config.venv_path,
                timeout=self.config.command_timeout,
            )
        return await self.generator.render_skeleton()

    async def _write_container_artifacts(self) -> dict[str, Path]:
        written = await self.generator.generate_container_artifacts()
        written["gitignore"] = await self.generator.write_gitignore()
        return written

    async def _freeze_requirements(self) -> Path:
        return await self.bootstrapper.freeze(self.generator.renderer)

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    def _require_absent_project_dir(self) -> None:
        if self.config.project_root.exists():
            raise ProjectNameError(
                f"Directory '{self.config.project_name}' already exists! "
                "Please remove it or choose a different name."
            )

    def _require_skeleton_tools(self) -> None:
        if self.config.use_startproject:
            _require_file(venv_bin(self.config.venv_path, "django-admin"), "skeleton")

    def _verify_directories(self) -> None:
        root = self.config.project_root
        for name, marker in PROVISIONED_DIRS.items():
            _require_dir(root / name, "directories")
            if marker:
                _require_file(root / name / marker, "directories")

    def _verify_entry_points(self) -> None:
        targets = self.generator.entry_points.targets(self.config.project_root)
        for path, module in targets.items():
            if module not in path.read_text(encoding="utf-8"):
                raise StageError("entry-points", f"{path.name} does not reference {module}")

    def _verify_env_files(self) -> None:
        env_path = self.config.envs_dir / ENV_FILE
        example_path = self.config.envs_dir / ENV_EXAMPLE_FILE
        env = read_env_file(env_path)
        example = read_env_file(example_path)
        expected = list(self.generator.env_settings.as_dict())
        if list(env) != expected or list(example) != expected:
            raise StageError("env-files", f"expected keys {expected} in {ENV_FILE} and {ENV_EXAMPLE_FILE}")
        if len(env["SECRET_KEY"]) < MIN_SECRET_KEY_LENGTH:
            raise StageError("env-files", "generated SECRET_KEY is too short")


def _require_file(path: Path, stage: str) -> None:
    if not path.is_file():
        raise StageError(stage, f"{path} does not exist")


def _require_dir(path: Path, stage: str) -> None:
    if not path.is_dir():
        raise StageError(stage, f"{path} is not a directory")


def _missing_dirs(path: Path) -> list[Path]:
    """Return *path* and its ancestors that do not exist yet, outermost first."""
    missing: list[Path] = []
    while not path.exists() and path.parent != path:
        missing.append(path)
        path = path.parent
    return missing[::-1]


def _require_files(paths: list[Path], stage: str) -> None:
    for path in paths:
        _require_file(path, stage)


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


def collect_project_name(raw: str | None, output_dir: Path) -> str:
    """Validate the requested project name against *output_dir*.

    Raises:
        ProjectNameError: If the name is empty, already taken in
            *output_dir*, or not usable as a Python package name.
    """
    name = (raw or "").strip()
    if not name:
        raise ProjectNameError("Project name is required!")
    if (output_dir / name).exists() or (output_dir / name).is_symlink():
        raise ProjectNameError(
            f"Directory '{name}' already exists! "
            "Please remove it or choose a different name."
        )
    return validate_project_name(name)


def _print_next_steps(config: ScaffoldConfig, summary: dict[str, Any]) -> None:
    """Print the final summary panel."""
    print_summary_table(
        {
            "Project": str(config.project_root.resolve()),
            "Settings": "config.settings.base / dev / prod",
            "Environment": f"envs/{ENV_FILE}, envs/{ENV_EXAMPLE_FILE}",
            "Containers": "Dockerfile, docker-compose.yml, docker-compose.prod.yml",
            "Duration": summary["duration"],
        },
        title="Scaffold Results",
    )

    steps = [f"  cd {config.project_root}"]
    if config.install:
        steps.append(f"  {activate_hint(config.venv_dir)}")
    else:
        steps.append(f"  python -m venv {config.venv_dir} && {activate_hint(config.venv_dir)}")
        steps.append("  pip install -r requirements.txt")
    steps += ["  python manage.py migrate", "  python manage.py runserver"]

    console.print(
        Panel(
            f"Project '{config.project_name}' created successfully.\n"
            f"The inner configuration folder is named '{CONFIG_PACKAGE}' and a "
            "'common' app has been added.\n\n"
            "To get started:\n" + "\n".join(steps),
            title="[bold]Setup Complete![/bold]",
            border_style="bold green",
        )
    )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``drf-scaffold`` and ``python -m drf_scaffold``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="drf-scaffold",
        description="Scaffold a production-ready Django + DRF project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  drf-scaffold\n"
            "  drf-scaffold my_project -o ./work\n"
            "  drf-scaffold my_project --no-install --keep-partial\n"
        ),
    )
    parser.add_argument(
        "name",
        nargs="?",
        default=None,
        help="Project name (prompted for when omitted)",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Directory the project is created in (default: current directory)",
    )
    parser.add_argument(
        "--no-install",
        action="store_true",
        help="Skip the virtual environment and package installation; "
        "render the skeleton from bundled templates",
    )
    parser.add_argument(
        "--no-startproject",
        action="store_true",
        help="Render the skeleton from bundled templates instead of django-admin",
    )
    parser.add_argument(
        "--copy-env-example",
        action="store_true",
        help="Copy envs/.env verbatim to envs/.env.example (includes the secret key)",
    )
    parser.add_argument(
        "--keep-partial",
        action="store_true",
        help="Do not remove generated files when a stage fails",
    )
    parser.add_argument("--python", default=None, help="Interpreter used to create the venv")
    parser.add_argument(
        "--timeout", type=int, default=None, help="Per-command timeout in seconds (default: 600)"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: WARNING)")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    print_banner("drf-scaffold", "Django + Django REST Framework project automation")

    raw_name = args.name
    if raw_name is None:
        raw_name = Prompt.ask("Enter project name (e.g., my_project)", default="", show_default=False)

    overrides: dict[str, Any] = {
        "python": args.python,
        "command_timeout": args.timeout,
        "redact_env_example": False if args.copy_env_example else None,
        "rollback_on_failure": False if args.keep_partial else None,
    }
    if args.no_install:
        overrides.update(install=False, use_startproject=False)
    elif args.no_startproject:
        overrides["use_startproject"] = False

    try:
        output_dir = Path(args.output) if args.output else _env_output_dir()
        name = collect_project_name(raw_name, output_dir)
        config = ScaffoldConfig.from_env(name, output_dir=output_dir, **overrides)
    except ScaffoldError as exc:
        print_error(str(exc))
        sys.exit(exc.exit_code)
    except ValidationError as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(1)

    console.print(f"Creating project [bold]{config.project_name}[/bold] in {config.output_dir.resolve()}")
    pipeline = Pipeline(config)
    try:
        summary = asyncio.run(pipeline.run())
    except ScaffoldError as exc:
        print_error(str(exc))
        sys.exit(exc.exit_code)
    except OSError as exc:
        print_error(f"Filesystem error: {exc}")
        sys.exit(1)

    print_success("=== Setup Complete! ===")
    _print_next_steps(config, summary)


def _env_output_dir() -> Path:
    return Path(os.environ.get("DRF_SCAFFOLD_OUTPUT_DIR") or ".")


if __name__ == "__main__":
    main()

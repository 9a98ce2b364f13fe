"""Scaffold orchestrator.

Runs the linear pipeline::

    Resolve -> Retrieve -> Customize -> [Initialize git] -> [Install dependencies]

Each step is awaited before the next one starts. A failed scaffold leaves
whatever was written to the target directory in place.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from . import registry
from .cache import TemplateCache
from .config import Settings
from .customize import TemplateCustomizer
from .errors import (
    CommandError,
    CreateFsAppError,
    DirectoryExistsError,
    InstallError,
    ScaffoldError,
    TemplateNotFoundError,
)
from .git import init_repository
from .models import PackageManager, ProjectConfig, TemplateMetadata
from .retrieval import TemplateRetriever
from .utils import (
    console,
    create_progress,
    print_info,
    print_success,
    print_warning,
    run_checked,
)


@dataclass(frozen=True)
class ScaffoldOptions:
    skip_git: bool = False
    skip_install: bool = False


@dataclass
class ScaffoldResult:
    """Outcome of a successful scaffold."""

    project_path: Path
    template: TemplateMetadata
    git_initialized: bool = False
    dependencies_installed: bool = False


@dataclass
class Availability:
    available: bool
    template: TemplateMetadata | None = None
    suggestions: list[TemplateMetadata] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pre-flight
# ---------------------------------------------------------------------------


def validate_project_directory(name: str, cwd: str | Path | None = None) -> Path:
    """Return the target path for *name*, failing if it already exists.

    Raises:
        DirectoryExistsError: If anything exists at ``cwd / name``.
    """
    target = Path(cwd if cwd is not None else Path.cwd()) / name
    if target.exists() or target.is_symlink():
        raise DirectoryExistsError(name)
    return target


def check_template_availability(
    config: ProjectConfig,
    catalog: Mapping[str, TemplateMetadata] | None = None,
) -> Availability:
    """Resolve *config* without side effects, with suggestions on a miss."""
    template = registry.resolve(config, catalog)
    if template is not None:
        return Availability(available=True, template=template)
    return Availability(available=False, suggestions=registry.suggest(config, catalog))


# ---------------------------------------------------------------------------
# Post-steps
# ---------------------------------------------------------------------------


@contextlib.contextmanager
def _working_directory(path: Path) -> Iterator[None]:
    previous = Path.cwd()
    os.chdir(path)
    try:
        yield
    finally:
        os.chdir(previous)


async def initialize_git(target_dir: str | Path, config: ProjectConfig) -> bool:
    """Create a repository with one initial commit. Failure is only a warning."""
    try:
        await init_repository(target_dir, f"Initial commit: {config.name}")
    except CommandError as exc:
        print_warning(f"Warning: Git initialization failed: {exc}")
        return False
    print_success("Initialized git repository")
    return True


async def install_dependencies(target_dir: str | Path, package_manager: PackageManager) -> None:
    """Run ``<package manager> install`` with inherited stdio.

    Raises:
        InstallError: If the package manager is missing or exits non-zero.
    """
    print_info(f"Installing dependencies with {package_manager.value}...")
    try:
        await run_checked([package_manager.value, "install"], cwd=target_dir, capture=False)
    except CommandError as exc:
        raise InstallError(exc) from exc
    print_success("Dependencies installed")


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Scaffolder:
    """Creates a project directory from a ``ProjectConfig``.

    Attributes:
        settings: Runtime settings (cache location, template base URL).
        cwd: Parent directory of generated projects.
        catalog: Template catalog consulted by ``resolve``.
        retriever: Clones templates, backed by the cache unless disabled.
    """

    def __init__(
        self,
        settings: Settings,
        cwd: str | Path | None = None,
        catalog: Mapping[str, TemplateMetadata] | None = None,
        retriever: TemplateRetriever | None = None,
    ) -> None:
        self.settings = settings
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        if catalog is None:
            catalog = registry.build_registry(settings.template_base_url, settings.default_branch)
        self.catalog = catalog
        if retriever is None:
            cache = TemplateCache(settings) if settings.use_cache else None
            retriever = TemplateRetriever(cache=cache, work_dir=self.cwd)
        self.retriever = retriever

    def target_dir_for(self, config: ProjectConfig) -> Path:
        return self.cwd / config.name

    def resolve(self, config: ProjectConfig) -> TemplateMetadata:
        """Look the template up, raising ``TemplateNotFoundError`` with suggestions."""
        template = registry.resolve(config, self.catalog)
        if template is None:
            raise TemplateNotFoundError(config, registry.suggest(config, self.catalog))
        return template

    async def scaffold(
        self,
        config: ProjectConfig,
        options: ScaffoldOptions | None = None,
        template: TemplateMetadata | None = None,
    ) -> ScaffoldResult:
        """Run the full pipeline for *config*.

        Args:
            config: The validated configuration.
            options: Which post-steps to skip.
            template: A pre-resolved (custom URL) template; skips resolution.

        Raises:
            DirectoryExistsError: Target already exists; nothing was written.
            TemplateNotFoundError: No catalog entry matches.
            ScaffoldError: Retrieval or customization failed.
            InstallError: The package manager install failed.
        """
        options = options or ScaffoldOptions()
        target_dir = validate_project_directory(config.name, self.cwd)

        if template is None:
            template = self.resolve(config)

        console.print(f"\n[bold]Using template:[/bold] {template.description}")
        if template.features:
            console.print(f"[dim]Features: {', '.join(template.features)}[/dim]\n")

        try:
            with create_progress() as progress:
                task = progress.add_task("Downloading template...", total=None)
                await self.retriever.clone(template, target_dir, template.branch)
                progress.update(task, description="Customizing template...")
                await TemplateCustomizer(config).customize(target_dir)
        except (CreateFsAppError, OSError) as exc:
            raise ScaffoldError(exc) from exc
        print_success("Template downloaded and customized")

        result = ScaffoldResult(project_path=target_dir, template=template)

        with _working_directory(target_dir):
            if not options.skip_git:
                print_info("Initializing git repository...")
                result.git_initialized = await initialize_git(target_dir, config)

            if not options.skip_install:
                await install_dependencies(target_dir, config.package_manager)
                result.dependencies_installed = True

        print_success("\nProject created successfully!\n")
        return result

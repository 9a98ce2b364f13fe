"""create-fs-app command line interface.

Usage::

    create-fs-app create my-app --monorepo turborepo --frontend react \\
        --backend express --database mongodb --orm mongoose
    create-fs-app create my-app --preset saas-starter --no-install
    create-fs-app create my-app --template nx-react-express
    create-fs-app list
    create-fs-app cache stats
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError
from rich.panel import Panel
from rich.table import Table

from . import __version__, registry
from .cache import TemplateCache
from .config import Settings
from .errors import (
    ConfigurationError,
    CreateFsAppError,
    TemplateNotFoundError,
    describe_error,
)
from .health import display_health_check_results, run_health_check
from .models import ProjectConfig
from .presets import BUILTIN_PRESETS, PresetStore, list_builtin_presets
from .scaffold import ScaffoldOptions, Scaffolder, validate_project_directory
from .utils import (
    console,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    set_verbose,
    show_cursor,
)
from .validation import assert_valid_project_name, validate_template_url

# Stack used for --template-url, where the template itself defines the stack.
_CUSTOM_TEMPLATE_STACK = {
    "monorepo": "turborepo",
    "frontend": "react",
    "backend": "express",
    "database": "postgresql",
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_stack_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("stack")
    group.add_argument("--monorepo", help="Monorepo framework (turborepo, nx, lerna)")
    group.add_argument("--frontend", help="Frontend framework (react, next.js, vue, nuxt, angular)")
    group.add_argument("--backend", help="Backend framework (express, nest.js, fastify-ts, koa)")
    group.add_argument("--database", help="Database (postgresql, mongodb, mysql, sqlite)")
    group.add_argument("--orm", help="ORM (prisma, typeorm, mongoose, drizzle)")
    group.add_argument("--package-manager", help="Package manager (npm, yarn, pnpm)")
    group.add_argument("--styling", help="Styling (css, scss, tailwind, styled-components)")
    group.add_argument("--linting", dest="linting", action="store_true", default=True)
    group.add_argument("--no-linting", dest="linting", action="store_false", help="Drop lint configuration")
    group.add_argument("--docker", dest="docker", action="store_true", default=True)
    group.add_argument("--no-docker", dest="docker", action="store_false", help="Drop Docker configuration")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="create-fs-app",
        description="Create full-stack monorepo projects from curated templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Usage::", 1)[1] if __doc__ else None,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show diagnostic output")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a new project")
    create.add_argument("name", help="Project name (also the target directory)")
    source = create.add_mutually_exclusive_group()
    source.add_argument("--preset", help="Use a configuration preset")
    source.add_argument("-t", "--template", help="Use a catalog template by key")
    source.add_argument("--template-url", help="Use a custom template from a GitHub URL")
    create.add_argument("--branch", help="Branch of the custom template (default: main)")
    create.add_argument("--subfolder", help="Template folder inside the custom template repository")
    _add_stack_options(create)
    create.add_argument("--no-git", dest="git", action="store_false", help="Skip git initialization")
    create.add_argument("--no-install", dest="install", action="store_false", help="Skip package installation")
    create.add_argument("--no-cache", dest="cache", action="store_false", help="Skip the template cache")
    create.add_argument("--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Show diagnostic output")

    sub.add_parser("list", aliases=["ls"], help="List all available templates")

    info = sub.add_parser("info", help="Show details about a template")
    info.add_argument("template")

    search = sub.add_parser("search", help="Search templates by keyword")
    search.add_argument("keyword")

    health = sub.add_parser("health", help="Run a health check on a project")
    health.add_argument("directory", nargs="?", default=".")

    preset = sub.add_parser("preset", help="Manage configuration presets")
    preset_sub = preset.add_subparsers(dest="preset_command", required=True)
    preset_sub.add_parser("list", help="List built-in and saved presets")
    preset_delete = preset_sub.add_parser("delete", help="Delete a saved preset")
    preset_delete.add_argument("name")
    preset_save = preset_sub.add_parser("save", help="Save a stack as a preset")
    preset_save.add_argument("name")
    preset_save.add_argument("-d", "--description")
    preset_save.add_argument("--from-key", help="Derive the stack from a catalog template key")
    _add_stack_options(preset_save)

    cache = sub.add_parser("cache", help="Manage the template cache")
    cache_sub = cache.add_subparsers(dest="cache_command", required=True)
    cache_sub.add_parser("clear", help="Delete every cached template")
    cache_sub.add_parser("stats", help="Show cache statistics")

    return parser


def _config_from_stack_options(name: str, args: argparse.Namespace) -> ProjectConfig:
    missing = [opt for opt in ("monorepo", "frontend", "backend", "database") if not getattr(args, opt)]
    if missing:
        raise ConfigurationError(
            "When using stack options you must provide: "
            + ", ".join(f"--{opt}" for opt in missing)
        )
    return ProjectConfig.from_options(
        name,
        monorepo=args.monorepo,
        frontend=args.frontend,
        backend=args.backend,
        database=args.database,
        orm=args.orm,
        package_manager=args.package_manager,
        styling=args.styling,
        linting=args.linting,
        docker=args.docker,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _create(args: argparse.Namespace, settings: Settings) -> int:
    name = args.name
    assert_valid_project_name(name)
    # Fail before any clone when the directory is taken.
    validate_project_directory(name)

    template = None
    if args.preset:
        config = PresetStore(settings).get_config(args.preset, name)
        if config is None:
            print_error(f'Preset "{args.preset}" not found')
            console.print("[cyan]Use [bold]create-fs-app preset list[/bold] to see available presets.[/cyan]")
            return 1
        console.print(Panel(f"Preset: [green]{args.preset}[/green]", border_style="cyan"))
    elif args.template_url:
        validation = validate_template_url(args.template_url)
        if not validation.valid:
            raise ConfigurationError(validation.error, value=args.template_url)
        template = registry.create_custom_template(
            args.template_url, args.branch, args.subfolder, default_branch=settings.default_branch
        )
        config = ProjectConfig.from_options(name, **_CUSTOM_TEMPLATE_STACK)
        console.print(Panel(f"URL: [green]{args.template_url}[/green]", title="Custom Template", border_style="cyan"))
    elif args.template:
        entry = registry.get_template_by_name(args.template, _catalog(settings))
        if entry is None:
            print_error(f'Template "{args.template}" doesn\'t exist.')
            console.print("[cyan]Use [bold]create-fs-app list[/bold] to see available templates.[/cyan]")
            return 1
        config = registry.config_from_template_key(name, entry.key)
        template = entry.metadata
        console.print(
            Panel(
                f"Template: [green]{entry.key}[/green]\nDescription: {entry.metadata.description}",
                border_style="cyan",
            )
        )
    else:
        config = _config_from_stack_options(name, args)

    _print_config(config)

    scaffolder = Scaffolder(settings)
    result = await scaffolder.scaffold(
        config,
        ScaffoldOptions(skip_git=not args.git, skip_install=not args.install),
        template=template,
    )

    pm = config.package_manager.value
    next_step = f"{pm} install" if not result.dependencies_installed else f"{pm} run dev"
    console.print(
        Panel(
            f"[green]1.[/green] cd {config.name}\n[green]2.[/green] {next_step}",
            title="Next steps",
            border_style="green",
        )
    )
    return 0


def _print_config(config: ProjectConfig) -> None:
    backend = config.apps.backend
    print_summary_table(
        {
            "Project": config.name,
            "Monorepo": config.monorepo.value,
            "Frontend": f"{config.apps.frontend.framework.value} ({config.apps.frontend.styling.value})",
            "Backend": backend.framework.value,
            "Database": backend.database.value,
            "ORM": backend.orm.value if backend.orm else "none",
            "Package manager": config.package_manager.value,
        },
        title="Configuration",
    )


def _catalog(settings: Settings):
    return registry.build_registry(settings.template_base_url, settings.default_branch)


def _list_templates(settings: Settings) -> int:
    entries = registry.list_all_templates(_catalog(settings))
    if not entries:
        print_warning("No templates available yet")
        return 0

    grouped: dict[str, list] = {}
    for entry in entries:
        grouped.setdefault(entry.key.split("-", 1)[0], []).append(entry)

    for monorepo, items in grouped.items():
        table = Table(title=monorepo.upper(), header_style="bold cyan")
        table.add_column("Template Key", no_wrap=True)
        table.add_column("Description", style="dim")
        table.add_column("Features", style="yellow")
        for entry in items:
            table.add_row(entry.key, entry.metadata.description, ", ".join(entry.metadata.features[:3]))
        console.print(table)
        console.print()

    console.print("[cyan]Usage: create-fs-app create <project-name> --template <key>[/cyan]")
    return 0


def _template_info(args: argparse.Namespace, settings: Settings) -> int:
    entry = registry.get_template_by_name(args.template, _catalog(settings))
    if entry is None:
        print_error(f'"{args.template}" doesn\'t exist.')
        console.print("[dim]Use [cyan]create-fs-app list[/cyan] to see available templates.[/dim]")
        return 1

    features = "\n".join(f"[green]✓ {f}[/green]" for f in entry.metadata.features)
    console.print(
        Panel(
            f"[bold]{entry.key}[/bold]\n\n"
            f"[dim]Description:[/dim]\n{entry.metadata.description}\n\n"
            f"[dim]Features:[/dim]\n{features}\n\n"
            f"[dim]Repository:[/dim]\n[cyan]{entry.metadata.url}[/cyan]",
            title="Template Info",
            border_style="cyan",
        )
    )
    console.print(f"[cyan]create-fs-app create my-app --template {entry.key}[/cyan]")
    return 0


def _search(args: argparse.Namespace, settings: Settings) -> int:
    matches = registry.search_templates(args.keyword, _catalog(settings))
    if not matches:
        print_warning(f'No templates match "{args.keyword}"')
        return 0
    for entry in matches:
        console.print(f"[bold]{entry.key}[/bold]  [dim]{entry.metadata.description}[/dim]")
    return 0


def _preset(args: argparse.Namespace, settings: Settings) -> int:
    store = PresetStore(settings)

    if args.preset_command == "list":
        console.print("[bold green]Built-in Presets:[/bold green]")
        for builtin in list_builtin_presets():
            console.print(f"  {builtin.name}\n    [dim]{builtin.description}[/dim]")
        saved = store.list()
        if saved:
            console.print("\n[bold green]Your Presets:[/bold green]")
            for preset in saved:
                console.print(f"  {preset.name}")
                if preset.description:
                    console.print(f"    [dim]{preset.description}[/dim]")
        console.print("\n[cyan]Use: create-fs-app create my-app --preset <name>[/cyan]")
        return 0

    if args.preset_command == "delete":
        if args.name in BUILTIN_PRESETS:
            print_error(f'Preset "{args.name}" is built in and cannot be deleted')
            return 1
        if not store.delete(args.name):
            print_error(f'Preset "{args.name}" not found')
            return 1
        print_success(f'Preset "{args.name}" deleted successfully')
        return 0

    # save
    if args.from_key:
        entry = registry.get_template_by_name(args.from_key, _catalog(settings))
        if entry is None:
            print_error(f'Template "{args.from_key}" doesn\'t exist.')
            return 1
        config = registry.config_from_template_key("preset", entry.key)
    else:
        config = _config_from_stack_options("preset", args)
    if store.exists(args.name):
        print_warning(f'Replacing existing preset "{args.name}"')
    store.save(args.name, config, args.description)
    print_success(f'Preset "{args.name}" saved successfully')
    return 0


async def _cache(args: argparse.Namespace, settings: Settings) -> int:
    cache = TemplateCache(settings)
    if args.cache_command == "clear":
        await cache.clear()
        print_success("Cache cleared successfully")
        return 0

    stats = await cache.stats()
    console.print("[bold cyan]Cache Statistics[/bold cyan]\n")
    console.print(f"Total templates: {stats.total_entries}")
    console.print(f"Cache size: {stats.total_size_display}")
    if stats.entries:
        console.print("\n[bold]Cached Templates:[/bold]")
        for entry in stats.entries:
            console.print(f"  [dim]{entry.key}[/dim]")
            console.print(f"    [dim]Last used: {entry.last_used}[/dim]")
    return 0


def _report_template_not_found(exc: TemplateNotFoundError) -> None:
    print_warning(str(exc))
    if exc.suggestions:
        console.print("\n[cyan]Available alternatives:[/cyan]")
        for suggestion in exc.suggestions:
            console.print(f"  - {suggestion.description}")
    console.print("\n[cyan]Use [bold]create-fs-app list[/bold] to see every template.[/cyan]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run(argv: Sequence[str] | None = None) -> int:
    """Parse *argv*, dispatch the command and return the exit status."""
    args = build_parser().parse_args(argv)
    set_verbose(args.verbose)

    settings = Settings.from_env()
    if getattr(args, "cache", True) is False:
        settings = settings.model_copy(update={"use_cache": False})

    try:
        if args.command == "create":
            return asyncio.run(_create(args, settings))
        if args.command in ("list", "ls"):
            return _list_templates(settings)
        if args.command == "info":
            return _template_info(args, settings)
        if args.command == "search":
            return _search(args, settings)
        if args.command == "health":
            result = run_health_check(Path(args.directory))
            display_health_check_results(result)
            return 0
        if args.command == "preset":
            return _preset(args, settings)
        if args.command == "cache":
            return asyncio.run(_cache(args, settings))
    except TemplateNotFoundError as exc:
        # A guided dead end rather than a crash.
        _report_template_not_found(exc)
        return 0
    except CreateFsAppError as exc:
        message, code = describe_error(exc)
        print_error(f"Error: {message}")
        console.print(f"[dim]Error code: {code}[/dim]")
        return 1
    except ValidationError as exc:
        print_error(f"Error: invalid configuration\n{exc}")
        return 1
    except KeyboardInterrupt:
        print_error("Aborted.")
        return 1
    finally:
        show_cursor()

    return 1


def main() -> None:
    """Console script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()

"""Project health check.

Independent file-existence and JSON-validity checks against a generated
project directory. Nothing here runs external processes.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from .utils import console


class HealthCheck(BaseModel):
    name: str
    passed: bool
    message: str
    suggestion: Optional[str] = None


class HealthCheckResult(BaseModel):
    passed: bool = Field(default=True)
    checks: list[HealthCheck] = Field(default_factory=list)


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def check_package_json(project_dir: Path) -> HealthCheck:
    try:
        _read_json(project_dir / "package.json")
    except (OSError, ValueError):
        return HealthCheck(
            name="package.json",
            passed=False,
            message="package.json not found or invalid",
            suggestion="Make sure you are in a valid Node.js project directory",
        )
    return HealthCheck(name="package.json", passed=True, message="Valid package.json found")


def check_node_modules(project_dir: Path) -> HealthCheck:
    if (project_dir / "node_modules").is_dir():
        return HealthCheck(name="Dependencies", passed=True, message="node_modules directory exists")
    return HealthCheck(
        name="Dependencies",
        passed=False,
        message="node_modules not found",
        suggestion="Run npm install (or yarn/pnpm install) to install dependencies",
    )


def check_git_repo(project_dir: Path) -> HealthCheck:
    if (project_dir / ".git").exists():
        return HealthCheck(name="Git Repository", passed=True, message="Git repository initialized")
    return HealthCheck(
        name="Git Repository",
        passed=False,
        message="Not a git repository",
        suggestion='Run "git init" to initialize a git repository',
    )


def check_typescript_config(project_dir: Path) -> HealthCheck:
    try:
        _read_json(project_dir / "tsconfig.json")
    except (OSError, ValueError):
        return HealthCheck(
            name="TypeScript Configuration",
            passed=False,
            message="tsconfig.json not found or invalid",
            suggestion="Create a tsconfig.json file for TypeScript configuration",
        )
    return HealthCheck(name="TypeScript Configuration", passed=True, message="Valid tsconfig.json found")


def check_env_files(project_dir: Path) -> HealthCheck:
    backend = project_dir / "apps" / "backend"
    if not (backend / ".env.example").is_file():
        return HealthCheck(
            name="Environment Files",
            passed=False,
            message="Environment configuration files not found",
            suggestion="Create .env.example and .env files in apps/backend/",
        )
    if not (backend / ".env").is_file():
        return HealthCheck(
            name="Environment Files",
            passed=False,
            message=".env.example found but .env is missing",
            suggestion="Copy .env.example to .env and configure your environment variables",
        )
    return HealthCheck(name="Environment Files", passed=True, message=".env and .env.example found")


def check_monorepo_structure(project_dir: Path) -> HealthCheck:
    apps = project_dir / "apps"
    if (apps / "frontend").is_dir() and (apps / "backend").is_dir():
        return HealthCheck(
            name="Monorepo Structure",
            passed=True,
            message="Valid monorepo structure (apps/frontend, apps/backend)",
        )
    return HealthCheck(
        name="Monorepo Structure",
        passed=False,
        message="Expected monorepo structure not found",
        suggestion="Ensure apps/frontend and apps/backend directories exist",
    )


def check_dependencies(project_dir: Path) -> HealthCheck:
    try:
        pkg = _read_json(project_dir / "package.json")
    except (OSError, ValueError):
        pkg = None
    if not isinstance(pkg, dict):
        return HealthCheck(
            name="Dependencies Check",
            passed=False,
            message="Could not read package.json",
            suggestion="Fix package.json before checking dependencies",
        )
    if not pkg.get("dependencies") and not pkg.get("devDependencies"):
        return HealthCheck(
            name="Dependencies Check",
            passed=False,
            message="No dependencies defined",
            suggestion="Add required dependencies to package.json",
        )
    return HealthCheck(name="Dependencies Check", passed=True, message="Dependencies are declared")


def check_build_scripts(project_dir: Path) -> HealthCheck:
    try:
        pkg = _read_json(project_dir / "package.json")
    except (OSError, ValueError):
        pkg = None
    scripts = pkg.get("scripts", {}) if isinstance(pkg, dict) else {}
    missing = [name for name in ("build", "dev") if name not in scripts]
    if missing:
        return HealthCheck(
            name="Build Scripts",
            passed=False,
            message=f"Missing scripts: {', '.join(missing)}",
            suggestion='Add "build" and "dev" scripts to package.json',
        )
    return HealthCheck(name="Build Scripts", passed=True, message="build and dev scripts configured")


CHECKS: tuple[Callable[[Path], HealthCheck], ...] = (
    check_package_json,
    check_node_modules,
    check_git_repo,
    check_typescript_config,
    check_env_files,
    check_monorepo_structure,
    check_dependencies,
    check_build_scripts,
)


def run_health_check(project_dir: str | Path | None = None) -> HealthCheckResult:
    """Run every check against *project_dir* (default: current directory)."""
    root = Path(project_dir) if project_dir is not None else Path.cwd()
    checks = [check(root) for check in CHECKS]
    return HealthCheckResult(passed=all(c.passed for c in checks), checks=checks)


def display_health_check_results(result: HealthCheckResult) -> None:
    console.print()
    for check in result.checks:
        icon = "[green]✓[/green]" if check.passed else "[red]✗[/red]"
        console.print(f"{icon} {check.name}")
        console.print(f"  [dim]{check.message}[/dim]")
        if not check.passed and check.suggestion:
            console.print(f"  [yellow]{check.suggestion}[/yellow]")
        console.print()

    passed_count = sum(1 for c in result.checks if c.passed)
    console.print(f"[bold]Results: {passed_count}/{len(result.checks)} checks passed[/bold]\n")
    if result.passed:
        console.print("[bold green]Project is healthy![/bold green]\n")
    else:
        console.print("[bold yellow]Some issues found. See suggestions above.[/bold yellow]\n")

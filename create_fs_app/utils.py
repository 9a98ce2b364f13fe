"""Shared utility functions for create-fs-app.

Provides async command execution, JSON I/O, file-system helpers and
Rich-based progress reporting. Library modules report through the shared
``console`` rather than printing directly so the CLI controls all output.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .errors import CommandError

console = Console()

_verbose = False

SHOW_CURSOR = "\x1b[?25h"

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    capture: bool = True,
) -> tuple[int, str, str]:
    """Run a command asynchronously and wait for it to exit.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams so the user sees live output).

    Returns:
        A ``(returncode, stdout, stderr)`` tuple. If *capture* is ``False``
        the stdout/stderr strings will be empty.

    Raises:
        FileNotFoundError: If the executable does not exist.
    """
    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=stdout_pipe,
        stderr=stderr_pipe,
        cwd=str(cwd) if cwd else None,
    )
    stdout_bytes, stderr_bytes = await process.communicate()

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


async def run_checked(
    cmd: list[str],
    cwd: str | Path | None = None,
    capture: bool = True,
    error_cls: type[CommandError] = CommandError,
) -> str:
    """Run *cmd* and return its stdout, raising on failure.

    Raises:
        CommandError: (or *error_cls*) when the command exits non-zero or the
            executable cannot be found. ``returncode`` is ``None`` in the
            latter case.
    """
    cmd_str = " ".join(cmd)
    try:
        returncode, stdout, stderr = await run_command(cmd, cwd=cwd, capture=capture)
    except FileNotFoundError as exc:
        raise error_cls(
            f"Command not found: {cmd[0]}",
            command=cmd_str,
        ) from exc

    if returncode != 0:
        detail = f"\n{stderr}" if stderr else ""
        raise error_cls(
            f"Command failed (exit {returncode}): {cmd_str}{detail}",
            command=cmd_str,
            returncode=returncode,
            stderr=stderr,
        )
    return stdout


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON object file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        return {"_root": data}
    return data


def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Save data as pretty-printed JSON, creating parent directories."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n",
        encoding="utf-8",
    )


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def remove_tree(path: str | Path) -> None:
    """Recursively delete *path*. A missing path is not an error."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass


def copy_tree(source: str | Path, destination: str | Path) -> None:
    """Copy the contents of *source* into *destination*, merging directories."""
    shutil.copytree(source, destination, dirs_exist_ok=True, symlinks=True)


def directory_size(path: str | Path) -> int:
    """Total size in bytes of every regular file under *path*."""
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            file_path = Path(root) / name
            if file_path.is_symlink():
                continue
            try:
                total += file_path.stat().st_size
            except FileNotFoundError:
                continue
    return total


def format_size(num_bytes: int) -> str:
    """Format a byte count in megabytes, e.g. ``"1.25 MB"``."""
    return f"{num_bytes / (1024 * 1024):.2f} MB"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def set_verbose(enabled: bool) -> None:
    """Toggle ``print_verbose`` output."""
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def print_verbose(message: str) -> None:
    """Print a dim diagnostic line, only when verbose mode is on."""
    if _verbose:
        console.print(f"[dim]{message}[/dim]")


def print_info(message: str) -> None:
    console.print(f"[cyan]{message}[/cyan]")


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def create_progress() -> Progress:
    """Create a Rich spinner configured for scaffold steps.

    Returns:
        A ``Progress`` instance suitable for use as a context manager.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def show_cursor() -> None:
    """Make sure the terminal cursor is visible (spinners hide it)."""
    if sys.stdout.isatty():
        sys.stdout.write(SHOW_CURSOR)
        sys.stdout.flush()

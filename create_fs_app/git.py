"""Thin async wrappers around the git binary.

Every helper raises ``GitError`` when git exits non-zero or is not installed.
No output parsing is done beyond the exit status.
"""

from __future__ import annotations

from pathlib import Path

from .errors import GitError
from .utils import print_verbose, run_checked


async def run_git(*args: str, cwd: str | Path | None = None) -> str:
    """Run a git command and return its stdout.

    Raises:
        GitError: If the command exits with a non-zero code or git is missing.
    """
    cmd = ["git", *args]
    print_verbose(f"$ {' '.join(cmd)}")
    return await run_checked(cmd, cwd=cwd, error_cls=GitError)


async def shallow_clone(
    url: str,
    destination: str | Path,
    branch: str,
    single_branch: bool = False,
) -> None:
    """Clone *url* at *branch* with depth 1 into *destination*."""
    args = ["clone", "--depth", "1", "--branch", branch]
    if single_branch:
        args.append("--single-branch")
    args.extend([url, str(destination)])
    await run_git(*args)


async def init_repository(path: str | Path, message: str) -> None:
    """Initialise a repository at *path*, stage everything and commit once."""
    await run_git("init", cwd=path)
    await run_git("add", ".", cwd=path)
    await run_git("commit", "-m", message, cwd=path)

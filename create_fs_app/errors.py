"""Exception hierarchy for create-fs-app.

Lower layers (registry, cache lookups) represent expected absence with a
``None``/``False`` return value. The exceptions below are reserved for
configuration mistakes and for genuine I/O or subprocess failures, and are
wrapped with context as they cross each component boundary.
"""

from __future__ import annotations

import errno
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ProjectConfig, TemplateMetadata


class CreateFsAppError(Exception):
    """Base class for every error raised by create-fs-app."""

    code: str = "ERROR"


class ConfigurationError(CreateFsAppError):
    """Raised when a configuration value is invalid. Detected before any I/O."""

    code = "INVALID_CONFIG"

    def __init__(self, message: str, value: Any = None, valid: Iterable[str] = ()) -> None:
        self.value = value
        self.valid = list(valid)
        if self.valid:
            message = f"{message}\nValid options: {', '.join(self.valid)}"
        super().__init__(message)


class DirectoryExistsError(CreateFsAppError):
    """Raised by the pre-flight check when the target directory already exists."""

    code = "EEXIST"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'Directory "{name}" already exists. Please choose a different name '
            "or remove the existing directory."
        )


class TemplateNotFoundError(CreateFsAppError):
    """Raised when no catalog entry matches the requested stack."""

    code = "TEMPLATE_NOT_FOUND"

    def __init__(
        self,
        config: "ProjectConfig",
        suggestions: "list[TemplateMetadata] | None" = None,
    ) -> None:
        self.config = config
        self.suggestions = list(suggestions or [])
        backend = config.apps.backend
        message = (
            "Template not found for your configuration:\n"
            f"   - Monorepo: {config.monorepo.value}\n"
            f"   - Frontend: {config.apps.frontend.framework.value}\n"
            f"   - Backend: {backend.framework.value}\n"
            f"   - Database: {backend.database.value}\n"
            f"   - ORM: {backend.orm.value if backend.orm else 'none'}\n\n"
            "This combination doesn't have a pre-built template yet."
        )
        super().__init__(message)


class CommandError(CreateFsAppError):
    """Raised when an external command exits non-zero or cannot be started."""

    code = "COMMAND_FAILED"

    def __init__(self, message: str, command: str = "", returncode: int | None = None, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class GitError(CommandError):
    """Raised when a git command fails."""

    code = "GIT_ERROR"


class CacheError(CreateFsAppError):
    """Raised when populating the template cache fails."""

    code = "CACHE_ERROR"


class RetrievalError(CreateFsAppError):
    """Raised when a template cannot be cloned or extracted."""

    code = "RETRIEVAL_ERROR"

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class ScaffoldError(CreateFsAppError):
    """Raised when retrieval or customization fails during a scaffold."""

    code = "SCAFFOLD_ERROR"

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Failed to scaffold project: {cause}")


class InstallError(CreateFsAppError):
    """Raised when the package manager install step fails."""

    code = "PKG_MANAGER_ERROR"

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Failed to install dependencies: {cause}")


# ---------------------------------------------------------------------------
# User-facing descriptions
# ---------------------------------------------------------------------------


def _root_cause(exc: BaseException) -> BaseException:
    seen: set[int] = set()
    while id(exc) not in seen:
        seen.add(id(exc))
        inner = getattr(exc, "cause", None) or exc.__cause__
        if inner is None:
            break
        exc = inner
    return exc


def describe_error(exc: BaseException) -> tuple[str, str]:
    """Return a ``(message, code)`` pair with an actionable hint for *exc*.

    Known low-level failures (permissions, disk space, network, missing git)
    anywhere in the cause chain are translated into a short instruction.
    Everything else falls back to the exception's own message.
    """
    root = _root_cause(exc)
    text = str(exc)

    if isinstance(exc, InstallError):
        return (
            f"{text}\nThe project directory was created but dependencies are not installed. "
            "Try running the installation manually.",
            exc.code,
        )

    if isinstance(root, OSError):
        if root.errno == errno.EACCES or isinstance(root, PermissionError):
            return (
                "Permission denied. Check the permissions of the target directory.",
                "EACCES",
            )
        if root.errno == errno.ENOSPC:
            return ("Not enough disk space to create project.", "ENOSPC")
        if root.errno == errno.EEXIST:
            return (
                "Directory already exists. Please choose a different name or "
                "remove the existing directory.",
                "EEXIST",
            )

    lowered = text.lower()
    if "could not resolve host" in lowered or "getaddrinfo" in lowered:
        return (
            "Network error: Unable to connect to template repository. "
            "Check your internet connection.",
            "ENOTFOUND",
        )

    if isinstance(root, GitError) and root.returncode is None:
        return (
            "Git error: Make sure git is installed and accessible from your PATH.\n"
            "Install git: https://git-scm.com/downloads",
            "GIT_ERROR",
        )

    code = exc.code if isinstance(exc, CreateFsAppError) else "ERROR"
    return text, code

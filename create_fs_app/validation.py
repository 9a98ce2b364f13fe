"""Input validation for project names and custom template URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ConfigurationError

MAX_NAME_LENGTH = 214

RESERVED_NAMES: frozenset[str] = frozenset(
    {"node_modules", "package.json", "package-lock.json", "npm", "node"}
)

_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+$", re.IGNORECASE)
_GITHUB_URL_PATTERN = re.compile(r"^https://github\.com/[\w-]+/[\w.-]+?(\.git)?$")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str = ""


def validate_project_name(name: str) -> ValidationResult:
    """Check that *name* is usable as a directory and package name.

    * Must not be empty.
    * Only letters, numbers, hyphens and underscores.
    * Shorter than 214 characters (npm package name limit).
    * Must not start with ``.`` or ``_``.
    * Must not be a reserved name.
    """
    if not name or not name.strip():
        return ValidationResult(False, "Project name cannot be empty")

    if not _NAME_PATTERN.match(name):
        return ValidationResult(
            False,
            "Project name can only contain letters, numbers, hyphens, and underscores.\n"
            f'Invalid name: "{name}"',
        )

    if len(name) >= MAX_NAME_LENGTH:
        return ValidationResult(False, f"Project name must be less than {MAX_NAME_LENGTH} characters")

    if name[0] in "._":
        return ValidationResult(False, "Project name cannot start with . or _")

    if name.lower() in RESERVED_NAMES:
        return ValidationResult(False, f'"{name}" is a reserved name')

    return ValidationResult(True)


def assert_valid_project_name(name: str) -> None:
    """Raise ``ConfigurationError`` when *name* fails ``validate_project_name``."""
    result = validate_project_name(name)
    if not result.valid:
        raise ConfigurationError(result.error, value=name)


def validate_template_url(url: str) -> ValidationResult:
    """Accept only ``https://github.com/<owner>/<repo>[.git]`` URLs."""
    if not url or not url.strip():
        return ValidationResult(False, "Template URL cannot be empty")

    if not _GITHUB_URL_PATTERN.match(url.strip()):
        return ValidationResult(
            False,
            "Template URL must be a valid GitHub repository URL (https://github.com/user/repo)",
        )

    return ValidationResult(True)

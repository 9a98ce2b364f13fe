"""Template registry.

Maps a ``ProjectConfig`` to a template repository. The catalog is an
immutable mapping keyed by the template key::

    {monorepo}-{frontend}-{backend}-{database}-{orm or "none"}

e.g. ``turborepo-nextjs-nestjs-postgresql-prisma``. All functions here are
pure: no I/O and no mutation.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Mapping
from types import MappingProxyType

from .config import DEFAULT_BRANCH, DEFAULT_TEMPLATE_BASE_URL
from .errors import ConfigurationError
from .models import (
    BackendFramework,
    FrontendFramework,
    PackageManager,
    ProjectConfig,
    TemplateEntry,
    TemplateMetadata,
)

MAX_SUGGESTIONS = 3

# (key, description, features) in catalog order.
_CATALOG: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    (
        "turborepo-nextjs-nestjs-postgresql-prisma",
        "Turborepo with Next.js, NestJS, PostgreSQL, and Prisma",
        ("TypeScript", "Tailwind CSS", "Docker", "ESLint", "Prettier"),
    ),
    (
        "turborepo-react-express-mongodb-mongoose",
        "Turborepo with React (Vite), Express, MongoDB, and Mongoose",
        ("TypeScript", "Tailwind CSS", "Docker", "Testing"),
    ),
    (
        "turborepo-nextjs-express-mysql-prisma",
        "Turborepo with Next.js, Express, MySQL, and Prisma",
        ("TypeScript", "Styled Components", "Docker"),
    ),
    (
        "turborepo-vue-nestjs-postgresql-typeorm",
        "Turborepo with Vue, NestJS, PostgreSQL, and TypeORM",
        ("TypeScript", "Tailwind CSS", "Docker"),
    ),
    (
        "nx-nextjs-nestjs-postgresql-prisma",
        "Nx workspace with Next.js, NestJS, PostgreSQL, and Prisma",
        ("TypeScript", "Tailwind CSS", "Testing", "Storybook"),
    ),
    (
        "nx-react-express-mongodb-mongoose",
        "Nx workspace with React, Express, MongoDB, and Mongoose",
        ("TypeScript", "CSS Modules", "Testing"),
    ),
    (
        "lerna-react-express-postgresql-prisma",
        "Lerna monorepo with React, Express, PostgreSQL, and Prisma",
        ("TypeScript", "Tailwind CSS", "Docker"),
    ),
)


def build_registry(
    base_url: str = DEFAULT_TEMPLATE_BASE_URL,
    branch: str = DEFAULT_BRANCH,
) -> Mapping[str, TemplateMetadata]:
    """Build the read-only catalog with repository URLs under *base_url* on *branch*."""
    base = base_url.rstrip("/")
    return MappingProxyType(
        {
            key: TemplateMetadata(
                url=f"{base}/template-{key}",
                branch=branch,
                description=description,
                features=features,
            )
            for key, description, features in _CATALOG
        }
    )


TEMPLATE_REGISTRY: Mapping[str, TemplateMetadata] = build_registry()


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def _normalize(value: str) -> str:
    """Lower-case *value* and drop characters that are not valid in a key."""
    return re.sub(r"[^a-z0-9-]", "", value.lower())


def _partial_key(config: ProjectConfig) -> str:
    frontend = _normalize(config.apps.frontend.framework.value)
    backend = _normalize(config.apps.backend.framework.value)
    return f"{config.monorepo.value}-{frontend}-{backend}".lower()


def _key_without_orm(config: ProjectConfig) -> str:
    return f"{_partial_key(config)}-{config.apps.backend.database.value}".lower()


def get_template_key(config: ProjectConfig) -> str:
    """Return the deterministic catalog key for *config*."""
    orm = config.apps.backend.orm.value if config.apps.backend.orm else "none"
    return f"{_key_without_orm(config)}-{orm}".lower()


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve(
    config: ProjectConfig,
    registry: Mapping[str, TemplateMetadata] | None = None,
) -> TemplateMetadata | None:
    """Find the template for *config*; first success wins.

    1. Exact key.
    2. Key with the ORM segment removed.
    3. First catalog key (in catalog order) starting with
       ``{monorepo}-{frontend}-{backend}``.
    """
    catalog = TEMPLATE_REGISTRY if registry is None else registry

    exact = catalog.get(get_template_key(config))
    if exact is not None:
        return exact

    without_orm = catalog.get(_key_without_orm(config))
    if without_orm is not None:
        return without_orm

    partial = _partial_key(config)
    for key, metadata in catalog.items():
        if key.startswith(partial):
            return metadata

    return None


def has_template(
    config: ProjectConfig,
    registry: Mapping[str, TemplateMetadata] | None = None,
) -> bool:
    return resolve(config, registry) is not None


def suggest(
    config: ProjectConfig,
    registry: Mapping[str, TemplateMetadata] | None = None,
) -> list[TemplateMetadata]:
    """Up to three catalog entries sharing the requested monorepo tool."""
    catalog = TEMPLATE_REGISTRY if registry is None else registry
    matches = [
        metadata for key, metadata in catalog.items() if key.startswith(config.monorepo.value)
    ]
    return matches[:MAX_SUGGESTIONS]


# ---------------------------------------------------------------------------
# Listing and lookup
# ---------------------------------------------------------------------------

def list_all_templates(
    registry: Mapping[str, TemplateMetadata] | None = None,
) -> list[TemplateEntry]:
    catalog = TEMPLATE_REGISTRY if registry is None else registry
    return [TemplateEntry(key=key, metadata=metadata) for key, metadata in catalog.items()]


def get_template_by_name(
    name: str,
    registry: Mapping[str, TemplateMetadata] | None = None,
) -> TemplateEntry | None:
    """Look up a template by exact key, then by the first key containing *name*."""
    catalog = TEMPLATE_REGISTRY if registry is None else registry
    needle = name.strip().lower()
    if not needle:
        return None
    if needle in catalog:
        return TemplateEntry(key=needle, metadata=catalog[needle])
    for key, metadata in catalog.items():
        if needle in key:
            return TemplateEntry(key=key, metadata=metadata)
    return None


def search_templates(
    keyword: str,
    registry: Mapping[str, TemplateMetadata] | None = None,
) -> list[TemplateEntry]:
    """Case-insensitive search over keys, descriptions and feature tags."""
    needle = keyword.strip().lower()
    return [
        entry
        for entry in list_all_templates(registry)
        if needle in entry.key
        or needle in entry.metadata.description.lower()
        or any(needle in feature.lower() for feature in entry.metadata.features)
    ]


def template_stats(
    registry: Mapping[str, TemplateMetadata] | None = None,
) -> dict[str, dict[str, int]]:
    """Count catalog entries per monorepo tool, frontend and backend."""
    monorepos: Counter[str] = Counter()
    frontends: Counter[str] = Counter()
    backends: Counter[str] = Counter()
    for entry in list_all_templates(registry):
        parts = entry.key.split("-")
        monorepos[parts[0]] += 1
        frontends[parts[1]] += 1
        backends[parts[2]] += 1
    return {
        "monorepo": dict(monorepos),
        "frontend": dict(frontends),
        "backend": dict(backends),
    }


# ---------------------------------------------------------------------------
# Ad-hoc templates
# ---------------------------------------------------------------------------

_KEY_TO_FRONTEND = {_normalize(f.value): f for f in FrontendFramework}
_KEY_TO_BACKEND = {_normalize(b.value): b for b in BackendFramework}


def config_from_template_key(name: str, key: str) -> ProjectConfig:
    """Derive a ``ProjectConfig`` from a catalog key.

    Used when the user picks a template directly; styling, linting, docker
    and package manager take their defaults.

    Raises:
        ConfigurationError: If the key does not describe a known stack.
    """
    if "-" not in key:
        raise ConfigurationError(f'Invalid template key: "{key}"', value=key)
    monorepo, rest = key.split("-", 1)
    frontend = next((f for k, f in _KEY_TO_FRONTEND.items() if rest.startswith(f"{k}-")), None)
    if frontend is not None:
        rest = rest[len(_normalize(frontend.value)) + 1:]
    backend = next((b for k, b in _KEY_TO_BACKEND.items() if rest.startswith(f"{k}-")), None)
    if backend is not None:
        rest = rest[len(_normalize(backend.value)) + 1:]
    database, _, orm = rest.partition("-")

    return ProjectConfig.from_options(
        name,
        monorepo=monorepo,
        frontend=frontend.value if frontend else rest,
        backend=backend.value if backend else rest,
        database=database,
        orm=None if orm in ("", "none") else orm,
        package_manager=PackageManager.NPM.value,
    )


def create_custom_template(
    url: str,
    branch: str | None = None,
    subfolder: str | None = None,
    default_branch: str = DEFAULT_BRANCH,
) -> TemplateMetadata:
    """Build metadata for a user-supplied template repository.

    *default_branch* is used when no *branch* is given.
    """
    return TemplateMetadata(
        url=url.strip(),
        branch=branch or default_branch,
        subfolder=subfolder or None,
        description=f"Custom template from {url.strip()}",
        features=("Custom",),
    )

"""Pydantic v2 models for create-fs-app.

Defines the validated stack configuration (``ProjectConfig``), the catalog
entry shape (``TemplateMetadata``) and the persisted cache/preset records.
Configuration models are frozen: once validated they flow by value.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import DEFAULT_BRANCH
from .errors import ConfigurationError
from .validation import assert_valid_project_name, validate_project_name


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class MonorepoFramework(str, Enum):
    """Supported monorepo tools."""
    TURBOREPO = "turborepo"
    NX = "nx"
    LERNA = "lerna"


class PackageManager(str, Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


class FrontendFramework(str, Enum):
    REACT = "react"
    NEXTJS = "next.js"
    VUE = "vue"
    NUXT = "nuxt"
    ANGULAR = "angular"


class BackendFramework(str, Enum):
    EXPRESS = "express"
    NESTJS = "nest.js"
    FASTIFY_TS = "fastify-ts"
    KOA = "koa"


class Database(str, Enum):
    MONGODB = "mongodb"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"


class Styling(str, Enum):
    CSS = "css"
    SCSS = "scss"
    TAILWIND = "tailwind"
    STYLED_COMPONENTS = "styled-components"


class ORM(str, Enum):
    PRISMA = "prisma"
    TYPEORM = "typeorm"
    MONGOOSE = "mongoose"
    DRIZZLE = "drizzle"


class FrontendTesting(str, Enum):
    JEST = "jest"
    VITEST = "vitest"
    CYPRESS = "cypress"


class BackendTesting(str, Enum):
    JEST = "jest"
    MOCHA = "mocha"


def parse_choice(enum_cls: type[Enum], value: Any, label: str) -> Any:
    """Coerce *value* into *enum_cls* or raise an actionable ``ConfigurationError``."""
    if isinstance(value, enum_cls):
        return value
    normalized = str(value).strip().lower() if value is not None else ""
    for member in enum_cls:
        if member.value == normalized:
            return member
    raise ConfigurationError(
        f'Invalid {label}: "{value}"',
        value=value,
        valid=[m.value for m in enum_cls],
    )


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FrontendApp(_Frozen):
    """Frontend sub-application settings."""
    framework: FrontendFramework = Field(..., description="Frontend framework")
    typescript: bool = Field(default=True)
    styling: Styling = Field(default=Styling.TAILWIND)
    linting: bool = Field(default=True, description="Keep lint configuration files")
    testing: Optional[FrontendTesting] = Field(default=None)


class BackendApp(_Frozen):
    """Backend sub-application settings."""
    framework: BackendFramework = Field(..., description="Backend framework")
    database: Database = Field(..., description="Database engine")
    orm: Optional[ORM] = Field(default=None)
    docker: bool = Field(default=True, description="Keep container files")
    testing: Optional[BackendTesting] = Field(default=None)


class Apps(_Frozen):
    frontend: FrontendApp
    backend: BackendApp


class StackConfig(_Frozen):
    """A project configuration without a name.

    This is the shape stored by presets; ``with_name`` completes it into a
    ``ProjectConfig``.
    """

    monorepo: MonorepoFramework = Field(..., description="Monorepo tool")
    package_manager: PackageManager = Field(default=PackageManager.NPM, alias="packageManager")
    apps: Apps

    def with_name(self, name: str) -> "ProjectConfig":
        """Return a validated ``ProjectConfig`` named *name*."""
        return ProjectConfig(name=name, **self.model_dump(by_alias=True))


class ProjectConfig(StackConfig):
    """The validated user intent for one scaffold."""

    name: str = Field(..., description="Target directory and manifest name")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        result = validate_project_name(value)
        if not result.valid:
            raise ValueError(result.error)
        return value

    def without_name(self) -> StackConfig:
        """Return the preset payload for this configuration."""
        return StackConfig.model_validate(self.model_dump(by_alias=True, exclude={"name"}))

    @classmethod
    def from_options(
        cls,
        name: str,
        *,
        monorepo: Any,
        frontend: Any,
        backend: Any,
        database: Any,
        orm: Any = None,
        package_manager: Any = None,
        styling: Any = None,
        linting: bool = True,
        docker: bool = True,
        frontend_testing: Any = None,
        backend_testing: Any = None,
    ) -> "ProjectConfig":
        """Build a config from flat option values.

        Every enum value is checked before the model is constructed so the
        error names the offending value and lists the valid set.

        Raises:
            ConfigurationError: On an unknown value or an invalid name.
        """
        assert_valid_project_name(name)
        return cls(
            name=name,
            monorepo=parse_choice(MonorepoFramework, monorepo, "monorepo framework"),
            package_manager=(
                parse_choice(PackageManager, package_manager, "package manager")
                if package_manager
                else PackageManager.NPM
            ),
            apps=Apps(
                frontend=FrontendApp(
                    framework=parse_choice(FrontendFramework, frontend, "frontend framework"),
                    styling=parse_choice(Styling, styling, "styling") if styling else Styling.TAILWIND,
                    linting=linting,
                    testing=(
                        parse_choice(FrontendTesting, frontend_testing, "frontend testing")
                        if frontend_testing
                        else None
                    ),
                ),
                backend=BackendApp(
                    framework=parse_choice(BackendFramework, backend, "backend framework"),
                    database=parse_choice(Database, database, "database"),
                    orm=parse_choice(ORM, orm, "ORM") if orm else None,
                    docker=docker,
                    testing=(
                        parse_choice(BackendTesting, backend_testing, "backend testing")
                        if backend_testing
                        else None
                    ),
                ),
            ),
        )


# ---------------------------------------------------------------------------
# Template catalog
# ---------------------------------------------------------------------------

class TemplateMetadata(_Frozen):
    """One catalog entry. ``description`` and ``features`` are presentation-only."""
    url: str = Field(..., description="Remote repository location")
    branch: str = Field(default=DEFAULT_BRANCH)
    subfolder: Optional[str] = Field(default=None, description="Template path inside the repository")
    description: str = Field(default="")
    features: tuple[str, ...] = Field(default=())


class TemplateEntry(_Frozen):
    key: str
    metadata: TemplateMetadata


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------

class CacheEntry(BaseModel):
    """Bookkeeping for one cached template tree."""
    model_config = ConfigDict(populate_by_name=True)

    url: str
    branch: str
    cached_at: str = Field(..., alias="cachedAt")
    last_used: str = Field(..., alias="lastUsed")


class CacheIndex(BaseModel):
    """Schema of ``cache-metadata.json``."""
    version: str = Field(default="1")
    templates: dict[str, CacheEntry] = Field(default_factory=dict)


class Preset(BaseModel):
    """A named, persisted stack configuration."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = None
    config: StackConfig
    created_at: str = Field(..., alias="createdAt")
    last_used: Optional[str] = Field(default=None, alias="lastUsed")


class PresetIndex(BaseModel):
    """Schema of ``presets.json``."""
    version: str = Field(default="1")
    presets: dict[str, Preset] = Field(default_factory=dict)

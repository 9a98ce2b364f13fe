"""create-fs-app -- scaffolds full-stack monorepo projects from templates.

A ``ProjectConfig`` (monorepo tool, frontend, backend, database, ORM) is
resolved to a template repository, the template is retrieved (through a
local cache when possible) and customized for the project, then git is
initialized and dependencies installed.

Quick usage::

    from create_fs_app import ProjectConfig, Scaffolder, Settings

    config = ProjectConfig.from_options(
        "my-app",
        monorepo="turborepo",
        frontend="next.js",
        backend="nest.js",
        database="postgresql",
        orm="prisma",
    )
    result = await Scaffolder(Settings.from_env()).scaffold(config)
"""

__version__ = "0.1.0"

from .config import Settings
from .models import ProjectConfig, TemplateMetadata
from .scaffold import ScaffoldOptions, ScaffoldResult, Scaffolder

__all__ = [
    "ProjectConfig",
    "ScaffoldOptions",
    "ScaffoldResult",
    "Scaffolder",
    "Settings",
    "TemplateMetadata",
    "__version__",
]

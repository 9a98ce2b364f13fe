"""create-fs-app runtime settings.

Centralised, typed settings for the template cache, the preset store and the
template catalog. Uses a Pydantic v2 model so values are validated at
construction time and can be built from environment variables. Instances are
created once by the CLI and threaded into ``TemplateCache``, ``PresetStore``
and ``Scaffolder``; nothing reads these paths from module globals.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_HOME_DIR = Path.home() / ".create-fs-app"
DEFAULT_TEMPLATE_BASE_URL = "https://github.com/create-fs-app-templates"
DEFAULT_BRANCH = "main"

CACHE_INDEX_FILE = "cache-metadata.json"
PRESETS_FILE = "presets.json"


class Settings(BaseModel):
    """Global create-fs-app settings."""

    home_dir: Path = Field(default=DEFAULT_HOME_DIR)
    template_base_url: str = Field(default=DEFAULT_TEMPLATE_BASE_URL)
    default_branch: str = Field(default=DEFAULT_BRANCH, min_length=1)
    use_cache: bool = Field(default=True, description="Read from and populate the template cache")

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def cache_dir(self) -> Path:
        """Root of the on-disk template cache."""
        return self.home_dir / "cache"

    @property
    def cache_index_path(self) -> Path:
        """Path to the cache ``cache-metadata.json`` index."""
        return self.cache_dir / CACHE_INDEX_FILE

    @property
    def presets_dir(self) -> Path:
        return self.home_dir / "presets"

    @property
    def presets_path(self) -> Path:
        """Path to the user preset store."""
        return self.presets_dir / PRESETS_FILE

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            CREATE_FS_APP_HOME, CREATE_FS_APP_TEMPLATE_BASE_URL,
            CREATE_FS_APP_DEFAULT_BRANCH, CREATE_FS_APP_NO_CACHE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("CREATE_FS_APP_HOME"):
            kwargs["home_dir"] = Path(os.environ["CREATE_FS_APP_HOME"]).expanduser()
        if os.environ.get("CREATE_FS_APP_TEMPLATE_BASE_URL"):
            kwargs["template_base_url"] = os.environ["CREATE_FS_APP_TEMPLATE_BASE_URL"].rstrip("/")
        if os.environ.get("CREATE_FS_APP_DEFAULT_BRANCH"):
            kwargs["default_branch"] = os.environ["CREATE_FS_APP_DEFAULT_BRANCH"]
        no_cache = os.environ.get("CREATE_FS_APP_NO_CACHE", "").strip().lower()
        if no_cache in ("1", "true", "yes", "on"):
            kwargs["use_cache"] = False
        return cls(**kwargs)

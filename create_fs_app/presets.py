"""Configuration presets.

Named stack configurations (everything except the project name) kept in
``<home>/presets/presets.json``::

    {"version": "1", "presets": {"<name>": Preset}}

Built-in presets are compiled in and cannot be deleted.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from .config import Settings
from .models import Preset, PresetIndex, ProjectConfig, StackConfig
from .utils import load_json, save_json


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _stack(raw: dict[str, Any]) -> StackConfig:
    return StackConfig.model_validate(raw)


BUILTIN_PRESETS = MappingProxyType(
    {
        "saas-starter": (
            "Modern SaaS application with Next.js, NestJS, PostgreSQL, and Prisma",
            _stack(
                {
                    "monorepo": "turborepo",
                    "packageManager": "pnpm",
                    "apps": {
                        "frontend": {"framework": "next.js", "styling": "tailwind", "linting": True},
                        "backend": {
                            "framework": "nest.js",
                            "database": "postgresql",
                            "orm": "prisma",
                            "docker": True,
                        },
                    },
                }
            ),
        ),
        "ecommerce": (
            "E-commerce platform with React, Express, and MongoDB",
            _stack(
                {
                    "monorepo": "turborepo",
                    "packageManager": "npm",
                    "apps": {
                        "frontend": {"framework": "react", "styling": "tailwind", "linting": True},
                        "backend": {
                            "framework": "express",
                            "database": "mongodb",
                            "orm": "mongoose",
                            "docker": True,
                        },
                    },
                }
            ),
        ),
        "minimal": (
            "Minimal setup with React, Express, and PostgreSQL",
            _stack(
                {
                    "monorepo": "turborepo",
                    "packageManager": "npm",
                    "apps": {
                        "frontend": {"framework": "react", "styling": "css", "linting": False},
                        "backend": {"framework": "express", "database": "postgresql", "docker": False},
                    },
                }
            ),
        ),
    }
)


def get_builtin_preset(name: str) -> Preset | None:
    builtin = BUILTIN_PRESETS.get(name)
    if builtin is None:
        return None
    description, config = builtin
    return Preset(name=name, description=description, config=config, created_at=_now())


def list_builtin_presets() -> list[Preset]:
    return [p for p in (get_builtin_preset(name) for name in BUILTIN_PRESETS) if p is not None]


class PresetStore:
    """User presets persisted as JSON."""

    def __init__(self, settings: Settings) -> None:
        self.path = settings.presets_path

    def _load(self) -> PresetIndex:
        # A missing or corrupt store reads as empty.
        try:
            return PresetIndex.model_validate(load_json(self.path))
        except (OSError, ValueError):
            return PresetIndex()

    def _save(self, index: PresetIndex) -> None:
        save_json(index.model_dump(mode="json", by_alias=True, exclude_none=True), self.path)

    def save(self, name: str, config: ProjectConfig | StackConfig, description: str | None = None) -> Preset:
        """Store *config* (minus its name) under *name*, replacing any previous preset."""
        stack = config.without_name() if isinstance(config, ProjectConfig) else config
        preset = Preset(name=name, description=description, config=stack, created_at=_now())
        index = self._load()
        index.presets[name] = preset
        self._save(index)
        return preset

    def load(self, name: str) -> Preset | None:
        """Return the user preset *name*, touching ``lastUsed``."""
        index = self._load()
        preset = index.presets.get(name)
        if preset is None:
            return None
        preset.last_used = _now()
        self._save(index)
        return preset

    def list(self) -> list[Preset]:
        return list(self._load().presets.values())

    def exists(self, name: str) -> bool:
        return name in self._load().presets

    def delete(self, name: str) -> bool:
        index = self._load()
        if index.presets.pop(name, None) is None:
            return False
        self._save(index)
        return True

    def get_config(self, preset_name: str, project_name: str) -> ProjectConfig | None:
        """Complete a preset (built-in first, then user) with *project_name*."""
        preset = get_builtin_preset(preset_name) or self.load(preset_name)
        if preset is None:
            return None
        return preset.config.with_name(project_name)

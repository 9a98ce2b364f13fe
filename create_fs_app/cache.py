"""Local template cache.

Keeps one directory per retrieved template under ``<home>/cache/`` plus a
``cache-metadata.json`` index::

    {"version": "1", "templates": {"<key>": {"url", "branch", "cachedAt", "lastUsed"}}}

A template counts as cached only when its directory exists *and* its key is
registered in the index; the index entry is written after the tree is
complete. There is no cross-process lock: index updates are last-writer-wins.
Eviction is a full ``clear()`` only.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from .config import Settings
from .errors import CacheError, CreateFsAppError
from .git import shallow_clone
from .models import CacheEntry, CacheIndex, TemplateMetadata
from .utils import (
    copy_tree,
    directory_size,
    ensure_dir,
    format_size,
    load_json,
    print_verbose,
    remove_tree,
    save_json,
)

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_UNSAFE = re.compile(r"[^A-Za-z0-9-]")


def get_cache_key(metadata: TemplateMetadata) -> str:
    """Filesystem-safe key for ``(url, branch, subfolder)``.

    The URL scheme and a trailing ``.git`` are dropped, then every character
    outside ``[A-Za-z0-9-]`` becomes an underscore.
    """
    url = _SCHEME.sub("", metadata.url.strip())
    if url.endswith(".git"):
        url = url[: -len(".git")]
    subfolder = metadata.subfolder or ""
    return _UNSAFE.sub("_", f"{url}-{metadata.branch}-{subfolder}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CacheStatsEntry(BaseModel):
    key: str
    url: str
    branch: str
    cached_at: str
    last_used: str


class CacheStats(BaseModel):
    """Snapshot of the cache contents."""

    total_entries: int = Field(default=0, ge=0)
    total_size_bytes: int = Field(default=0, ge=0)
    entries: list[CacheStatsEntry] = Field(default_factory=list)

    @property
    def total_size_display(self) -> str:
        return format_size(self.total_size_bytes)


class TemplateCache:
    """On-disk store of previously retrieved template trees."""

    def __init__(self, settings: Settings) -> None:
        self.root = settings.cache_dir
        self.index_path = settings.cache_index_path

    # -- Index -------------------------------------------------------------

    def _load_index(self) -> CacheIndex:
        """Read the index; a missing or corrupt file reads as an empty cache."""
        try:
            return CacheIndex.model_validate(load_json(self.index_path))
        except (OSError, ValueError):
            return CacheIndex()

    def _save_index(self, index: CacheIndex) -> None:
        save_json(index.model_dump(by_alias=True), self.index_path)

    # -- Lookups -----------------------------------------------------------

    def path_of(self, metadata: TemplateMetadata) -> Path:
        """Directory a template would occupy, whether or not it is cached."""
        return self.root / get_cache_key(metadata)

    def _is_cached(self, metadata: TemplateMetadata) -> bool:
        key = get_cache_key(metadata)
        return (self.root / key).is_dir() and key in self._load_index().templates

    async def has(self, metadata: TemplateMetadata) -> bool:
        cached = await asyncio.to_thread(self._is_cached, metadata)
        print_verbose(
            f"Template {'found in' if cached else 'not in'} cache: {get_cache_key(metadata)}"
        )
        return cached

    async def path_for(self, metadata: TemplateMetadata) -> Path | None:
        """Return the cached tree for *metadata*, touching ``lastUsed``; ``None`` on a miss."""
        if not await self.has(metadata):
            return None

        key = get_cache_key(metadata)

        def _touch() -> None:
            index = self._load_index()
            entry = index.templates.get(key)
            if entry is None:
                return
            entry.last_used = _now()
            self._save_index(index)

        try:
            await asyncio.to_thread(_touch)
        except OSError as exc:
            print_verbose(f"Could not update cache index: {exc}")
        return self.root / key

    # -- Population --------------------------------------------------------

    async def store(
        self,
        metadata: TemplateMetadata,
        branch: str | None = None,
        source: str | Path | None = None,
    ) -> Path:
        """Populate the cache entry for *metadata* and return its directory.

        With *source* the tree is copied from an already retrieved local
        directory; otherwise the remote is shallow-cloned at *branch*
        (defaulting to ``metadata.branch``). Any previous directory for the
        key is replaced. The index is only updated once the tree is complete.

        Raises:
            CacheError: If cloning or copying fails. The partial directory is
                removed and no index entry is left behind.
        """
        branch = branch or metadata.branch
        key = get_cache_key(metadata)
        cache_path = self.root / key
        print_verbose(f"Caching template: {key}")

        try:
            await asyncio.to_thread(self._prepare, key)
            if source is not None:
                await asyncio.to_thread(copy_tree, source, cache_path)
            elif metadata.subfolder:
                await self._clone_subfolder(metadata, branch, cache_path)
            else:
                await shallow_clone(metadata.url, cache_path, branch)
                await asyncio.to_thread(remove_tree, cache_path / ".git")
            await asyncio.to_thread(self._register, key, metadata.url, branch)
        except (CreateFsAppError, OSError) as exc:
            await asyncio.to_thread(remove_tree, cache_path)
            raise CacheError(f"Failed to cache template {key}: {exc}") from exc

        print_verbose(f"Template cached successfully: {key}")
        return cache_path

    def _prepare(self, key: str) -> None:
        """Drop any previous tree and index entry for *key*."""
        ensure_dir(self.root)
        index = self._load_index()
        if index.templates.pop(key, None) is not None:
            self._save_index(index)
        remove_tree(self.root / key)

    def _register(self, key: str, url: str, branch: str) -> None:
        index = self._load_index()
        now = _now()
        index.templates[key] = CacheEntry(url=url, branch=branch, cached_at=now, last_used=now)
        self._save_index(index)

    async def _clone_subfolder(
        self, metadata: TemplateMetadata, branch: str, cache_path: Path
    ) -> None:
        temp_path = self.root / f".tmp-{get_cache_key(metadata)}-{uuid.uuid4().hex}"
        try:
            await shallow_clone(metadata.url, temp_path, branch, single_branch=True)
            template_path = temp_path / (metadata.subfolder or "")
            if not template_path.is_dir():
                raise CacheError(
                    f'Template subfolder "{metadata.subfolder}" not found in repository'
                )
            await asyncio.to_thread(copy_tree, template_path, cache_path)
        finally:
            await asyncio.to_thread(remove_tree, temp_path)

    # -- Maintenance -------------------------------------------------------

    async def copy_to(self, cache_path: str | Path, target_dir: str | Path) -> None:
        """Copy a cached tree into *target_dir*."""
        print_verbose(f"Copying from cache to {target_dir}")
        await asyncio.to_thread(copy_tree, cache_path, target_dir)

    async def clear(self) -> None:
        """Delete the whole cache. Idempotent."""
        await asyncio.to_thread(remove_tree, self.root)

    async def stats(self) -> CacheStats:
        """Count registered entries and measure their size on disk."""

        def _collect() -> CacheStats:
            index = self._load_index()
            entries = []
            total_size = 0
            for key, entry in index.templates.items():
                path = self.root / key
                if path.is_dir():
                    total_size += directory_size(path)
                entries.append(
                    CacheStatsEntry(
                        key=key,
                        url=entry.url,
                        branch=entry.branch,
                        cached_at=entry.cached_at,
                        last_used=entry.last_used,
                    )
                )
            return CacheStats(
                total_entries=len(entries),
                total_size_bytes=total_size,
                entries=entries,
            )

        return await asyncio.to_thread(_collect)

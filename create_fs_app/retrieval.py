"""Template retrieval.

Produces a ready-to-customize directory from ``TemplateMetadata``:

* cache hit  -> copy the cached tree (no network);
* no subfolder -> shallow clone straight into the target, drop ``.git``;
* subfolder  -> shallow single-branch clone into a uniquely named temporary
  directory, copy just the subfolder, always remove the temporary clone.

Successful live clones are offered to the cache on a best-effort basis.
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

from .cache import TemplateCache
from .errors import CacheError, CreateFsAppError, RetrievalError
from .git import shallow_clone
from .models import TemplateMetadata
from .utils import copy_tree, print_verbose, print_warning, remove_tree


class TemplateRetriever:
    """Clones templates, consulting an optional ``TemplateCache`` first.

    Attributes:
        cache: Cache to read from and populate, or ``None`` to always clone.
        work_dir: Directory that holds temporary clones for subfolder
            extraction. Defaults to the current working directory.
    """

    def __init__(self, cache: TemplateCache | None = None, work_dir: str | Path | None = None) -> None:
        self.cache = cache
        self.work_dir = Path(work_dir) if work_dir is not None else Path.cwd()

    async def clone(
        self,
        metadata: TemplateMetadata,
        target_dir: str | Path,
        branch: str | None = None,
    ) -> None:
        """Materialise *metadata* into *target_dir*.

        Raises:
            RetrievalError: When cloning or subfolder extraction fails. The
                message carries the underlying cause.
        """
        target = Path(target_dir)
        branch = branch or metadata.branch

        try:
            if self.cache is not None:
                cached_path = await self.cache.path_for(metadata)
                if cached_path is not None:
                    print_verbose("Using cached template")
                    await self.cache.copy_to(cached_path, target)
                    return

            print_verbose("Template not cached, downloading...")
            if metadata.subfolder:
                await self._clone_subfolder(metadata, target, branch)
            else:
                await self._clone_direct(metadata, target, branch)
        except (CreateFsAppError, OSError) as exc:
            raise RetrievalError(f"Failed to clone template: {exc}", cause=exc) from exc

    async def _clone_direct(self, metadata: TemplateMetadata, target: Path, branch: str) -> None:
        await shallow_clone(metadata.url, target, branch)
        await asyncio.to_thread(remove_tree, target / ".git")
        await self._try_cache(metadata, branch, target)

    async def _clone_subfolder(self, metadata: TemplateMetadata, target: Path, branch: str) -> None:
        # Unique per invocation so simultaneous runs in one directory never share it.
        temp_dir = self.work_dir / f".temp-{uuid.uuid4()}"
        try:
            await shallow_clone(metadata.url, temp_dir, branch, single_branch=True)

            template_path = temp_dir / (metadata.subfolder or "")
            if not template_path.is_dir():
                raise RetrievalError(
                    f'Template subfolder "{metadata.subfolder}" not found in repository'
                )

            await asyncio.to_thread(copy_tree, template_path, target)
            await self._try_cache(metadata, branch, template_path)
        finally:
            await asyncio.to_thread(remove_tree, temp_dir)

    async def _try_cache(self, metadata: TemplateMetadata, branch: str, source: Path) -> None:
        """Store *source* in the cache; failures only produce a warning."""
        if self.cache is None:
            return
        print_verbose("Caching template for future use...")
        try:
            await self.cache.store(metadata, branch, source=source)
        except CacheError as exc:
            print_warning(f"Failed to cache template, continuing anyway: {exc}")

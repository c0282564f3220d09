from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine, Iterable
from pathlib import Path
from typing import Any

from watchfiles import Change, awatch

from tablegraph.core.compiler import RegistryCache
from tablegraph.core.registry import is_declaration_file
from tablegraph.models import Registry

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 500


def declaration_changes(changes: Iterable[tuple[Change, str]]) -> dict[Path, Change]:
    """Reduce a raw watchfiles batch to the last change per declaration file."""
    result: dict[Path, Change] = {}
    for change, raw_path in changes:
        path = Path(raw_path)
        if is_declaration_file(path):
            result[path] = change
    return result


class DeclarationWatcher:
    """Rebuild the registry whenever declaration files change.

    Each debounced batch of changes invalidates ``cache``, recompiles it off
    the event loop and awaits ``on_rebuild`` with the fresh registry and the
    changed files. Implements the ``DeclarationWatcherPort`` protocol.
    """

    def __init__(
        self,
        directory: str | Path,
        cache: RegistryCache,
        on_rebuild: Callable[[Registry, set[Path]], Coroutine[Any, Any, None]],
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        self._directory = Path(directory)
        self._cache = cache
        self._on_rebuild = on_rebuild
        self._debounce_ms = debounce_ms
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._watch())
        logger.info("Watching declarations in %s", self._directory)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Stopped watching %s", self._directory)

    async def _watch(self) -> None:
        async for changes in awatch(self._directory, debounce=self._debounce_ms):
            changed = declaration_changes(changes)
            if not changed:
                continue
            for path, change in sorted(changed.items()):
                logger.info("Declaration %s: %s", change.name, path.name)
            try:
                await self._rebuild(set(changed))
            except Exception:
                logger.exception("Error rebuilding registry after declaration change")

    async def _rebuild(self, paths: set[Path]) -> None:
        self._cache.invalidate()
        # compiling reads every declaration file
        registry = await asyncio.to_thread(self._cache.get_or_build)
        logger.info("Rebuilt registry: %d model(s), %d warning(s)", len(registry.models), len(registry.warnings))
        await self._on_rebuild(registry, paths)

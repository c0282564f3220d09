import asyncio
from pathlib import Path

from tablegraph.cli.options import Delimiter, MaxIndexCount, ModelsPath, console, load_settings, print_warnings
from tablegraph.core.compiler import RegistryCache
from tablegraph.models import Registry
from tablegraph.watcher.watchfiles_adapter import DeclarationWatcher


def _report(registry: Registry) -> None:
    print_warnings(registry)
    console.print(
        f"[green]Compiled[/green] {len(registry.models)} model(s), "
        f"{len(registry.index_definitions)} index(es), {len(registry.warnings)} warning(s)"
    )


def watch(
    path: ModelsPath,
    max_index_count: MaxIndexCount = None,
    delimiter: Delimiter = None,
) -> None:
    """Recompile whenever a declaration file changes."""
    cache = RegistryCache.for_settings(load_settings(path, max_index_count, delimiter))

    async def _on_rebuild(registry: Registry, paths: set[Path]) -> None:
        console.print(f"[cyan]Changed:[/cyan] {', '.join(sorted(p.name for p in paths))}")
        _report(registry)

    async def _run() -> None:
        watcher = DeclarationWatcher(path, cache, _on_rebuild)
        await watcher.start()
        try:
            await asyncio.Event().wait()
        finally:
            await watcher.stop()

    _report(cache.get_or_build())
    console.print(f"Watching {path} (Ctrl+C to stop)")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("Stopped")

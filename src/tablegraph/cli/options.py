from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from tablegraph.config import Settings
from tablegraph.models import Registry

console = Console()

ModelsPath = Annotated[Path, typer.Argument(help="Directory holding the entity declaration files.")]
MaxIndexCount = Annotated[
    int | None, typer.Option("--max-index-count", help="Number of secondary index slots to plan for.")
]
Delimiter = Annotated[str | None, typer.Option("--delimiter", help="Key delimiter used in key templates.")]


def load_settings(path: Path, max_index_count: int | None, delimiter: str | None) -> Settings:
    return Settings.from_env(models_path=path, max_index_count=max_index_count, key_delimiter=delimiter)


def print_warnings(registry: Registry) -> None:
    for warning in registry.warnings:
        console.print(f"[yellow]warning:[/yellow] {escape(warning)}")

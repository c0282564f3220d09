from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.markup import escape
from rich.table import Table

from tablegraph.cli.options import Delimiter, MaxIndexCount, ModelsPath, console, load_settings, print_warnings
from tablegraph.core.access_patterns import build_access_pattern_report
from tablegraph.core.compiler import build_registry
from tablegraph.core.indexes import suggest_index_optimizations
from tablegraph.core.validation import validate_registry
from tablegraph.models import Registry


def _render_table(title: str, headers: Sequence[str], rows: Sequence[tuple[Any, ...]]) -> None:
    table = Table(title=title, show_lines=False)
    for h in headers:
        table.add_column(h)
    for row in rows:
        table.add_row(*(escape(str(v)) for v in row))
    console.print(table)


def _compile(path: Path, max_index_count: int | None, delimiter: str | None) -> Registry:
    registry = build_registry(load_settings(path, max_index_count, delimiter))
    print_warnings(registry)
    return registry


def compile_command(
    path: ModelsPath,
    max_index_count: MaxIndexCount = None,
    delimiter: Delimiter = None,
) -> None:
    """Compile declarations and summarize the resulting design."""
    registry = _compile(path, max_index_count, delimiter)
    rows = [
        (
            model.name,
            model.key_pattern.pk,
            len(model.attributes),
            len(model.relationships),
            ", ".join(registry.settings.index_name(n) for n in sorted(model.key_pattern.indexes)) or "-",
            len(model.access_patterns),
        )
        for model in registry.models.values()
    ]
    _render_table("Entities", ["entity", "key", "attributes", "relationships", "indexes", "patterns"], rows)
    console.print(
        f"[green]Compiled[/green] {len(registry.models)} model(s) using "
        f"{len(registry.index_definitions)} of {registry.settings.max_index_count} index slot(s)"
    )


def patterns(
    path: ModelsPath,
    model: Annotated[str | None, typer.Option(help="Only show patterns of this model.")] = None,
    max_index_count: MaxIndexCount = None,
    delimiter: Delimiter = None,
) -> None:
    """List the generated access pattern catalogue."""
    registry = _compile(path, max_index_count, delimiter)
    if model is not None and registry.get_model(model) is None:
        console.print(f"[red]Unknown model:[/red] {model}")
        raise typer.Exit(1)

    selected = registry.get_model(model).access_patterns if model else registry.access_patterns
    rows = [(p.name, p.operation, p.index, p.key_condition, "yes" if p.efficient else "no") for p in selected]
    _render_table("Access patterns", ["name", "operation", "index", "key condition", "efficient"], rows)

    report = build_access_pattern_report(registry)
    for missing in report.missing_patterns:
        console.print(f"[yellow]missing:[/yellow] {escape(missing)}")
    for suggestion in report.suggestions:
        console.print(f"[cyan]suggestion:[/cyan] {escape(suggestion)}")


def indexes(
    path: ModelsPath,
    max_index_count: MaxIndexCount = None,
    delimiter: Delimiter = None,
) -> None:
    """Show index slot usage and optimization hints."""
    registry = _compile(path, max_index_count, delimiter)
    rows = [
        (
            usage.name,
            len(usage.access_patterns),
            "yes" if usage.overloaded else "no",
            usage.estimated_load,
            "; ".join(f"{p.model_name}.{p.source}" for p in usage.access_patterns),
        )
        for usage in registry.index_usages
    ]
    _render_table("Indexes", ["index", "patterns", "overloaded", "load", "sources"], rows)
    for optimization in suggest_index_optimizations(registry.index_usages, registry.settings):
        console.print(f"[cyan]{optimization.type}:[/cyan] {escape(optimization.description)} ({optimization.benefit})")


def validate(
    path: ModelsPath,
    max_index_count: MaxIndexCount = None,
    delimiter: Delimiter = None,
) -> None:
    """Validate the compiled design; exits with status 1 on errors."""
    registry = _compile(path, max_index_count, delimiter)
    errors = validate_registry(registry)
    if errors:
        for error in errors:
            console.print(f"[red]error:[/red] {escape(error)}")
        raise typer.Exit(1)
    console.print("[green]Design is valid[/green]")


def export(
    path: ModelsPath,
    max_index_count: MaxIndexCount = None,
    delimiter: Delimiter = None,
) -> None:
    """Print the compiled registry as JSON."""
    registry = build_registry(load_settings(path, max_index_count, delimiter))
    typer.echo(registry.model_dump_json(indent=2))

import logging
from typing import Annotated

import typer

from tablegraph.cli.schema import compile_command, export, indexes, patterns, validate
from tablegraph.cli.watch import watch

app = typer.Typer(
    name="tablegraph",
    help="Tablegraph CLI: compile entity declarations into a single-table design.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


app.command("compile")(compile_command)
app.command("patterns")(patterns)
app.command("indexes")(indexes)
app.command("validate")(validate)
app.command("export")(export)
app.command("watch")(watch)


def main() -> None:
    app()

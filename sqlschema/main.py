"""sqlschema CLI - Main entry point."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from .commands import ddl, runs, schema
from .config import settings
from .database import DIALECTS

app = typer.Typer(
    name="sqlschema",
    help="Discover relational schemas and generate vendor DDL",
    add_completion=False,
)

# Add subcommands
app.add_typer(schema.app, name="schema")
app.add_typer(ddl.app, name="ddl")
app.add_typer(runs.app, name="runs")

console = Console()


@app.command()
def config():
    """Show current configuration."""
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Database URL configured: {'Yes' if settings.database_url else 'No'}")
    console.print(f"  Default string length: {settings.default_string_max_size}")
    console.print(f"  Routine parameter length: {settings.routine_param_length}")
    console.print(f"  Log level: {settings.log_level}")
    console.print(f"  Run logging: {'Enabled' if settings.cli_logging_enabled else 'Disabled'}")
    console.print(f"  Run log retention: {settings.cli_logging_retention_days} days")


@app.command()
def dialects():
    """List supported dialects and their aliases."""
    for dialect in DIALECTS.values():
        aliases = ", ".join(dialect.aliases)
        console.print(f"  [cyan]{dialect.name}[/cyan]  {aliases}  (paramstyle: {dialect.paramstyle})")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
):
    """
    sqlschema - Discover relational schemas and generate vendor DDL.

    Examples:

        sqlschema schema tables --url sqlite:///shop.db

        sqlschema schema describe orders --url postgresql://app@localhost/shop

        sqlschema ddl column mysql string --length 64 --not-null

        sqlschema runs list
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


if __name__ == "__main__":
    app()

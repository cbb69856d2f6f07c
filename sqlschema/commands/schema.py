"""Schema discovery commands - inspect tables, columns, relations and routines."""

import json
import logging
from contextlib import contextmanager
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import settings
from ..database import (
    JsonFileSchemaExtras,
    RoutineInvoker,
    SchemaDiscoverer,
    apply_extras,
    connect,
)
from ..database.dialects import get_dialect
from ..errors import SchemaError
from ..logging import log_cli_run

app = typer.Typer(help="Inspect database schemas")
console = Console()
logger = logging.getLogger(__name__)

URL_HELP = "Database URL (default: SQLSCHEMA_DATABASE_URL)"


def _resolve_url(url: Optional[str]) -> str:
    url = url or settings.database_url
    if not url:
        console.print("[red]No database URL given. Pass --url or set SQLSCHEMA_DATABASE_URL.[/red]")
        raise typer.Exit(1)
    return url


@contextmanager
def open_discoverer(url: str):
    """Connect and yield a discovery session using the configured string length."""
    dialect = get_dialect(url.split(':', 1)[0]).with_string_max_size(settings.default_string_max_size)
    with connect(url) as connection:
        yield SchemaDiscoverer(connection, dialect)


def _fail(e: Exception) -> None:
    if isinstance(e, SchemaError):
        console.print(f"[red]Error ({e.code}): {e.message}[/red]")
    else:
        console.print(f"[red]Error: {e}[/red]")
    raise typer.Exit(1)


def _dialect_name(url: str) -> Optional[str]:
    try:
        return get_dialect(url.split(':', 1)[0]).name
    except SchemaError:
        return None


@app.command("schemas")
def list_schemas(
    url: Optional[str] = typer.Option(None, "--url", "-u", help=URL_HELP),
):
    """List the schemas visible to the connection."""
    url = _resolve_url(url)
    try:
        with log_cli_run("schema", "schemas", _dialect_name(url), url) as ctx:
            with open_discoverer(url) as discoverer:
                names = discoverer.get_schema_names()
                default_schema = discoverer.default_schema
            ctx.schemas_count = len(names)
    except (SchemaError, ImportError) as e:
        _fail(e)

    for name in names:
        marker = " [green](default)[/green]" if name.lower() == default_schema.lower() else ""
        console.print(f"  {name}{marker}")


@app.command("tables")
def list_tables(
    url: Optional[str] = typer.Option(None, "--url", "-u", help=URL_HELP),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema to list (default schema if omitted)"),
    views: bool = typer.Option(True, "--views/--no-views", help="Include views"),
):
    """List tables and views of a schema."""
    url = _resolve_url(url)
    try:
        with log_cli_run("schema", "tables", _dialect_name(url), url, schema_filter=schema,
                         arguments={"views": views}) as ctx:
            with open_discoverer(url) as discoverer:
                names = discoverer.get_table_names(schema or '', include_views=views)
            ctx.schemas_count = 1
    except (SchemaError, ImportError) as e:
        _fail(e)

    if not names:
        console.print("[yellow]No tables found.[/yellow]")
        return
    for name in names:
        console.print(f"  {name}")
    console.print(f"\n[bold]Total: {len(names)} table(s)[/bold]")


def _columns_table(table) -> Table:
    out = Table(title=f"{table.get_label()} ({table.display_name})")
    out.add_column("Column", style="cyan")
    out.add_column("Type", style="green")
    out.add_column("DB Type")
    out.add_column("Null")
    out.add_column("Default")
    out.add_column("Key", style="magenta")
    out.add_column("Label")

    for column in table.columns.values():
        keys = []
        if column.is_primary_key:
            keys.append("PK")
        if column.is_foreign_key:
            keys.append(f"FK -> {column.ref_table}.{column.ref_fields}")
        if column.is_unique:
            keys.append("UNIQUE")
        if column.auto_increment:
            keys.append("AUTO")
        out.add_row(
            column.name,
            column.type.value,
            column.db_type,
            "yes" if column.allow_null else "no",
            "" if column.default is None else str(column.default),
            ", ".join(keys),
            column.get_label(),
        )
    return out


def _relations_table(table) -> Table:
    out = Table(title=f"Relations of {table.display_name}")
    out.add_column("Name", style="cyan")
    out.add_column("Type", style="green")
    out.add_column("Field")
    out.add_column("References", style="blue")
    out.add_column("Junction", style="magenta")
    for relation in table.relations.values():
        out.add_row(
            relation.name,
            relation.type.value,
            relation.field,
            f"{relation.ref_table}.{relation.ref_field}",
            str(relation.junction) if relation.junction else "",
        )
    return out


@app.command("describe")
def describe_table(
    table_name: str = typer.Argument(..., help="Table name, optionally schema-qualified"),
    url: Optional[str] = typer.Option(None, "--url", "-u", help=URL_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print the table descriptor as JSON"),
    extras: Optional[str] = typer.Option(None, "--extras", "-e", help="JSON file with label/plural overrides"),
):
    """Describe a table's columns and relations.

    Examples:
        sqlschema schema describe orders --url sqlite:///shop.db
        sqlschema schema describe sales.orders --json
    """
    url = _resolve_url(url)
    try:
        with log_cli_run("schema", "describe", _dialect_name(url), url,
                         arguments={"table": table_name, "json": as_json, "extras": extras}) as ctx:
            with open_discoverer(url) as discoverer:
                table = discoverer.get_table(table_name)
            if table is None:
                console.print(f"[red]Table '{table_name}' not found.[/red]")
                raise typer.Exit(1)
            if extras:
                table = apply_extras(table, JsonFileSchemaExtras(extras))
            ctx.tables_count = 1
            ctx.columns_count = len(table.columns)
            ctx.relations_count = len(table.relations)
    except (SchemaError, ImportError) as e:
        _fail(e)

    if as_json:
        console.print_json(json.dumps(table.to_dict(), default=str))
        return

    console.print(_columns_table(table))
    if isinstance(table.primary_key, list):
        console.print(f"Primary key: {', '.join(table.primary_key)}")
    if table.sequence_name:
        console.print(f"Sequence: {table.sequence_name}")
    if table.relations:
        console.print(_relations_table(table))


@app.command("relations")
def list_relations(
    url: Optional[str] = typer.Option(None, "--url", "-u", help=URL_HELP),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema to inspect (default schema if omitted)"),
):
    """Show inferred relations for every table in a schema."""
    url = _resolve_url(url)
    try:
        with log_cli_run("schema", "relations", _dialect_name(url), url, schema_filter=schema) as ctx:
            with open_discoverer(url) as discoverer:
                tables = discoverer.get_tables(schema=schema or '')
            ctx.schemas_count = 1
            ctx.tables_count = len(tables)
            ctx.columns_count = sum(len(t.columns) for t in tables)
            ctx.relations_count = sum(len(t.relations) for t in tables)
    except (SchemaError, ImportError) as e:
        _fail(e)

    if not any(t.relations for t in tables):
        console.print("[yellow]No relations found.[/yellow]")
        return
    for table in tables:
        if table.relations:
            console.print(_relations_table(table))


@app.command("routines")
def list_routines(
    url: Optional[str] = typer.Option(None, "--url", "-u", help=URL_HELP),
    routine_type: str = typer.Option("PROCEDURE", "--type", "-t", help="PROCEDURE or FUNCTION"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema to list (default schema if omitted)"),
):
    """List stored procedures or functions."""
    url = _resolve_url(url)
    try:
        with log_cli_run("schema", "routines", _dialect_name(url), url, schema_filter=schema,
                         arguments={"type": routine_type}):
            with open_discoverer(url) as discoverer:
                invoker = RoutineInvoker(
                    discoverer.connection,
                    discoverer.dialect,
                    default_schema=discoverer.default_schema,
                    default_length=settings.routine_param_length,
                )
                names = invoker.find_routines(routine_type, schema or '')
    except (SchemaError, ImportError) as e:
        _fail(e)

    if not names:
        console.print(f"[yellow]No {routine_type.lower()}s found.[/yellow]")
        return
    for name in names:
        console.print(f"  {name}")

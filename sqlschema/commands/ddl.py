"""DDL generation commands - print vendor DDL for abstract column specs."""

from typing import List, Optional

import typer
from rich.console import Console

from ..config import settings
from ..database.dialects import get_dialect
from ..errors import SchemaError
from ..logging import log_cli_run

app = typer.Typer(help="Generate vendor DDL from abstract column specs")
console = Console()


def _dialect(name: str):
    return get_dialect(name).with_string_max_size(settings.default_string_max_size)


def _print_sql(statements: List[str]) -> None:
    # Identifiers like [name] must not be read as rich markup
    for sql in statements:
        console.print(f"{sql};", markup=False, highlight=False, soft_wrap=True)


def _fail(e: SchemaError) -> None:
    console.print(f"[red]Error ({e.code}): {e.message}[/red]")
    raise typer.Exit(1)


def parse_column_option(value: str):
    """Split ``name:definition`` as given to ``--column``."""
    name, sep, definition = value.partition(':')
    if not sep or not name.strip() or not definition.strip():
        raise typer.BadParameter(f"Expected NAME:TYPE, got '{value}'")
    return name.strip(), definition.strip()


@app.command("column")
def column_definition(
    dialect: str = typer.Argument(..., help="Dialect name or alias (mysql, pgsql, sqlite, oci, sqlsrv, ibmdb2)"),
    column_type: str = typer.Argument(..., help="Abstract type, e.g. string, pk, money, timestamp_on_create"),
    length: Optional[int] = typer.Option(None, "--length", "-l", help="Length of string or binary types"),
    precision: Optional[int] = typer.Option(None, "--precision", help="Numeric precision"),
    scale: Optional[int] = typer.Option(None, "--scale", help="Numeric scale"),
    not_null: bool = typer.Option(False, "--not-null", help="Disallow NULL"),
    default: Optional[str] = typer.Option(None, "--default", help="Default value"),
    quote_default: bool = typer.Option(False, "--quote-default", help="Quote the default as a string literal"),
    unique: bool = typer.Option(False, "--unique", help="Add a UNIQUE constraint"),
    primary_key: bool = typer.Option(False, "--primary-key", help="Mark as PRIMARY KEY"),
    auto_increment: bool = typer.Option(False, "--auto-increment", help="Generate values automatically"),
    fixed: bool = typer.Option(False, "--fixed", help="Fixed-length string"),
    national: bool = typer.Option(False, "--national", help="Multibyte (national) character set"),
):
    """Print the column definition for an abstract type.

    Examples:
        sqlschema ddl column pgsql string --length 64 --not-null
        sqlschema ddl column mysql money --default 0
    """
    spec = {
        'type': column_type,
        'allow_null': not not_null,
        'is_unique': unique,
        'is_primary_key': primary_key,
        'auto_increment': auto_increment,
        'fixed_length': fixed,
        'supports_multibyte': national,
        'quote_default': quote_default,
    }
    for key, value in (('length', length), ('precision', precision), ('scale', scale), ('default', default)):
        if value is not None:
            spec[key] = value

    try:
        with log_cli_run("ddl", "column", get_dialect(dialect).name, arguments=spec) as ctx:
            definition = _dialect(dialect).ddl.get_column_type(spec)
            ctx.statements_generated = 1
    except SchemaError as e:
        _fail(e)

    console.print(definition, markup=False, highlight=False, soft_wrap=True)


@app.command("create-table")
def create_table(
    dialect: str = typer.Argument(..., help="Dialect name or alias"),
    table: str = typer.Argument(..., help="Table name, optionally schema-qualified"),
    columns: List[str] = typer.Option(..., "--column", "-c", help="NAME:TYPE, repeatable (e.g. id:pk, name:string(64) NOT NULL)"),
    options: Optional[str] = typer.Option(None, "--options", help="Trailing table options"),
):
    """Print a CREATE TABLE statement plus any key bootstrap statements."""
    parsed = [parse_column_option(value) for value in columns]
    try:
        with log_cli_run("ddl", "create-table", get_dialect(dialect).name,
                         arguments={"table": table, "columns": columns}) as ctx:
            ddl = _dialect(dialect).ddl
            statements = [ddl.create_table(table, dict(parsed), options)]
            for name, definition in parsed:
                if definition.split(' ', 1)[0].lower() in ('pk', 'bigpk'):
                    statements.extend(ddl.get_primary_key_commands(table, name))
            ctx.statements_generated = len(statements)
    except SchemaError as e:
        _fail(e)

    _print_sql(statements)


@app.command("foreign-key")
def foreign_key(
    dialect: str = typer.Argument(..., help="Dialect name or alias"),
    table: str = typer.Argument(..., help="Owning table"),
    column: str = typer.Argument(..., help="Referencing column"),
    ref_table: str = typer.Argument(..., help="Referenced table"),
    ref_column: str = typer.Argument("id", help="Referenced column"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Constraint name (generated if omitted)"),
    on_delete: Optional[str] = typer.Option(None, "--on-delete", help="e.g. CASCADE, SET NULL"),
    on_update: Optional[str] = typer.Option(None, "--on-update", help="Dropped on dialects without ON UPDATE"),
):
    """Print an ADD CONSTRAINT ... FOREIGN KEY statement."""
    try:
        with log_cli_run("ddl", "foreign-key", get_dialect(dialect).name,
                         arguments={"table": table, "column": column, "ref_table": ref_table}) as ctx:
            ddl = _dialect(dialect).ddl
            name = name or ddl.make_constraint_name('fk', table, column)
            statements = [ddl.add_foreign_key(name, table, column, ref_table, ref_column, on_delete, on_update)]
            ctx.statements_generated = 1
    except SchemaError as e:
        _fail(e)

    _print_sql(statements)


@app.command("index")
def create_index(
    dialect: str = typer.Argument(..., help="Dialect name or alias"),
    table: str = typer.Argument(..., help="Table name"),
    columns: List[str] = typer.Argument(..., help="Indexed columns"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Index name (generated if omitted)"),
    unique: bool = typer.Option(False, "--unique", help="Create a unique index"),
):
    """Print a CREATE INDEX statement."""
    try:
        with log_cli_run("ddl", "index", get_dialect(dialect).name,
                         arguments={"table": table, "columns": columns, "unique": unique}) as ctx:
            ddl = _dialect(dialect).ddl
            name = name or ddl.make_constraint_name('idx', table, '_'.join(columns))
            statements = [ddl.create_index(name, table, columns, unique=unique)]
            ctx.statements_generated = 1
    except SchemaError as e:
        _fail(e)

    _print_sql(statements)


@app.command("pk-commands")
def primary_key_commands(
    dialect: str = typer.Argument(..., help="Dialect name or alias"),
    table: str = typer.Argument(..., help="Table name"),
    column: str = typer.Argument("id", help="Primary key column"),
):
    """Print the sequence and trigger statements a primary key needs, if any."""
    try:
        with log_cli_run("ddl", "pk-commands", get_dialect(dialect).name,
                         arguments={"table": table, "column": column}) as ctx:
            statements = _dialect(dialect).ddl.get_primary_key_commands(table, column)
            ctx.statements_generated = len(statements)
    except SchemaError as e:
        _fail(e)

    if not statements:
        console.print(f"[yellow]{get_dialect(dialect).name} needs no extra statements for a primary key.[/yellow]")
        return
    _print_sql(statements)

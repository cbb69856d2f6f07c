"""Commands for browsing the CLI run log."""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..logging import get_cli_logger

app = typer.Typer(help="Browse the log of previous CLI runs")
console = Console()


def _logger_or_exit():
    cli_logger = get_cli_logger()
    if not cli_logger.enabled:
        console.print("[yellow]CLI run logging is disabled (SQLSCHEMA_CLI_LOGGING_ENABLED=false).[/yellow]")
        raise typer.Exit(1)
    return cli_logger


@app.command("list")
def list_runs(
    command: Optional[str] = typer.Option(None, "--command", "-c", help="Filter by command"),
    status: Optional[str] = typer.Option(None, "--status", help="started, success or error"),
    dialect: Optional[str] = typer.Option(None, "--dialect", "-d", help="Filter by dialect"),
    since_hours: int = typer.Option(24, "--since", help="Look back N hours"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of runs"),
):
    """List recent CLI runs."""
    runs = _logger_or_exit().query_runs(
        command=command, status=status, dialect=dialect, since_hours=since_hours, limit=limit,
    )
    if not runs:
        console.print("[yellow]No runs found.[/yellow]")
        return

    table = Table(title="CLI Runs")
    table.add_column("Run ID", style="cyan")
    table.add_column("Timestamp")
    table.add_column("Command", style="green")
    table.add_column("Dialect", style="blue")
    table.add_column("Status")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Tables", justify="right")

    for run in runs:
        status_text = run.get("status") or ""
        if status_text == "error":
            status_text = "[red]error[/red]"
        elif status_text == "success":
            status_text = "[green]success[/green]"
        table.add_row(
            run["run_id"],
            str(run.get("timestamp") or ""),
            " ".join(p for p in (run.get("command"), run.get("subcommand")) if p),
            run.get("dialect") or "",
            status_text,
            str(run.get("duration_ms") or ""),
            str(run.get("tables_count") or ""),
        )
    console.print(table)


@app.command("show")
def show_run(run_id: str = typer.Argument(..., help="Run ID")):
    """Show every recorded field of one run."""
    run = _logger_or_exit().get_run(run_id)
    if run is None:
        console.print(f"[red]Run '{run_id}' not found.[/red]")
        raise typer.Exit(1)
    console.print_json(json.dumps(run, default=str))


@app.command("stats")
def run_stats(since_hours: int = typer.Option(24, "--since", help="Look back N hours")):
    """Show run statistics."""
    stats = _logger_or_exit().get_stats(since_hours=since_hours)
    console.print(f"[bold]CLI runs in the last {stats['since_hours']} hour(s)[/bold]")
    console.print(f"  Total: {stats['total_runs']}")
    console.print(f"  Success: [green]{stats['success_count']}[/green]")
    console.print(f"  Errors: [red]{stats['error_count']}[/red]")
    console.print(f"  Average duration: {stats['avg_duration_ms']} ms")
    console.print(f"  Tables loaded: {stats['total_tables_loaded']}")
    console.print(f"  Relations found: {stats['total_relations_found']}")

    if stats["by_dialect"]:
        console.print("\n[bold]By dialect:[/bold]")
        for row in stats["by_dialect"]:
            console.print(f"  {row['dialect']}: {row['count']} ({row['errors']} error(s))")

    if stats["recent_errors"]:
        console.print("\n[bold]Recent errors:[/bold]")
        for row in stats["recent_errors"]:
            console.print(f"  {row['run_id']} {row['command']} {row.get('subcommand') or ''}: {row['error_message']}",
                          markup=False)

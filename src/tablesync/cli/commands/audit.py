"""Audit log commands for tablesync CLI."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table as RichTable

from tablesync.audit import SqliteAuditSink
from tablesync.cli.utils import get_config_with_data

app = typer.Typer(help="Audit log commands", invoke_without_command=True)
console = Console()


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@app.command(name="list")
def list_entries(
    table: Optional[str] = typer.Option(None, "--table", "-t", help="Only entries of this table"),
    limit: int = typer.Option(50, "--limit", "-l", help="Show the newest N entries"),
):
    """List recorded audit entries."""
    config, settings = get_config_with_data()
    path = config.audit_db_path(settings)
    if path is None:
        console.print("[yellow]No audit database configured[/yellow]")
        return
    if not path.exists():
        console.print("[yellow]No audit entries recorded yet[/yellow]")
        return

    sink = SqliteAuditSink(path)
    try:
        entries = sink.entries(table=table, limit=limit)
    finally:
        sink.close()

    if not entries:
        console.print("[yellow]No audit entries found[/yellow]")
        return

    output = RichTable(title=f"Audit log {path.name}", title_justify="left")
    output.add_column("When", style="dim")
    output.add_column("Table", style="cyan")
    output.add_column("Event", style="green")
    output.add_column("Locator")
    output.add_column("Value", style="yellow")
    output.add_column("Old value", style="yellow")

    for entry in entries:
        output.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            entry.table,
            entry.event,
            entry.composite_id,
            entry.value,
            entry.old_value if entry.old_value is not None else "-",
        )

    console.print(output)

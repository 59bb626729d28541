"""Main CLI entry point for tablesync."""

import typer
from typing import Optional
from pathlib import Path

from tablesync.cli.commands import audit

app = typer.Typer(
    name="tablesync",
    help="tablesync - server-side table state with incremental view deltas",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """
    tablesync - server-side table state with incremental view deltas
    """
    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit(0)


app.add_typer(audit.app, name="audit", help="Audit log commands")


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None, help="Directory to initialize project in (default: current directory)"
    ),
):
    """Initialize a new tablesync project."""
    from tablesync.config import Config

    project_path = path or Path.cwd()

    try:
        settings = Config(project_path).init_project()
        typer.secho(
            f"✅ Initialized tablesync project in {project_path}", fg=typer.colors.GREEN
        )
        typer.secho(f"   Audit log: {settings.audit_db}", fg=typer.colors.CYAN)
    except FileExistsError:
        typer.secho(f"❌ Project already exists in {project_path}", fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command()
def version():
    """Show tablesync version."""
    from tablesync import __version__

    typer.echo(f"tablesync version {__version__}")


@app.command()
def status():
    """Show tablesync status including configuration and environment variables."""
    from tablesync.cli.utils import get_config_with_data, show_env_config
    from rich.console import Console

    console = Console()

    config, settings = get_config_with_data()

    console.print("\n[bold]tablesync Status[/bold]")
    console.print(f"Project: {config.project_dir}")
    console.print(f"Audit: {'enabled' if settings.audit_enabled else '[dim]disabled[/dim]'}")
    console.print(f"Audit log: {config.audit_db_path(settings) or '[dim]None (memory)[/dim]'}")
    console.print(f"Default page size: {settings.default_page_size}")
    console.print(f"No measures policy: {settings.no_measures_policy}")

    show_env_config()


@app.command()
def pages(
    rows: int = typer.Argument(..., help="Number of visible rows"),
    page_size: int = typer.Option(10, "--page-size", "-s", help="Rows per page"),
    page: int = typer.Option(0, "--page", "-p", help="Zero-based page index"),
):
    """Show pagination for a number of rows."""
    from rich.console import Console
    from tablesync.core.pagination import check_view, page_count, page_numbers_text, printed_range
    from tablesync.errors import TableSyncError

    console = Console()

    try:
        check_view(page_size, page)
        n_pages = page_count(rows, page_size)
        begin, end = printed_range(rows, page_size, page)
    except TableSyncError as e:
        console.print(f"[red]❌ Error: {e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"Pages: {n_pages}")
    if end < begin:
        console.print("Rows shown: [dim]none[/dim]")
    else:
        console.print(f"Rows shown: {begin}-{end}")
    if label := page_numbers_text(page, n_pages):
        console.print(label)


@app.command()
def serve(
    app_path: str = typer.Argument("tablesync.api.app:app", help="ASGI app to serve"),
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
):
    """Start the HTTP API server."""
    import uvicorn

    typer.secho(f"Starting tablesync API on {host}:{port}", fg=typer.colors.GREEN)
    uvicorn.run(app_path, host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()

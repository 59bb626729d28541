"""Utility functions for CLI commands."""

import os
from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.console import Console

from tablesync.config import CONFIG_DIR_NAME, Config, ProjectSettings

console = Console()


def find_project_root(start_path: Path) -> Optional[Path]:
    """Walk up from ``start_path`` to the directory holding .tablesync."""
    current = Path(start_path).resolve()
    while current != current.parent:
        if (current / CONFIG_DIR_NAME).exists():
            return current
        current = current.parent
    return None


def get_config_with_data() -> Tuple[Config, ProjectSettings]:
    """Get config and load settings for the current project.

    Returns:
        tuple: (config, settings)
    """
    env_dir = os.environ.get("TABLESYNC_PROJECT_DIR")
    project_root = Path(env_dir) if env_dir else find_project_root(Path.cwd())
    if not project_root:
        console.print("[red]❌ Not in a tablesync project directory[/red]")
        raise typer.Exit(1)

    config = Config(project_root)
    try:
        settings = config.load()
    except FileNotFoundError:
        console.print("[red]❌ Config file not found. Run 'tablesync init' first.[/red]")
        raise typer.Exit(1)

    return config, settings


def show_env_config():
    """Display active environment variable configuration."""
    env_vars = {
        "TABLESYNC_PROJECT_DIR": os.environ.get("TABLESYNC_PROJECT_DIR"),
        "TABLESYNC_AUDIT_ENABLED": os.environ.get("TABLESYNC_AUDIT_ENABLED"),
        "TABLESYNC_PAGE_SIZE": os.environ.get("TABLESYNC_PAGE_SIZE"),
        "TABLESYNC_AUDIT_DB": os.environ.get("TABLESYNC_AUDIT_DB"),
    }

    active = {k: v for k, v in env_vars.items() if v}
    if active:
        console.print("\n[yellow]Active environment variables:[/yellow]")
        for key, value in active.items():
            console.print(f"  {key}={value}")
    else:
        console.print("\n[dim]No tablesync environment variables set[/dim]")

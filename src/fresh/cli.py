"""Command-line interface for fresh."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import load_settings
from .errors import CommandError, ConfigError, FreshError, LinkConflictError
from .manager import FreshManager
from .models import CleanResult, InstallResult, LinkAction, ShowItem

app = typer.Typer(help="Keep your dot files fresh")
console = Console()

CONFIG_OPTION_HELP = "Path to a fresh.toml overriding FRESH_* environment settings"


def _load_manager(config: Path | None) -> FreshManager:
    return FreshManager(load_settings(config))


def _print_warnings(manager: FreshManager) -> None:
    for message in manager.pull_warnings():
        console.print(f"[yellow]Note: {escape(message)}[/yellow]")


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        console.print(f"[red]Permission denied:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    if isinstance(exc, FreshError):
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        if isinstance(exc, CommandError) and exc.stderr:
            console.print(escape(exc.stderr.rstrip()))
        elif isinstance(exc, LinkConflictError):
            console.print("[yellow]Move the existing file out of the way and run 'fresh install' again.[/yellow]")
        elif isinstance(exc, ConfigError) and "does not exist" in exc.message:
            console.print("[yellow]Pass --config the path of an existing fresh.toml, or omit it.[/yellow]")
        raise typer.Exit(code=1)
    raise exc


def _format_install_result(result: InstallResult) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Link")
    table.add_column("Target", overflow="fold")
    table.add_column("Action", no_wrap=True)

    styles = {
        LinkAction.CREATED: "green",
        LinkAction.REPAIRED: "yellow",
        LinkAction.UNCHANGED: "white",
        LinkAction.SKIPPED: "white",
    }

    for link in result.links:
        style = styles.get(link.action, "white")
        table.add_row(str(link.link_path), str(link.target), f"[{style}]{link.action.value}[/{style}]")

    if result.links:
        console.print(table)


def _format_show(items: Iterable[ShowItem]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Declaration", overflow="fold")
    table.add_column("Entry", overflow="fold")
    table.add_column("Build file", no_wrap=True)
    table.add_column("Link", overflow="fold")

    for item in items:
        table.add_row(
            str(item.entry.origin),
            escape(item.entry.describe()),
            "\n".join(item.build_paths) or "[red]no match[/red]",
            "\n".join(item.link_paths),
        )

    console.print(table)


def _format_clean(result: CleanResult) -> None:
    for link in result.removed_links:
        console.print(f"Removing dead link {link}")
    for repository in result.removed_repos:
        console.print(f"Removing unused repository {repository}")
    if not result.removed_links and not result.removed_repos:
        console.print("[green]Nothing to clean.[/green]")


@app.command()
def install(
    config: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Build the rc file's entries and link them into place."""

    try:
        manager = _load_manager(config)
        result = manager.install()
        _print_warnings(manager)
        _format_install_result(result)
        console.print("[green]Your dot files are now fresh.[/green]")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def show(
    config: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """List each declaration with the build files and links it produces."""

    try:
        manager = _load_manager(config)
        items = manager.show()
        _format_show(items)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def clean(
    config: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Remove dead links into the build and repositories no entry uses."""

    try:
        manager = _load_manager(config)
        result = manager.clean()
        _format_clean(result)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


def run() -> None:
    """Entry point used for console_script bindings."""

    app()

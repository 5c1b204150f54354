"""Thin CLI wrapper for wine_manager.

This module provides the command-line interface using Typer.
All business logic is delegated to ToolManager.
"""

import asyncio
import contextlib
import signal
from collections.abc import Awaitable, Callable
from typing import Annotated, TypeVar

import httpx
import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from wine_manager import __version__
from wine_manager.config import Settings, get_settings, print_settings_json
from wine_manager.logging_setup import configure_logging
from wine_manager.manager import ToolManager
from wine_manager.releases.schema import ReleaseRecord
from wine_manager.releases.sources import FetchError
from wine_manager.types import InstallOutcome, InstallState, ProgressInfo

app = typer.Typer(
    name="winemgr",
    help="Wine Manager - list, install, and remove Wine/Proton versions",
    no_args_is_help=True,
)
console = Console()

T = TypeVar("T")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"wine-manager version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Wine Manager - list, install, and remove Wine/Proton versions."""
    configure_logging(get_settings().log_level)


def _run(settings: Settings, action: Callable[[ToolManager], Awaitable[T]]) -> T:
    """Run ``action`` against a manager sharing one HTTP client."""

    async def runner() -> T:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            manager = ToolManager.from_settings(settings, client)
            return await action(manager)

    return asyncio.run(runner())


def _format_size(size_bytes: int) -> str:
    """Format bytes as human-readable size."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} PB"


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print_json(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Tools directory:     {settings.tools_dir}")
        console.print(f"  Wine root:           {settings.wine_dir}")
        console.print(f"  Proton root:         {settings.proton_dir}")
        console.print(f"  Database URL:        {settings.db_url}")
        console.print()
        console.print("[bold]Upstream:[/bold]")
        console.print(f"  GitHub API:          {settings.github_api_base}")
        console.print(f"  Releases per repo:   {settings.release_count}")
        console.print(f"  Token configured:    {bool(settings.github_token)}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")
        console.print(f"  Request timeout:     {settings.request_timeout}")
        console.print(f"  Download timeout:    {settings.download_timeout}")


@app.command("list")
def list_versions(
    fetch: Annotated[
        bool,
        typer.Option("--fetch", "-f", help="Refresh the catalog from upstream"),
    ] = False,
    count: Annotated[
        int | None,
        typer.Option("--count", "-c", min=1, help="Releases per upstream repository"),
    ] = None,
    installed: Annotated[
        bool,
        typer.Option("--installed", help="Only show installed versions"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List known Wine/Proton versions."""
    settings = get_settings()

    try:
        releases = _run(
            settings, lambda manager: manager.sync_catalog(fetch=fetch, count=count)
        )
    except FetchError as e:
        console.print(f"[red]Failed to fetch releases: {e}[/red]")
        raise typer.Exit(code=1) from None

    if installed:
        releases = [r for r in releases if r.is_installed]

    if json_output:
        console.print_json(data=[r.to_store() for r in releases])
        return

    if not releases:
        console.print("[yellow]No versions found[/yellow]")
        if not fetch:
            console.print("Use --fetch to download the release list.")
        return

    console.print(f"[bold]Found {len(releases)} version(s):[/bold]")
    console.print()
    for r in releases:
        if r.is_installed:
            color = "yellow" if r.has_update else "green"
        else:
            color = "white"
        console.print(f"  [{color}]{r.version}[/{color}] ({r.type})")
        if r.date:
            console.print(f"    Date: {r.date}")
        if r.is_installed:
            console.print(f"    Installed: {r.install_dir}")
            console.print(f"    Disk size: {_format_size(r.disk_size)}")
            if r.has_update:
                console.print("    [yellow]Update available[/yellow]")
        else:
            console.print(f"    Download size: {_format_size(r.download_size)}")


async def _install_with_progress(
    manager: ToolManager, record: ReleaseRecord, quiet: bool
) -> InstallOutcome:
    """Install ``record`` with a progress bar; SIGINT cancels the install."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, manager.cancel, record.version)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        handler_installed = False

    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
        disable=quiet,
    ) as progress:
        task = progress.add_task(record.version, total=record.download_size or None)

        def on_progress(state: InstallState, info: ProgressInfo | None = None) -> None:
            if state is InstallState.DOWNLOADING and info is not None:
                if record.download_size:
                    progress.update(
                        task,
                        completed=record.download_size * info.percentage / 100,
                    )
            else:
                progress.update(task, description=f"{record.version} ({state.value})")

        try:
            return await manager.install(record, on_progress)
        finally:
            if handler_installed:
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(signal.SIGINT)


@app.command()
def install(
    version: Annotated[str, typer.Argument(help="Version to install")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Install a version from the catalog (Ctrl-C aborts)."""
    settings = get_settings()

    async def action(manager: ToolManager) -> tuple[InstallOutcome | None, ReleaseRecord | None]:
        record = manager.get_release(version)
        if record is None:
            return None, None
        outcome = await _install_with_progress(manager, record, quiet=json_output)
        return outcome, manager.get_release(version)

    outcome, record = _run(settings, action)

    if outcome is None:
        console.print(f"[red]Version not found in catalog: {version}[/red]")
        console.print("Run 'list --fetch' to refresh the catalog.")
        raise typer.Exit(code=1)

    if json_output:
        output: dict[str, object] = {"version": version, "status": outcome.value}
        if outcome is InstallOutcome.DONE and record is not None:
            output["install_dir"] = record.install_dir
            output["disk_size"] = record.disk_size
        console.print_json(data=output)
    elif outcome is InstallOutcome.DONE and record is not None:
        console.print(f"[green]✓ Installed {version}[/green]")
        console.print(f"  Path: {record.install_dir}")
    elif outcome is InstallOutcome.ABORT:
        console.print(f"[yellow]Installation of {version} aborted[/yellow]")
    else:
        console.print(f"[red]Installation of {version} failed[/red]")

    if outcome is not InstallOutcome.DONE:
        raise typer.Exit(code=1)


@app.command()
def remove(
    version: Annotated[str, typer.Argument(help="Version to remove")],
) -> None:
    """Remove an installed version."""
    settings = get_settings()

    async def action(manager: ToolManager) -> bool:
        record = manager.get_release(version) or ReleaseRecord(version=version)
        return await manager.remove(record)

    if not _run(settings, action):
        console.print(f"[red]Version not found in catalog: {version}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Removed {version}[/green]")


if __name__ == "__main__":
    app()

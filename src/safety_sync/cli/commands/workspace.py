"""Workspace commands: create, select and inspect the shared workspace."""

import logging
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ...core.remote.gateway import (
    DEFAULT_BLOB_URL,
    BlobStoreGateway,
    RemoteGatewayError,
    RemoteMode,
)
from ...core.sync.reconciler import build_snapshot
from .context import SafetySyncApp

console = Console()
logger = logging.getLogger(__name__)


@click.group("workspace")
def workspace() -> None:
    """Manage the shared workspace this device syncs with."""
    pass


@workspace.command("create")
@click.pass_obj
def create_workspace(app: SafetySyncApp) -> None:
    """Create a new blob-store workspace seeded with the local dataset."""
    if app.remote_mode() != RemoteMode.BLOB.value:
        console.print(
            "[red]Workspaces can only be created in blob mode; "
            "use 'workspace use' with the id of the web app sheet[/red]"
        )
        raise click.Abort()

    gateway = BlobStoreGateway(
        app.remote_url() or DEFAULT_BLOB_URL,
        timeout_s=app.config.request_timeout_s,
    )
    try:
        workspace_id = gateway.create(build_snapshot(app.state))
    except RemoteGatewayError as e:
        logger.exception("Workspace creation failed")
        console.print(f"[bold red]❌ Could not create workspace: {e}[/bold red]")
        raise click.Abort()
    finally:
        gateway.close()

    app.remember_workspace(workspace_id, mode=RemoteMode.BLOB.value)
    console.print(f"[bold green]✅ Created workspace {workspace_id}[/bold green]")
    console.print("  Share this id with other devices to join the workspace.")


@workspace.command("use")
@click.argument("workspace_id")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in RemoteMode]),
    help="Remote backend of the workspace",
)
@click.option("--url", help="Remote endpoint URL (required for webhook mode)")
@click.pass_obj
def use_workspace(
    app: SafetySyncApp, workspace_id: str, mode: Optional[str], url: Optional[str]
) -> None:
    """Join an existing workspace by id."""
    workspace_id = workspace_id.strip()
    if not workspace_id:
        raise click.BadParameter("workspace id must not be empty")
    if mode == RemoteMode.WEBHOOK.value and not (url or app.remote_url()):
        raise click.BadParameter("webhook mode requires --url")

    app.remember_workspace(workspace_id, mode=mode, url=url)
    console.print(f"[green]✓ Using workspace {workspace_id}[/green]")
    console.print("  [dim]Run 'safety-sync sync pull' to fetch its data[/dim]")


@workspace.command("show")
@click.pass_obj
def show_workspace(app: SafetySyncApp) -> None:
    """Show the workspace settings in effect."""
    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Workspace", app.workspace_id() or "[dim]not set[/dim]")
    table.add_row("Mode", app.remote_mode())
    table.add_row("URL", app.remote_url() or "[dim]default[/dim]")
    table.add_row("Local store", str(app.config.database_path))
    console.print(table)

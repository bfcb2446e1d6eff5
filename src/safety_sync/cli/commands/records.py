"""Commands that inspect and update the local dataset."""

import logging
from typing import Optional

import click
from rich.console import Console

from ...models import RecordStatus
from ...services import (
    RecordService,
    RecordServiceError,
    UserService,
    build_report,
)
from ..display import display_records, display_report
from .context import SafetySyncApp

console = Console()
logger = logging.getLogger(__name__)


@click.group("records")
def records() -> None:
    """Last-minute risk assessment records."""
    pass


@records.command("list")
@click.option(
    "--status",
    "status_filter",
    type=click.Choice([s.name for s in RecordStatus], case_sensitive=False),
    help="Only show records with this status",
)
@click.option("--all", "include_deleted", is_flag=True, help="Include deleted records")
@click.pass_obj
def list_records(
    app: SafetySyncApp, status_filter: Optional[str], include_deleted: bool
) -> None:
    """List records, newest first."""
    items = RecordService(app.state).list_records(include_deleted=include_deleted)
    if status_filter:
        wanted = RecordStatus[status_filter.upper()]
        items = [r for r in items if r.status == wanted]
    display_records(items)


@records.command("resolve")
@click.argument("record_id")
@click.option("--by", "username", required=True, help="Username of the resolver")
@click.option("--notes", required=True, help="Treatment notes")
@click.pass_obj
def resolve_record(
    app: SafetySyncApp, record_id: str, username: str, notes: str
) -> None:
    """Close a NOK record with treatment notes."""
    try:
        resolver = UserService(app.state).find_by_username(username)
        if resolver is None:
            raise RecordServiceError(f"Unknown user: {username}")
        record = RecordService(app.state).resolve(record_id, resolver, notes)
    except RecordServiceError as e:
        console.print(f"[red]{e}[/red]")
        raise click.Abort()
    console.print(f"[green]✓ Record {record.id} resolved[/green]")
    console.print(
        "  [dim]Shared by the next 'safety-sync sync push' or 'sync run'[/dim]"
    )


@click.command("status")
@click.pass_obj
def status(app: SafetySyncApp) -> None:
    """Show the local dataset and workspace settings."""
    display_report(build_report(app.state))

    workspace_id = app.workspace_id()
    if workspace_id:
        console.print(f"\nWorkspace: [cyan]{workspace_id}[/cyan] ({app.remote_mode()})")
    else:
        console.print("\n[dim]No workspace configured; data stays on this device[/dim]")
    if app.state.has_unsynced_changes:
        console.print("[yellow]Local changes not pushed yet[/yellow]")

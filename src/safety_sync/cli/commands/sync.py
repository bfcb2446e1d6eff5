"""Sync commands: one-shot pull and push, and the continuous sync loop."""

import logging
import threading

import click
from rich.console import Console

from ...core.sync.scheduler import SyncScheduler
from ..display import display_reconcile_result, display_sync_status
from .context import SafetySyncApp

console = Console()
logger = logging.getLogger(__name__)


def _require_workspace(app: SafetySyncApp) -> str:
    workspace_id = app.workspace_id()
    if not workspace_id:
        console.print(
            "[red]No workspace configured. Run 'safety-sync workspace create' "
            "or 'safety-sync workspace use <id>' first.[/red]"
        )
        raise click.Abort()
    return workspace_id


def _pull(scheduler: SyncScheduler) -> None:
    console.print(
        f"[bold blue]📥 Pulling workspace {scheduler.workspace_id}...[/bold blue]"
    )
    result = scheduler.pull_now()
    if scheduler.status.last_error:
        console.print(
            f"  [yellow]⚠️  {scheduler.status.last_error}; "
            f"local data left unchanged[/yellow]"
        )
    elif result is None:
        console.print("  [dim]✓ Workspace empty or not newer than local data[/dim]")
    else:
        display_reconcile_result(result)


@click.group("sync")
def sync() -> None:
    """Synchronize the local dataset with the shared workspace."""
    pass


@sync.command("pull")
@click.pass_obj
def pull_command(app: SafetySyncApp) -> None:
    """Fetch the workspace once and merge it into the local dataset."""
    _require_workspace(app)
    scheduler = app.build_scheduler()
    try:
        _pull(scheduler)
    except Exception as e:
        logger.exception("Pull failed")
        console.print(f"[bold red]❌ Pull failed: {e}[/bold red]")
        raise click.Abort()
    finally:
        scheduler.gateway.close()
        scheduler.close()


@sync.command("push")
@click.pass_obj
def push_command(app: SafetySyncApp) -> None:
    """Pull, merge, then push the merged dataset to the workspace.

    The pull always runs first so that a push never overwrites remote data
    this device has not seen.
    """
    _require_workspace(app)
    # No guard window: nothing else writes to the workspace from this process
    scheduler = app.build_scheduler(settle_window_s=0.0)
    try:
        _pull(scheduler)
        if not scheduler.status.initial_pull_done:
            console.print("[red]Push skipped: the workspace could not be read[/red]")
            raise click.Abort()

        scheduler.poll()
        console.print("[bold blue]📤 Pushing local dataset...[/bold blue]")
        outcome = scheduler.push_now()
        if outcome is None:
            console.print(
                f"[bold red]❌ Push failed: {scheduler.status.last_error}[/bold red]"
            )
            raise click.Abort()
        console.print(f"  [green]✓ Push sent ({outcome.value})[/green]")
    except click.Abort:
        raise
    except Exception as e:
        logger.exception("Push failed")
        console.print(f"[bold red]❌ Push failed: {e}[/bold red]")
        raise click.Abort()
    finally:
        scheduler.gateway.close()
        scheduler.close()


@sync.command("run")
@click.option(
    "--interval",
    type=float,
    help="Seconds between pulls (default from SAFETY_SYNC_PULL_INTERVAL)",
)
@click.pass_obj
def run_command(app: SafetySyncApp, interval: float) -> None:
    """Keep the local dataset in sync until interrupted with Ctrl-C."""
    workspace_id = _require_workspace(app)
    scheduler = app.build_scheduler()
    if interval:
        scheduler.pull_interval_s = interval

    stop = threading.Event()
    console.print(
        f"[bold blue]🔄 Syncing workspace {workspace_id} "
        f"(Ctrl-C to stop)...[/bold blue]"
    )
    try:
        scheduler.run(stop)
    except KeyboardInterrupt:
        stop.set()
        console.print("\n[yellow]Stopping sync...[/yellow]")
    finally:
        scheduler.gateway.close()
        scheduler.close()

    display_sync_status(scheduler.status)

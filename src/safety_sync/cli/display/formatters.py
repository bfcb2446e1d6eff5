"""Display formatters and UI helpers for CLI."""

import logging
from datetime import datetime
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

from ...core.sync.reconciler import ReconcileResult
from ...core.sync.scheduler import SyncStatus
from ...models import Record, RecordStatus

console = Console()
logger = logging.getLogger(__name__)

STATUS_STYLES = {
    RecordStatus.OK: "green",
    RecordStatus.NOK: "red",
    RecordStatus.RESOLVED: "blue",
    RecordStatus.PENDING_SIGNATURE: "yellow",
}


def _format_ms(value: int) -> str:
    if not value:
        return "-"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")


def display_reconcile_result(result: ReconcileResult) -> None:
    """Display what a pull took from the remote workspace.

    Args:
        result: Result of applying a remote snapshot
    """
    if not result.changed:
        console.print("  [dim]✓ Already up to date[/dim]")
        return

    table = Table(title="Merged from workspace")
    table.add_column("Collection", style="cyan")
    table.add_column("New", justify="right", style="green")
    table.add_column("Updated", justify="right", style="yellow")
    table.add_column("Kept local", justify="right")
    table.add_column("Skipped", justify="right", style="red")

    for name, merge in result.merges.items():
        table.add_row(
            name,
            str(merge.inserted),
            str(merge.updated),
            str(merge.kept),
            str(len(merge.skipped)),
        )
    for name in result.absent:
        table.add_row(name, "[dim]absent[/dim]", "", "", "")

    console.print(table)
    if result.config_replaced:
        console.print(
            "  [yellow]→ App configuration replaced by workspace copy[/yellow]"
        )


def display_sync_status(status: SyncStatus) -> None:
    """Display the status of a sync session.

    Args:
        status: Scheduler status
    """
    summary = status.get_summary()
    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key, value in summary.items():
        label = key.replace("_", " ").title()
        table.add_row(label, "-" if value is None else str(value))
    console.print(table)


def display_records(records: List[Record]) -> None:
    """Display records as a table.

    Args:
        records: Records to show, in display order
    """
    if not records:
        console.print("[dim]No records[/dim]")
        return

    table = Table(title=f"Records ({len(records)})")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Date")
    table.add_column("Title", style="cyan")
    table.add_column("Location")
    table.add_column("By")
    table.add_column("Status")
    table.add_column("Updated", style="dim")

    for record in records:
        style = STATUS_STYLES.get(record.status, "white")
        table.add_row(
            record.id[:8],
            record.date,
            record.title,
            record.location,
            record.user_name,
            f"[{style}]{record.status.value}[/{style}]",
            _format_ms(record.timestamp),
        )
    console.print(table)


def display_report(report: Dict[str, Any]) -> None:
    """Display the dataset report.

    Args:
        report: Report dictionary from build_report
    """
    console.print("\n[bold green]📊 Local dataset[/bold green]")

    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Records", str(report["records"]["total"]))
    for status, count in report["records"]["by_status"].items():
        table.add_row(f"  {status}", str(count))
    for department, count in report["records"]["by_department"].items():
        table.add_row(f"  {department}", str(count))
    table.add_row("Meetings", str(report["meetings"]["total"]))
    table.add_row("Users", str(report["users"]["total"]))
    unread = report["notifications"]["unread"]
    table.add_row(
        "Unread notifications",
        f"[yellow]{unread}[/yellow]" if unread else "0",
    )
    console.print(table)

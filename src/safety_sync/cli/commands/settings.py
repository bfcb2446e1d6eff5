"""Commands that edit the shared app configuration."""

import logging
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ...models import SCREENS, UserRole
from ...services import ConfigService, ConfigServiceError
from ...services.settings import NEW_TEMPLATE_TEXT, TEMPLATE_LISTS
from .context import SafetySyncApp

console = Console()
logger = logging.getLogger(__name__)


@click.group("settings")
def settings() -> None:
    """Branding, form templates and role permissions."""
    pass


def _run(action):
    try:
        return action()
    except ConfigServiceError as e:
        console.print(f"[red]{e}[/red]")
        raise click.Abort()


@settings.command("show")
@click.pass_obj
def show(app: SafetySyncApp) -> None:
    """Show the current configuration."""
    config = ConfigService(app.state).config
    console.print(f"[bold]{config.app_name}[/bold] [dim]{config.logo_url}[/dim]")

    for kind, attribute in sorted(TEMPLATE_LISTS.items()):
        console.print(f"\n[bold]{kind.capitalize()}[/bold]")
        for index, text in enumerate(getattr(config, attribute)):
            console.print(f"  {index}. {text}")

    table = Table(title="Permissions")
    table.add_column("Role", style="cyan")
    for screen in SCREENS:
        table.add_column(screen, justify="center")
    for role in UserRole:
        allowed = config.screens_for(role)
        table.add_row(
            role.value, *["[green]✓[/green]" if s in allowed else "" for s in SCREENS]
        )
    console.print()
    console.print(table)


@settings.command("rename")
@click.argument("name")
@click.pass_obj
def rename(app: SafetySyncApp, name: str) -> None:
    """Change the application name."""
    _run(lambda: ConfigService(app.state).set_app_name(name))
    console.print(f"[green]✓ App name set to {name.strip()}[/green]")


@settings.command("permission")
@click.argument("role", type=click.Choice([r.value for r in UserRole]))
@click.argument("screen", type=click.Choice(SCREENS))
@click.pass_obj
def permission(app: SafetySyncApp, role: str, screen: str) -> None:
    """Grant or revoke a screen for a role."""
    granted = _run(
        lambda: ConfigService(app.state).toggle_permission(UserRole(role), screen)
    )
    verb = "granted" if granted else "revoked"
    console.print(f"[green]✓ {screen} {verb} for {role}[/green]")


@settings.command("add-template")
@click.argument("kind", type=click.Choice(sorted(TEMPLATE_LISTS)))
@click.argument("text", required=False)
@click.pass_obj
def add_template(app: SafetySyncApp, kind: str, text: Optional[str]) -> None:
    """Append a question or topic template."""
    _run(lambda: ConfigService(app.state).add_template(kind, text or NEW_TEMPLATE_TEXT))
    console.print(f"[green]✓ Added to {kind}[/green]")


@settings.command("edit-template")
@click.argument("kind", type=click.Choice(sorted(TEMPLATE_LISTS)))
@click.argument("index", type=int)
@click.argument("text")
@click.pass_obj
def edit_template(app: SafetySyncApp, kind: str, index: int, text: str) -> None:
    """Replace the text of a template."""
    _run(lambda: ConfigService(app.state).update_template(kind, index, text))
    console.print(f"[green]✓ Updated {kind} {index}[/green]")


@settings.command("remove-template")
@click.argument("kind", type=click.Choice(sorted(TEMPLATE_LISTS)))
@click.argument("index", type=int)
@click.pass_obj
def remove_template(app: SafetySyncApp, kind: str, index: int) -> None:
    """Remove a template."""
    _run(lambda: ConfigService(app.state).remove_template(kind, index))
    console.print(f"[green]✓ Removed {kind} {index}[/green]")

"""Command-line interface for the safety sync application.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import SafetySyncApp, records, settings, status, sync, workspace


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level (default from SAFETY_SYNC_LOG_LEVEL)",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.pass_context
def cli(ctx: Any, log_level: Optional[str], log_file: Optional[str]) -> None:
    """Offline-first sync for safety inspection records.

    Keeps the local dataset of risk assessments, meetings and users in step
    with a shared workspace stored remotely.
    """
    app = SafetySyncApp()
    config = app.config

    setup_logging(
        log_level=log_level or config.log_level,
        log_file=Path(log_file) if log_file else config.log_file,
    )
    configure_third_party_loggers()

    ctx.obj = app
    ctx.call_on_close(app.close)


# Register command groups and commands
cli.add_command(workspace)
cli.add_command(sync)
cli.add_command(records)
cli.add_command(settings)
cli.add_command(status)


if __name__ == "__main__":
    cli()

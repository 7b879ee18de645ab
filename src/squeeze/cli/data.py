"""Data management CLI commands."""

from __future__ import annotations

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context


@click.group(cls=JsonGroup)
@pass_context
def data(ctx: SqueezeContext) -> None:
    """Manage stored data."""
    pass


@data.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@pass_context
def data_clear(ctx: SqueezeContext, yes: bool) -> None:
    """Delete every subscription, event, usage check and payment method."""
    from squeeze.services.settings_service import DataService

    if not ctx.json_mode and not yes:
        click.confirm("This permanently deletes all your data. Continue?", abort=True)

    counts = DataService(ctx.get_db()).clear_all()
    if ctx.json_mode:
        ctx.formatter.json(counts)
    else:
        ctx.formatter.success("All data cleared.")

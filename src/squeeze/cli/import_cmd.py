"""Import CLI commands."""

from __future__ import annotations

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context


@click.group(cls=JsonGroup)
@pass_context
def import_group(ctx: SqueezeContext) -> None:
    """Import subscriptions from a file."""
    pass


@import_group.command("csv")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@pass_context
def import_csv(ctx: SqueezeContext, file_path: str) -> None:
    """Import subscriptions from a CSV file in the export format.

    Rows whose name already exists are skipped; bad rows are reported.
    """
    from squeeze.services.csv_service import CsvImporter
    from squeeze.services.subscription_service import SubscriptionService

    db = ctx.get_db()
    svc = SubscriptionService(db)
    with open(file_path, encoding="utf-8-sig", newline="") as f:
        text = f.read()
    result = CsvImporter(svc, svc.settings.get()).import_text(text)

    if ctx.json_mode:
        ctx.formatter.json(result.model_dump())
        return

    ctx.formatter.success(f"Imported {result.imported} subscription(s).")
    if result.skipped:
        ctx.formatter.info(f"{result.skipped} skipped (duplicates or errors).")
    for err in result.errors[:10]:
        ctx.formatter.warning(err)
    if len(result.errors) > 10:
        ctx.formatter.warning(f"... and {len(result.errors) - 10} more")

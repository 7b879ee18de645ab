"""Export CLI commands — CSV and JSON export."""

from __future__ import annotations

import json

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context


@click.group(cls=JsonGroup)
@pass_context
def export(ctx: SqueezeContext) -> None:
    """Export subscriptions to CSV or JSON."""
    pass


@export.command("csv")
@click.option("--output", "-o", "output_file", default=None, help="Output file path (stdout if not specified).")
@pass_context
def export_csv_cmd(ctx: SqueezeContext, output_file: str | None) -> None:
    """Export subscriptions as CSV."""
    from squeeze.services.csv_service import export_csv
    from squeeze.services.subscription_service import SubscriptionService

    subs = SubscriptionService(ctx.get_db()).list_subscriptions()
    csv_text = export_csv(subs)

    if output_file:
        with open(output_file, "w", newline="") as f:
            f.write(csv_text)
        if ctx.json_mode:
            ctx.formatter.json({"exported": len(subs), "file": output_file})
        else:
            ctx.formatter.success(f"Exported {len(subs)} subscriptions to {output_file}")
    else:
        click.echo(csv_text, nl=False)


@export.command("json")
@click.option("--output", "-o", "output_file", default=None)
@pass_context
def export_json(ctx: SqueezeContext, output_file: str | None) -> None:
    """Export all records (subscriptions, events, usage checks, payment methods, settings) as JSON."""
    from squeeze.services.payment_method_service import PaymentMethodService
    from squeeze.services.settings_service import SettingsService
    from squeeze.services.subscription_service import SubscriptionService

    db = ctx.get_db()
    svc = SubscriptionService(db)
    data = {
        "subscriptions": [s.model_dump() for s in svc.list_subscriptions()],
        "events": [e.model_dump() for e in svc.get_events()],
        "usage_checks": [c.model_dump() for c in svc.get_usage_checks()],
        "payment_methods": [m.model_dump() for m in PaymentMethodService(db).list()],
        "settings": SettingsService(db).get().model_dump(),
    }

    json_text = json.dumps(data, indent=2, default=str)
    if output_file:
        with open(output_file, "w") as f:
            f.write(json_text)
        ctx.formatter.success(f"Exported to {output_file}")
    else:
        click.echo(json_text)

"""Usage check CLI commands — did you actually use it this month?"""

from __future__ import annotations

from datetime import date

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context
from squeeze.models.usage import USAGE_ANSWERS
from squeeze.output.formatter import money
from squeeze.services.recurrence import month_key


@click.group(cls=JsonGroup)
@pass_context
def usage(ctx: SqueezeContext) -> None:
    """Record and review monthly usage checks."""
    pass


@usage.command("check")
@click.argument("ref")
@click.argument("answer", type=click.Choice(USAGE_ANSWERS))
@click.option("--month", default=None, help="Month to record (YYYY-MM, default this month).")
@pass_context
def usage_check(ctx: SqueezeContext, ref: str, answer: str, month: str | None) -> None:
    """Record whether a subscription was used (yes, no or skip)."""
    from squeeze.services.subscription_service import SubscriptionService

    svc = SubscriptionService(ctx.get_db())
    sub = svc.resolve(ref)
    check = svc.save_usage_check(sub.id, month or month_key(date.today()), answer)

    if ctx.json_mode:
        ctx.formatter.json(check.model_dump())
    else:
        ctx.formatter.success(f"{sub.name} in {check.month}: {answer}")


@usage.command("list")
@click.argument("ref", required=False)
@click.option("--month", default=None, help="Only this month (YYYY-MM).")
@pass_context
def usage_list(ctx: SqueezeContext, ref: str | None, month: str | None) -> None:
    """List recorded usage checks."""
    from squeeze.services.subscription_service import SubscriptionService

    svc = SubscriptionService(ctx.get_db())
    sub_id = svc.resolve(ref).id if ref else None
    checks = svc.get_usage_checks(sub_id, month)
    names = {s.id: s.name for s in svc.list_subscriptions()}

    if not checks and not ctx.json_mode:
        ctx.formatter.info("No usage checks recorded.")
        return

    ctx.formatter.table(
        title="Usage Checks",
        columns=[("Month", "cyan"), ("Subscription", "bold"), ("Used", "yellow")],
        rows=[[c.month, names.get(c.subscription_id, "(deleted)"), c.used] for c in checks],
        data_for_json=[c.model_dump() for c in checks],
    )


@usage.command("pending")
@click.option("--month", default=None, help="Month to check (YYYY-MM, default this month).")
@pass_context
def usage_pending(ctx: SqueezeContext, month: str | None) -> None:
    """Show billing subscriptions without an answer for the month."""
    from squeeze.services.insights_service import InsightsService

    month = month or month_key(date.today())
    subs = InsightsService(ctx.get_db()).get_pending_checks(month)

    if ctx.json_mode:
        ctx.formatter.json([s.model_dump() for s in subs])
        return
    if not subs:
        ctx.formatter.success(f"All usage checks done for {month}.")
        return

    ctx.formatter.print(f"\n[bold]Did you use these in {month}?[/bold]")
    for s in subs:
        ctx.formatter.print(f"  • {s.name} ({money(s.amount_cents, s.currency)})")
    ctx.formatter.print("\n[dim]Answer with: squeeze usage check NAME yes|no|skip[/dim]")

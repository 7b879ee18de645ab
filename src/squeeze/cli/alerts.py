"""Alerts CLI commands."""

from __future__ import annotations

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context
from squeeze.output.formatter import BUDGET_STYLES, budget_bar, money


@click.group(cls=JsonGroup, invoke_without_command=True)
@click.pass_context
def alerts(click_ctx: click.Context) -> None:
    """Budget, trial, renewal and price-change alerts."""
    if click_ctx.invoked_subcommand is None:
        click_ctx.invoke(alerts_show)


@alerts.command("show")
@pass_context
def alerts_show(ctx: SqueezeContext) -> None:
    """Show everything that needs attention."""
    from squeeze.services.alert_service import AlertService

    data = AlertService(ctx.get_db()).get_all()

    if ctx.json_mode:
        ctx.formatter.json({
            "budget": data["budget"].model_dump() if data["budget"] else None,
            "expiring_trials": [s.model_dump() for s in data["expiring_trials"]],
            "upcoming": [s.model_dump() for s in data["upcoming"]],
            "price_changes": [c.model_dump() for c in data["price_changes"]],
            "reminders": [r.model_dump() for r in data["reminders"]],
        })
        return

    f = ctx.formatter
    shown = False
    budget = data["budget"]
    if budget is not None and budget.level != "ok":
        style = BUDGET_STYLES[budget.level]
        f.print(
            f"[{style}]Budget {budget.level}:[/{style}] {money(budget.spent_cents)} of "
            f"{money(budget.limit_cents)} ({budget.percent}%)"
        )
        shown = True
    for s in data["expiring_trials"]:
        f.warning(f"Trial ending: {s.name} converts on {f.date(s.next_renewal_date)} "
                  f"({money(s.amount_cents, s.currency)})")
        shown = True
    for s in data["upcoming"]:
        f.print(f"  Renewing: {s.name} on {f.date(s.next_renewal_date)} ({money(s.amount_cents, s.currency)})")
        shown = True
    for c in data["price_changes"]:
        direction = "up" if c.is_increase else "down"
        f.print(f"  Price {direction}: {c.name} {money(c.from_cents, c.currency)} → {money(c.to_cents, c.currency)}")
        shown = True
    for r in data["reminders"]:
        f.print(f"  Reminder: {r.name} renews in {r.days_before} day(s)")
        shown = True
    if not shown:
        f.success("Nothing needs attention.")


@alerts.command("budget")
@pass_context
def alerts_budget(ctx: SqueezeContext) -> None:
    """Show spending against the monthly budget."""
    from squeeze.services.alert_service import AlertService

    budget = AlertService(ctx.get_db()).get_budget_status()

    if ctx.json_mode:
        ctx.formatter.json(budget.model_dump() if budget else None)
        return
    if budget is None:
        ctx.formatter.info("No monthly budget set. Use 'squeeze settings set --budget 100'.")
        return
    ctx.formatter.print(budget_bar(budget.percent, budget.level))
    ctx.formatter.print(
        f"Budget used: {money(budget.spent_cents)} of {money(budget.limit_cents)} "
        f"({money(budget.remaining_cents)} left)"
    )


@alerts.command("remind")
@click.option("--dry-run", is_flag=True, help="List due reminders without marking them sent.")
@pass_context
def alerts_remind(ctx: SqueezeContext, dry_run: bool) -> None:
    """Print today's due reminders and mark them as sent."""
    from squeeze.services.alert_service import AlertService

    svc = AlertService(ctx.get_db())
    reminders = svc.get_due_reminders() if dry_run else svc.send_due_reminders()

    if ctx.json_mode:
        ctx.formatter.json([r.model_dump() for r in reminders])
        return
    if not reminders:
        ctx.formatter.info("No reminders due today.")
        return
    for r in reminders:
        ctx.formatter.print(
            f"  🔔 {r.name} renews on {ctx.formatter.date(r.renewal_date)} "
            f"for {money(r.amount_cents, r.currency)}"
        )

"""Dashboard CLI command — the at-a-glance view shown by a bare ``squeeze``."""

from __future__ import annotations

from datetime import date

import click

from squeeze.cli.main import SqueezeContext, pass_context
from squeeze.output.formatter import budget_bar, money, money_totals


@click.command()
@pass_context
def dashboard(ctx: SqueezeContext) -> None:
    """Totals, budget and what's renewing soon.

    Stale renewal dates are rolled forward first, so the view is always current.
    """
    from squeeze.services.alert_service import AlertService
    from squeeze.services.insights_service import InsightsService
    from squeeze.services.subscription_service import SubscriptionService

    db = ctx.get_db()
    today = date.today()
    advanced = SubscriptionService(db).advance_renewals(today)
    summary = InsightsService(db).get_summary(today)
    alert_data = AlertService(db).get_all(today)

    if ctx.json_mode:
        ctx.formatter.json({
            "summary": summary,
            "advanced": [s.id for s in advanced],
            "upcoming": [s.model_dump() for s in alert_data["upcoming"]],
            "expiring_trials": [s.model_dump() for s in alert_data["expiring_trials"]],
        })
        return

    f = ctx.formatter
    if summary["total"] == 0:
        f.info(
            "No subscriptions yet. Add one or load demo data:\n\n"
            "  squeeze subscriptions add --template netflix --next-renewal YYYY-MM-DD\n"
            "  squeeze seed"
        )
        return

    billing = summary["by_status"].get("active", 0) + summary["by_status"].get("trial", 0)
    lines = [
        f"[bold green]{money_totals(summary['monthly_totals_cents'])}[/bold green] / month",
        f"[dim]{money_totals(summary['yearly_totals_cents'])} / year[/dim]",
        f"{billing} billing, {summary['total']} tracked",
    ]
    budget = alert_data["budget"]
    if budget is not None:
        lines.append(f"Budget {money(budget.limit_cents)}: {budget_bar(budget.percent, budget.level)}")
    f.panel("\n".join(lines), title=f"Squeeze · {today.strftime('%A, %b %d, %Y')}", border_style="cyan")

    trials = alert_data["expiring_trials"]
    if trials:
        f.print(f"\n[bold yellow]TRIALS ENDING ({len(trials)})[/bold yellow]")
        for s in trials:
            days = s.days_until_renewal(today)
            when = "TODAY" if days == 0 else f"in {days} days"
            f.print(f"  [yellow]\\[!][/yellow] {s.name}: {money(s.amount_cents, s.currency)} {when}")

    upcoming = alert_data["upcoming"]
    f.print("\n[bold cyan]RENEWING THIS WEEK[/bold cyan]")
    if not upcoming:
        f.print("  [green]Nothing renewing in the next 7 days.[/green]")
    for s in upcoming:
        days = s.days_until_renewal(today)
        when = "today" if days == 0 else "tomorrow" if days == 1 else f.date(s.next_renewal_date)
        f.print(f"  {s.name}: {money(s.amount_cents, s.currency)} {when}")
    if advanced:
        f.print(f"\n[dim]Rolled {len(advanced)} past renewal date(s) forward.[/dim]")

"""Insights CLI commands — totals, trends, projections and savings."""

from __future__ import annotations

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context
from squeeze.output.formatter import money, money_totals


@click.group(cls=JsonGroup)
@pass_context
def insights(ctx: SqueezeContext) -> None:
    """Spending insights (summary, trends, projection, yoy, savings, top)."""
    pass


@insights.command("summary")
@pass_context
def insights_summary(ctx: SqueezeContext) -> None:
    """Monthly and yearly totals, by status and category."""
    from squeeze.services.insights_service import InsightsService

    summary = InsightsService(ctx.get_db()).get_summary()

    if ctx.json_mode:
        ctx.formatter.json(summary)
        return

    f = ctx.formatter
    f.print("\n[bold cyan]Subscription Summary[/bold cyan]")
    counts = ", ".join(f"{n} {status}" for status, n in summary["by_status"].items() if n)
    f.print(f"  Subscriptions: {summary['total']}" + (f" ({counts})" if counts else ""))
    f.print(f"  Monthly total: {money_totals(summary['monthly_totals_cents'])}")
    f.print(f"  Yearly total: {money_totals(summary['yearly_totals_cents'])}")
    f.print(f"  Renewing in 7 days: {summary['upcoming_count']}")

    if summary["by_category"]:
        f.print(f"\n  [bold]By Category (monthly, {summary['currency']}):[/bold]")
        for cat, cents in sorted(summary["by_category"].items(), key=lambda x: -x[1]):
            f.print(f"    {cat}: {money(cents, summary['currency'])}")


@insights.command("trends")
@click.option("--currency", default=None, help="Currency to chart (default: settings currency).")
@pass_context
def insights_trends(ctx: SqueezeContext, currency: str | None) -> None:
    """Spending over the last three months and the next two."""
    from squeeze.services.insights_service import InsightsService

    report = InsightsService(ctx.get_db()).get_trends(currency=currency)

    if ctx.json_mode:
        ctx.formatter.json(report.model_dump())
        return

    rows = []
    for b in report.months:
        rows.append([b.label, money(b.total_for(report.currency), report.currency), "projected" if b.projected else ""])
    ctx.formatter.table(
        title=f"Spending Trend ({report.currency})",
        columns=[("Month", "cyan"), ("Billed", "green"), ("", "dim")],
        rows=rows,
    )
    ctx.formatter.print(f"  Average: {money(report.average_cents, report.currency)}")
    arrow = "↑" if report.change_percent > 0 else "↓" if report.change_percent < 0 else "→"
    ctx.formatter.print(f"  Month over month: {arrow} {abs(report.change_percent)}%")


@insights.command("projection")
@click.option("--currency", default=None, help="Currency to project (default: settings currency).")
@pass_context
def insights_projection(ctx: SqueezeContext, currency: str | None) -> None:
    """What the next twelve months will cost, month by month."""
    from squeeze.services.insights_service import InsightsService

    proj = InsightsService(ctx.get_db()).get_projection(currency=currency)

    if ctx.json_mode:
        ctx.formatter.json(proj.model_dump())
        return

    rows = []
    for b in proj.months:
        names = ", ".join(i.name for i in b.items if i.currency == proj.currency)
        rows.append([b.label, money(b.total_for(proj.currency), proj.currency), names])
    ctx.formatter.table(
        title=f"12-Month Projection ({proj.currency})",
        columns=[("Month", "cyan"), ("Billed", "green"), ("Renewals", "dim")],
        rows=rows,
    )
    ctx.formatter.print(f"  Scheduled over 12 months: {money(proj.scheduled_total_cents, proj.currency)}")
    ctx.formatter.print(f"  Yearly cost at current rates: {money(proj.yearly_total_cents, proj.currency)}")


@insights.command("yoy")
@click.option("--currency", default=None, help="Currency to compare (default: settings currency).")
@pass_context
def insights_yoy(ctx: SqueezeContext, currency: str | None) -> None:
    """Compare this year's spending with last year's."""
    from squeeze.services.insights_service import InsightsService

    yoy = InsightsService(ctx.get_db()).get_year_over_year(currency=currency)

    if ctx.json_mode:
        ctx.formatter.json(yoy.model_dump())
        return

    c = yoy.currency
    f = ctx.formatter
    f.print(f"\n[bold cyan]Year over Year ({c})[/bold cyan]")
    f.print(f"  Now: {money(yoy.current_monthly_cents, c)}/mo ({money(yoy.current_annual_cents, c)}/yr)")
    f.print(f"  A year ago: {money(yoy.last_year_monthly_cents, c)}/mo ({money(yoy.last_year_annual_cents, c)}/yr)")
    sign = "+" if yoy.monthly_change_cents > 0 else ""
    f.print(f"  Change: {sign}{money(yoy.monthly_change_cents, c)}/mo ({sign}{yoy.change_percent}%)")
    if yoy.new_this_year:
        f.print(f"  New this year: {', '.join(s.name for s in yoy.new_this_year)}")
    if yoy.removed_this_year:
        f.print(f"  Paused or cancelled: {', '.join(s.name for s in yoy.removed_this_year)}")


@insights.command("savings")
@pass_context
def insights_savings(ctx: SqueezeContext) -> None:
    """Subscriptions you said you didn't use, and what dropping them saves."""
    from squeeze.services.insights_service import InsightsService

    report = InsightsService(ctx.get_db()).get_savings()

    if ctx.json_mode:
        ctx.formatter.json(report.model_dump())
        return
    if not report.candidates:
        ctx.formatter.info("No unused subscriptions found. Record usage with 'squeeze usage check'.")
        return

    ctx.formatter.table(
        title="Savings Opportunities",
        columns=[("Name", "bold"), ("Monthly", "green"), ("Last Check", "cyan")],
        rows=[
            [c.subscription.name, money(c.monthly_cents, c.subscription.currency), c.last_checked_month]
            for c in report.candidates
        ],
    )
    ctx.formatter.print(
        f"  Potential savings: {money_totals(report.monthly_savings_cents)}/mo, "
        f"{money_totals(report.yearly_savings_cents)}/yr"
    )


@insights.command("top")
@click.option("-n", "limit", default=5, help="How many to show.")
@pass_context
def insights_top(ctx: SqueezeContext, limit: int) -> None:
    """Most expensive subscriptions by monthly cost."""
    from squeeze.services.insights_service import InsightsService

    subs = InsightsService(ctx.get_db()).get_top(limit)
    ctx.formatter.table(
        title="Top Subscriptions",
        columns=[("#", "dim"), ("Name", "bold"), ("Monthly", "green"), ("Cadence", "")],
        rows=[
            [str(i), s.name, money(s.monthly_cost_cents, s.currency), s.cadence]
            for i, s in enumerate(subs, 1)
        ],
        data_for_json=[{**s.model_dump(), "monthly_cost_cents": s.monthly_cost_cents} for s in subs],
    )

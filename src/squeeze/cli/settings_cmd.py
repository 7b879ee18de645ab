"""Settings CLI commands."""

from __future__ import annotations

from typing import Any

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context
from squeeze.cli.subscriptions_cmd import to_cents
from squeeze.output.formatter import money


@click.group(cls=JsonGroup)
@pass_context
def settings(ctx: SqueezeContext) -> None:
    """View and change app settings."""
    pass


@settings.command("show")
@pass_context
def settings_show(ctx: SqueezeContext) -> None:
    """Show current settings."""
    from squeeze.services.settings_service import SettingsService

    s = SettingsService(ctx.get_db()).get()
    if ctx.json_mode:
        ctx.formatter.json(s.model_dump())
        return

    budget = money(s.monthly_budget_limit_cents, s.default_currency) if s.monthly_budget_limit_cents else "none"
    ctx.formatter.print("\n[bold]Settings[/bold]")
    ctx.formatter.print(f"  Default currency: {s.default_currency}")
    ctx.formatter.print(f"  Default reminder: {s.default_reminder_days} day(s) before")
    ctx.formatter.print(f"  Count trials in totals: {'yes' if s.include_trials_in_total else 'no'}")
    ctx.formatter.print(f"  Monthly budget: {budget}")
    ctx.formatter.print(f"  Budget alert at: {s.budget_alert_threshold}%")
    ctx.formatter.print(f"  Trial warning: {s.trial_expiration_days} day(s) ahead")


@settings.command("set")
@click.option("--currency", default=None, help="Default currency code.")
@click.option("--reminder-days", type=int, default=None, help="Default reminder lead days.")
@click.option("--trials/--no-trials", default=None, help="Count trials toward totals.")
@click.option("--budget", type=float, default=None, help="Monthly budget limit (0 to remove).")
@click.option("--threshold", type=int, default=None, help="Budget alert threshold percent.")
@click.option("--trial-days", type=int, default=None, help="Warn this many days before a trial ends.")
@pass_context
def settings_set(
    ctx: SqueezeContext,
    currency: str | None,
    reminder_days: int | None,
    trials: bool | None,
    budget: float | None,
    threshold: int | None,
    trial_days: int | None,
) -> None:
    """Change one or more settings."""
    from squeeze.services.settings_service import SettingsService

    changes: dict[str, Any] = {}
    if currency is not None:
        changes["default_currency"] = currency
    if reminder_days is not None:
        changes["default_reminder_days"] = reminder_days
    if trials is not None:
        changes["include_trials_in_total"] = trials
    if budget is not None:
        changes["monthly_budget_limit_cents"] = to_cents(budget) or None
    if threshold is not None:
        changes["budget_alert_threshold"] = threshold
    if trial_days is not None:
        changes["trial_expiration_days"] = trial_days

    if not changes:
        ctx.formatter.info("Nothing to change.")
        return

    s = SettingsService(ctx.get_db()).update(**changes)
    if ctx.json_mode:
        ctx.formatter.json(s.model_dump())
    else:
        ctx.formatter.success("Settings updated.")

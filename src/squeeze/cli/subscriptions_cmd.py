"""Subscription management CLI commands."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context
from squeeze.core.exceptions import NotFoundError, ValidationError
from squeeze.models.subscription import CADENCES, CATEGORIES, STATUSES, Subscription
from squeeze.output.formatter import money, status_label


def to_cents(amount: float) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1")))


def parse_share(value: str) -> dict[str, Any]:
    """``"Alex"`` or ``"Alex:40"`` (40 percent)."""
    name, _, percent = value.partition(":")
    if not percent:
        return {"name": name.strip()}
    try:
        return {"name": name.strip(), "share_percent": float(percent)}
    except ValueError:
        raise ValidationError(f"Invalid share: {value!r} (expected NAME or NAME:PERCENT).")


def _per(sub: Subscription) -> str:
    if sub.cadence == "custom":
        return f"every {sub.custom_days}d"
    return sub.cadence


def _render(ctx: SqueezeContext, sub: Subscription) -> None:
    if ctx.json_mode:
        ctx.formatter.json(sub.model_dump())
        return
    f = ctx.formatter
    f.print(f"\n[bold]{sub.name}[/bold]")
    f.print(f"  Amount: {money(sub.amount_cents, sub.currency)} ({_per(sub)})")
    f.print(f"  Monthly cost: {money(sub.monthly_cost_cents, sub.currency)}")
    f.print(f"  Yearly cost: {money(sub.yearly_cost_cents, sub.currency)}")
    if sub.shared_members:
        names = ", ".join(
            m.name if m.share_percent is None else f"{m.name} ({m.share_percent:g}%)" for m in sub.shared_members
        )
        f.print(f"  Shared with: {names}")
        f.print(f"  Your share: {money(sub.my_share_cents, sub.currency)}")
    f.print(f"  Category: {sub.category}")
    f.print(f"  Status: {sub.status}")
    f.print(f"  Next renewal: {f.date(sub.next_renewal_date)} ({sub.days_until_renewal()} days)")
    reminder = f"{sub.reminder_days_before} day(s) before" if sub.reminder_enabled else "off"
    f.print(f"  Reminder: {reminder}")
    if sub.cancel_url:
        f.print(f"  Cancel at: {sub.cancel_url}")
    if sub.notes:
        f.print(f"  Notes: {sub.notes}")
    f.print(f"  ID: {sub.id}")


@click.group(cls=JsonGroup)
@pass_context
def subscriptions(ctx: SqueezeContext) -> None:
    """Manage subscriptions (list, add, show, edit, pause, resume, cancel, delete)."""
    pass


@subscriptions.command("list")
@click.option("--status", type=click.Choice(STATUSES), default=None, help="Only show one status.")
@pass_context
def subscriptions_list(ctx: SqueezeContext, status: str | None) -> None:
    """List subscriptions."""
    from squeeze.services.subscription_service import SubscriptionService

    svc = SubscriptionService(ctx.get_db())
    sub_list = svc.list_subscriptions(status=status)

    if ctx.json_mode:
        ctx.formatter.json([s.model_dump() for s in sub_list])
        return

    if not sub_list:
        ctx.formatter.info("No subscriptions found. Use 'squeeze subscriptions add' to add one.")
        return

    rows = []
    for s in sub_list:
        rows.append([
            s.name,
            money(s.amount_cents, s.currency),
            _per(s),
            money(s.monthly_cost_cents, s.currency),
            ctx.formatter.date(s.next_renewal_date),
            s.category,
            status_label(s.status),
        ])

    ctx.formatter.table(
        title="Subscriptions",
        columns=[
            ("Name", "bold"),
            ("Amount", "green"),
            ("Cadence", ""),
            ("Monthly", "green"),
            ("Next Renewal", "cyan"),
            ("Category", "dim"),
            ("Status", ""),
        ],
        rows=rows,
    )


@subscriptions.command("add")
@click.option("--template", "template_id", default=None, help="Pre-fill from a known service (see 'templates').")
@click.option("--name", default=None, help="Subscription name.")
@click.option("--amount", type=float, default=None, help="Amount per renewal, e.g. 15.99.")
@click.option("--next-renewal", required=True, help="Next renewal date (YYYY-MM-DD).")
@click.option("--currency", default=None, help="Currency code (defaults to the settings currency).")
@click.option("--cadence", type=click.Choice(CADENCES), default=None, help="Billing cadence.")
@click.option("--custom-days", type=int, default=None, help="Days between renewals for a custom cadence.")
@click.option("--category", type=click.Choice(CATEGORIES), default=None, help="Category.")
@click.option("--status", type=click.Choice(STATUSES), default="active", help="Initial status.")
@click.option("--reminder-days", type=int, default=None, help="Remind this many days before renewal.")
@click.option("--no-reminder", is_flag=True, help="Disable renewal reminders.")
@click.option("--notes", default="", help="Notes.")
@click.option("--cancel-url", default=None, help="Where to cancel.")
@click.option("--payment-method", "payment_method_id", default=None, help="Payment method ID.")
@click.option("--share", "shares", multiple=True, help="Split with someone: NAME or NAME:PERCENT (repeatable).")
@pass_context
def subscriptions_add(
    ctx: SqueezeContext,
    template_id: str | None,
    name: str | None,
    amount: float | None,
    next_renewal: str,
    currency: str | None,
    cadence: str | None,
    custom_days: int | None,
    category: str | None,
    status: str,
    reminder_days: int | None,
    no_reminder: bool,
    notes: str,
    cancel_url: str | None,
    payment_method_id: str | None,
    shares: tuple[str, ...],
) -> None:
    """Add a subscription."""
    from squeeze.services.subscription_service import SubscriptionService
    from squeeze.services.templates import get_template

    defaults: dict[str, Any] = {}
    if template_id:
        t = get_template(template_id)
        defaults = {
            "name": t.name,
            "amount_cents": t.amount_cents,
            "currency": t.currency,
            "cadence": t.cadence,
            "category": t.category,
            "cancel_url": t.cancel_url,
        }
    if not name and "name" not in defaults:
        raise ValidationError("Subscription name is required (--name or --template).")
    if amount is None and "amount_cents" not in defaults:
        raise ValidationError("Amount is required (--amount or --template).")

    svc = SubscriptionService(ctx.get_db())
    sub = svc.add_subscription(
        name=name or defaults["name"],
        amount_cents=to_cents(amount) if amount is not None else defaults["amount_cents"],
        next_renewal_date=next_renewal,
        currency=currency or defaults.get("currency"),
        cadence=cadence or defaults.get("cadence", "monthly"),
        custom_days=custom_days,
        category=category or defaults.get("category", "other"),
        status=status,
        reminder_enabled=not no_reminder,
        reminder_days_before=reminder_days,
        notes=notes,
        cancel_url=cancel_url if cancel_url is not None else defaults.get("cancel_url", ""),
        shared_members=[parse_share(s) for s in shares],
        payment_method_id=payment_method_id,
    )

    if ctx.json_mode:
        ctx.formatter.json(sub.model_dump())
    else:
        ctx.formatter.success(f"Added subscription: {sub.name}, {money(sub.amount_cents, sub.currency)}/{_per(sub)}")


@subscriptions.command("templates")
@pass_context
def subscriptions_templates(ctx: SqueezeContext) -> None:
    """List the built-in service templates."""
    from squeeze.services.templates import TEMPLATES

    ctx.formatter.table(
        title="Templates",
        columns=[("ID", "dim"), ("Name", "bold"), ("Amount", "green"), ("Cadence", ""), ("Category", "")],
        rows=[[t.id, t.name, money(t.amount_cents, t.currency), t.cadence, t.category] for t in TEMPLATES],
        data_for_json=[t.model_dump() for t in TEMPLATES],
    )


@subscriptions.command("show")
@click.argument("ref")
@pass_context
def subscriptions_show(ctx: SqueezeContext, ref: str) -> None:
    """Show details for a subscription (by ID or name)."""
    from squeeze.services.subscription_service import SubscriptionService

    sub = SubscriptionService(ctx.get_db()).resolve(ref)
    _render(ctx, sub)


@subscriptions.command("edit")
@click.argument("ref")
@click.option("--name", default=None)
@click.option("--amount", type=float, default=None)
@click.option("--next-renewal", default=None)
@click.option("--currency", default=None)
@click.option("--cadence", type=click.Choice(CADENCES), default=None)
@click.option("--custom-days", type=int, default=None)
@click.option("--category", type=click.Choice(CATEGORIES), default=None)
@click.option("--status", type=click.Choice(STATUSES), default=None)
@click.option("--reminder-days", type=int, default=None)
@click.option("--reminder/--no-reminder", "reminder", default=None)
@click.option("--notes", default=None)
@click.option("--cancel-url", default=None)
@click.option("--payment-method", "payment_method_id", default=None, help="Payment method ID ('' to clear).")
@click.option("--share", "shares", multiple=True, help="Replace shared members: NAME or NAME:PERCENT.")
@click.option("--no-shares", is_flag=True, help="Remove all shared members.")
@pass_context
def subscriptions_edit(ctx: SqueezeContext, ref: str, **opts: Any) -> None:
    """Edit a subscription. Only the options given are changed."""
    from squeeze.services.subscription_service import SubscriptionService

    svc = SubscriptionService(ctx.get_db())
    sub = svc.resolve(ref)

    renames = {
        "next_renewal": "next_renewal_date",
        "reminder_days": "reminder_days_before",
        "reminder": "reminder_enabled",
    }
    changes: dict[str, Any] = {}
    for key, value in opts.items():
        if key in ("shares", "no_shares", "amount") or value is None:
            continue
        changes[renames.get(key, key)] = value
    if opts["amount"] is not None:
        changes["amount_cents"] = to_cents(opts["amount"])
    if opts["no_shares"]:
        changes["shared_members"] = []
    elif opts["shares"]:
        changes["shared_members"] = [parse_share(s) for s in opts["shares"]]

    if not changes:
        ctx.formatter.info("Nothing to change.")
        return

    updated = svc.update_subscription(sub.id, **changes)
    if updated is None:
        raise NotFoundError(f"Subscription not found: {ref}")
    if ctx.json_mode:
        ctx.formatter.json(updated.model_dump())
    else:
        ctx.formatter.success(f"Updated {updated.name}.")


def _status_command(name: str, status: str, verb: str):
    @subscriptions.command(name)
    @click.argument("ref")
    @pass_context
    def _cmd(ctx: SqueezeContext, ref: str) -> None:
        from squeeze.services.subscription_service import SubscriptionService

        svc = SubscriptionService(ctx.get_db())
        sub = svc.resolve(ref)
        updated = svc.set_status(sub.id, status)
        if ctx.json_mode:
            ctx.formatter.json(updated.model_dump() if updated else None)
        else:
            ctx.formatter.success(f"{verb} {sub.name}.")

    _cmd.__doc__ = f"{verb} a subscription (by ID or name)."
    return _cmd


subscriptions_pause = _status_command("pause", "paused", "Paused")
subscriptions_resume = _status_command("resume", "active", "Resumed")
subscriptions_cancel = _status_command("cancel", "cancelled", "Cancelled")


@subscriptions.command("delete")
@click.argument("ref")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@pass_context
def subscriptions_delete(ctx: SqueezeContext, ref: str, yes: bool) -> None:
    """Delete a subscription permanently. Its history is kept."""
    from squeeze.services.subscription_service import SubscriptionService

    svc = SubscriptionService(ctx.get_db())
    sub = svc.resolve(ref)

    if not ctx.json_mode and not yes:
        click.confirm(f"Delete subscription '{sub.name}'?", abort=True)

    svc.delete_subscription(sub.id)
    if ctx.json_mode:
        ctx.formatter.json({"deleted": sub.id})
    else:
        ctx.formatter.success(f"Deleted subscription: {sub.name}")


@subscriptions.command("advance")
@click.option("--today", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="Treat this date as today (YYYY-MM-DD).")
@pass_context
def subscriptions_advance(ctx: SqueezeContext, today: datetime | None) -> None:
    """Roll past renewal dates forward to their next upcoming renewal."""
    from squeeze.services.subscription_service import SubscriptionService

    day = today.date() if today else date.today()
    advanced = SubscriptionService(ctx.get_db()).advance_renewals(day)

    if ctx.json_mode:
        ctx.formatter.json([s.model_dump() for s in advanced])
        return
    if not advanced:
        ctx.formatter.info("All renewal dates are current.")
        return
    for s in advanced:
        ctx.formatter.print(f"  {s.name}: next renewal {ctx.formatter.date(s.next_renewal_date)}")
    ctx.formatter.success(f"Advanced {len(advanced)} subscription(s).")


@subscriptions.command("events")
@click.argument("ref", required=False)
@pass_context
def subscriptions_events(ctx: SqueezeContext, ref: str | None) -> None:
    """Show the change history, for one subscription or all."""
    from squeeze.services.subscription_service import SubscriptionService

    svc = SubscriptionService(ctx.get_db())
    sub_id = svc.resolve(ref).id if ref else None
    events = svc.get_events(sub_id)
    names = {s.id: s.name for s in svc.list_subscriptions()}

    rows = []
    json_data = []
    for e in events:
        details = ", ".join(f"{k}={v}" for k, v in e.payload_dict.items() if k != "subscription")
        rows.append([ctx.formatter.date(e.timestamp), names.get(e.subscription_id, "(deleted)"), e.event_type, details])
        json_data.append({**e.model_dump(exclude={"payload_json"}), "payload": e.payload_dict})

    if not rows and not ctx.json_mode:
        ctx.formatter.info("No events recorded.")
        return

    ctx.formatter.table(
        title="History",
        columns=[("When", "cyan"), ("Subscription", "bold"), ("Event", "yellow"), ("Details", "dim")],
        rows=rows,
        data_for_json=json_data,
    )


@subscriptions.command("upcoming")
@click.option("--days", default=7, help="Look-ahead window in days.")
@pass_context
def subscriptions_upcoming(ctx: SqueezeContext, days: int) -> None:
    """Show renewals due in the next few days."""
    from squeeze.services.alert_service import AlertService

    subs = AlertService(ctx.get_db()).get_upcoming(within_days=days)

    if ctx.json_mode:
        ctx.formatter.json([s.model_dump() for s in subs])
        return
    if not subs:
        ctx.formatter.info(f"No renewals in the next {days} days.")
        return

    ctx.formatter.table(
        title=f"Renewing in the next {days} days",
        columns=[("Name", "bold"), ("Amount", "green"), ("Date", "cyan"), ("In", "yellow")],
        rows=[
            [s.name, money(s.amount_cents, s.currency), ctx.formatter.date(s.next_renewal_date),
             f"{s.days_until_renewal()}d"]
            for s in subs
        ],
    )

"""Seed data command — optional pre-population of example data."""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta

import click
from dateutil.relativedelta import relativedelta

from squeeze.cli.main import SqueezeContext, pass_context

# (name, amount_cents, cadence, category, status, created_months_ago, usage pattern, extras)
_DEMO_SUBSCRIPTIONS = [
    ("Netflix", 2299, "monthly", "streaming", "active", 24, "always", {"cancel_url": "https://netflix.com/cancel"}),
    ("Spotify Premium", 1199, "monthly", "streaming", "active", 30, "always",
     {"cancel_url": "https://spotify.com/account", "shared_members": [{"name": "Sam", "share_percent": 50}]}),
    ("Disney+", 1399, "monthly", "streaming", "active", 18, "sometimes", {}),
    ("YouTube Premium", 1399, "monthly", "streaming", "active", 12, "always", {}),
    ("HBO Max", 1999, "monthly", "streaming", "cancelled", 20, "rarely", {}),
    ("Apple TV+", 899, "monthly", "streaming", "trial", 0, "sometimes", {}),
    ("Adobe Creative Cloud", 7999, "monthly", "software", "active", 24, "always",
     {"notes": "Work expense - get reimbursed"}),
    ("Microsoft 365", 12999, "yearly", "software", "active", 36, "always", {}),
    ("Notion", 1000, "monthly", "software", "active", 8, "always", {}),
    ("1Password", 3588, "yearly", "software", "active", 24, "always", {"cancel_url": "https://1password.com/account"}),
    ("Canva Pro", 1499, "monthly", "software", "paused", 15, "never",
     {"notes": "Paused - not doing design work currently"}),
    ("Grammarly", 14400, "yearly", "software", "active", 14, "sometimes", {}),
    ("iCloud Storage", 399, "monthly", "utilities", "active", 48, "always", {}),
    ("Google One", 3999, "yearly", "utilities", "active", 24, "always", {}),
    ("Dropbox Plus", 1599, "monthly", "utilities", "cancelled", 30, "never", {"notes": "Switched to Google One"}),
    ("NordVPN", 9900, "yearly", "utilities", "active", 10, "sometimes", {}),
    ("Gym Membership", 4999, "monthly", "fitness", "active", 18, "sometimes",
     {"cancel_url": "https://mygym.com/membership"}),
    ("Strava Premium", 7999, "yearly", "fitness", "active", 12, "rarely", {}),
    ("Headspace", 6999, "yearly", "fitness", "active", 6, "rarely", {"notes": "Mental wellness"}),
    ("Peloton App", 1699, "monthly", "fitness", "cancelled", 14, "never", {}),
    ("Amazon Prime", 13900, "yearly", "other", "active", 36, "always", {}),
    ("Costco Membership", 6500, "yearly", "other", "active", 24, "always", {}),
    ("Medium", 500, "monthly", "other", "active", 4, "rarely", {}),
    ("The Athletic", 999, "monthly", "other", "trial", 0, "sometimes", {}),
]

# Cumulative thresholds for (yes, no); anything above is skip
_USAGE_ODDS = {
    "always": (0.9, 0.9),
    "sometimes": (0.6, 0.8),
    "rarely": (0.2, 0.7),
    "never": (0.0, 0.9),
}


@click.command("seed")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.option("--random-seed", type=int, default=None, help="Make the generated data reproducible.")
@pass_context
def seed_cmd(ctx: SqueezeContext, yes: bool, random_seed: int | None) -> None:
    """Populate the database with a realistic demo data set."""
    db = ctx.get_db()

    if not ctx.json_mode and not yes:
        click.confirm("This will add demo subscriptions to your database. Continue?", abort=True)

    result = run_seed(db, random.Random(random_seed))

    if ctx.json_mode:
        ctx.formatter.json(result)
        return

    ctx.formatter.success("Seed complete:")
    for entity, count in result["counts"].items():
        if count > 0:
            ctx.formatter.print(f"  {entity}: {count} records")


def _next_renewal(rng: random.Random, cadence: str, today: date) -> date:
    if cadence == "weekly":
        return today + timedelta(days=rng.randint(1, 7))
    if cadence == "yearly":
        return today + timedelta(days=rng.randint(30, 119))
    return today + timedelta(days=rng.randint(1, 28))


def _answer(rng: random.Random, pattern: str) -> str:
    yes_below, no_below = _USAGE_ODDS[pattern]
    roll = rng.random()
    if roll < yes_below:
        return "yes"
    if roll < no_below:
        return "no"
    return "skip"


def run_seed(db, rng: random.Random | None = None) -> dict:
    """Insert the demo set. Names that already exist are left alone."""
    from squeeze.models.event import EventLog, PriceChangePayload, StatusChangePayload
    from squeeze.models.usage import UsageCheck
    from squeeze.services.payment_method_service import PaymentMethodService
    from squeeze.services.subscription_service import SubscriptionService

    rng = rng or random.Random()
    now = datetime.now().replace(microsecond=0)
    today = now.date()
    svc = SubscriptionService(db)
    existing = svc.repo.get_all_names()
    counts = {"payment_methods": 0, "subscriptions": 0, "events": 0, "usage_checks": 0}

    with db.transaction():
        pm_svc = PaymentMethodService(db)
        cards = [pm_svc.add("Visa", "credit_card", "4242", "#1a1f71"), pm_svc.add("PayPal", "paypal")]
        counts["payment_methods"] = len(cards)

        for name, cents, cadence, category, status, months_ago, pattern, extras in _DEMO_SUBSCRIPTIONS:
            if name.lower() in existing:
                continue
            created = now - relativedelta(months=months_ago)
            sub = svc.add_subscription(
                name=name,
                amount_cents=cents,
                next_renewal_date=_next_renewal(rng, cadence, today),
                cadence=cadence,
                category=category,
                status=status,
                reminder_enabled=rng.random() > 0.3,
                reminder_days_before=rng.choice([1, 3, 7]),
                payment_method_id=rng.choice(cards).id,
                created_at=created.isoformat(),
                **extras,
            )
            counts["subscriptions"] += 1
            counts["events"] += 1

            history = []
            if rng.random() < 0.3:
                old = round(cents * (0.8 + rng.random() * 0.15))
                history.append((
                    now - relativedelta(months=rng.randint(1, 6)),
                    PriceChangePayload(from_cents=old, to_cents=cents),
                ))
            if status in ("paused", "cancelled"):
                history.append((
                    now - relativedelta(months=rng.randint(1, 3)),
                    StatusChangePayload(from_status="active", to_status=status),
                ))
            for when, payload in history:
                event = EventLog.build(sub.id, payload).model_copy(update={"timestamp": when.isoformat()})
                svc.events.insert(event)
                counts["events"] += 1

            if status in ("active", "trial"):
                for i in range(1, min(months_ago, 12) + 1):
                    month_day = today - relativedelta(months=i)
                    svc.usage.replace(UsageCheck(
                        subscription_id=sub.id,
                        month=month_day.strftime("%Y-%m"),
                        used=_answer(rng, pattern),
                        timestamp=(now - relativedelta(months=i)).isoformat(),
                    ))
                    counts["usage_checks"] += 1

    return {"profile": "demo", "counts": counts}

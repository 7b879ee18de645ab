"""Renewal advancer — keeps stored renewal dates from going stale."""

from __future__ import annotations

from datetime import date

from squeeze.models.base import now_iso
from squeeze.models.subscription import DORMANT_STATUSES, Subscription
from squeeze.services.cadence import interval_days
from squeeze.services.recurrence import advance_date, parse_day


def advance(subscription: Subscription, today: date) -> Subscription | None:
    """Return a copy with the renewal date rolled forward, or None if nothing changes.

    Paused and cancelled subscriptions are never touched.
    """
    if subscription.status in DORMANT_STATUSES:
        return None
    anchor = parse_day(subscription.next_renewal_date)
    step = interval_days(subscription.cadence, subscription.custom_days)
    new_date = advance_date(anchor, step, parse_day(today))
    if new_date == anchor:
        return None
    return subscription.model_copy(
        update={"next_renewal_date": new_date.isoformat(), "updated_at": now_iso()}
    )

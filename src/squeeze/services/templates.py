"""Catalogue of well-known subscriptions used to pre-fill new entries."""

from __future__ import annotations

from pydantic import BaseModel

from squeeze.core.exceptions import NotFoundError
from squeeze.models.subscription import CATEGORIES


class SubscriptionTemplate(BaseModel):
    id: str
    name: str
    amount_cents: int
    currency: str
    cadence: str = "monthly"
    category: str = "other"
    cancel_url: str = ""


def _t(id: str, name: str, amount_cents: int, currency: str, cadence: str, category: str, cancel_url: str):
    return SubscriptionTemplate(
        id=id,
        name=name,
        amount_cents=amount_cents,
        currency=currency,
        cadence=cadence,
        category=category,
        cancel_url=cancel_url,
    )


TEMPLATES: list[SubscriptionTemplate] = [
    # Streaming
    _t("netflix", "Netflix", 1649, "CAD", "monthly", "streaming", "https://www.netflix.com/cancelplan"),
    _t("spotify", "Spotify", 1099, "CAD", "monthly", "streaming", "https://www.spotify.com/account/subscription/"),
    _t("disney-plus", "Disney+", 1199, "CAD", "monthly", "streaming", "https://www.disneyplus.com/account/subscription"),
    _t("youtube-premium", "YouTube Premium", 1399, "CAD", "monthly", "streaming", "https://www.youtube.com/paid_memberships"),
    _t("apple-music", "Apple Music", 1099, "CAD", "monthly", "streaming", "https://support.apple.com/en-us/HT202039"),
    _t("hbo-max", "HBO Max", 1599, "USD", "monthly", "streaming", "https://www.max.com/account/subscription"),
    _t("hulu", "Hulu", 799, "USD", "monthly", "streaming", "https://secure.hulu.com/account"),
    _t("amazon-prime-video", "Amazon Prime Video", 899, "CAD", "monthly", "streaming", "https://www.amazon.com/gp/video/settings"),
    _t("apple-tv-plus", "Apple TV+", 899, "CAD", "monthly", "streaming", "https://support.apple.com/en-us/HT202039"),
    _t("paramount-plus", "Paramount+", 599, "USD", "monthly", "streaming", "https://www.paramountplus.com/account/"),
    # Software
    _t("adobe-creative-cloud", "Adobe Creative Cloud", 5499, "USD", "monthly", "software", "https://account.adobe.com/plans"),
    _t("microsoft-365", "Microsoft 365", 9999, "CAD", "yearly", "software", "https://account.microsoft.com/services"),
    _t("notion", "Notion", 1000, "USD", "monthly", "software", "https://www.notion.so/my-account"),
    _t("1password", "1Password", 299, "USD", "monthly", "software", "https://my.1password.com/settings/billing"),
    _t("chatgpt-plus", "ChatGPT Plus", 2000, "USD", "monthly", "software", "https://chat.openai.com/settings/subscription"),
    _t("github-copilot", "GitHub Copilot", 1000, "USD", "monthly", "software", "https://github.com/settings/copilot"),
    _t("figma", "Figma", 1200, "USD", "monthly", "software", "https://www.figma.com/settings"),
    _t("slack", "Slack", 875, "USD", "monthly", "software",
       "https://slack.com/help/articles/203950728-Downgrade-your-workspace-to-the-free-version"),
    _t("zoom", "Zoom", 1599, "USD", "monthly", "software", "https://zoom.us/account"),
    _t("dropbox", "Dropbox", 1199, "USD", "monthly", "software", "https://www.dropbox.com/account/plan"),
    # Utilities
    _t("icloud", "iCloud+", 399, "CAD", "monthly", "utilities", "https://support.apple.com/en-us/HT207594"),
    _t("google-one", "Google One", 299, "CAD", "monthly", "utilities", "https://one.google.com/settings"),
    _t("nordvpn", "NordVPN", 1299, "USD", "monthly", "utilities", "https://my.nordaccount.com/dashboard/nordvpn/"),
    _t("expressvpn", "ExpressVPN", 1295, "USD", "monthly", "utilities", "https://www.expressvpn.com/subscriptions"),
    # Fitness
    _t("strava", "Strava", 1199, "USD", "monthly", "fitness", "https://www.strava.com/settings/subscription"),
    _t("headspace", "Headspace", 1299, "USD", "monthly", "fitness", "https://www.headspace.com/settings/subscription"),
    _t("peloton", "Peloton", 4400, "USD", "monthly", "fitness", "https://members.onepeloton.com/settings/subscriptions"),
    _t("calm", "Calm", 6999, "USD", "yearly", "fitness", "https://www.calm.com/account"),
]

_BY_ID = {t.id: t for t in TEMPLATES}


def get_template(template_id: str) -> SubscriptionTemplate:
    """Look up a template by id, or by name ignoring case."""
    key = template_id.strip().lower()
    if key in _BY_ID:
        return _BY_ID[key]
    for t in TEMPLATES:
        if t.name.lower() == key:
            return t
    raise NotFoundError(f"Unknown template: {template_id}")


def templates_by_category() -> dict[str, list[SubscriptionTemplate]]:
    grouped: dict[str, list[SubscriptionTemplate]] = {c: [] for c in CATEGORIES}
    for t in TEMPLATES:
        grouped[t.category].append(t)
    return {c: ts for c, ts in grouped.items() if ts}

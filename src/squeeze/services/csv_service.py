"""CSV export and import of subscriptions.

The export columns are the interchange format; import reads the same header
names (case-insensitively) so an exported file can be imported back.
"""

from __future__ import annotations

import csv
import io
from decimal import Decimal, InvalidOperation
from typing import Iterable

from pydantic import BaseModel, Field

from squeeze.core.exceptions import CsvImportError, ValidationError
from squeeze.core.log import get_logger
from squeeze.models.settings import AppSettings
from squeeze.models.subscription import CADENCES, CATEGORIES, STATUSES, Subscription
from squeeze.services.subscription_service import SubscriptionService

logger = get_logger(__name__)

CSV_COLUMNS = [
    "Name",
    "Amount",
    "Currency",
    "Cadence",
    "Custom Days",
    "Next Renewal",
    "Category",
    "Status",
    "Reminder Enabled",
    "Reminder Days",
    "Notes",
    "Cancel URL",
    "Created At",
    "Updated At",
]

_CENT = Decimal("0.01")


def cents_to_decimal(cents: int) -> str:
    return str((Decimal(cents) / 100).quantize(_CENT))


def export_csv(subs: Iterable[Subscription]) -> str:
    """Render subscriptions as CSV text, header first."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for s in subs:
        writer.writerow([
            s.name,
            cents_to_decimal(s.amount_cents),
            s.currency,
            s.cadence,
            "" if s.custom_days is None else str(s.custom_days),
            s.next_renewal_date,
            s.category,
            s.status,
            "true" if s.reminder_enabled else "false",
            str(s.reminder_days_before),
            s.notes,
            s.cancel_url,
            s.created_at,
            s.updated_at,
        ])
    return output.getvalue()


def _parse_cents(value: str) -> int:
    """Decimal amount to cents; anything unparseable is 0."""
    text = (value or "").strip().replace("$", "").replace(",", "")
    try:
        return int((Decimal(text) * 100).quantize(Decimal("1")))
    except (InvalidOperation, ValueError):
        return 0


def _parse_int(value: str) -> int:
    try:
        return int((value or "").strip())
    except ValueError:
        return 0


def _parse_bool(value: str | None, default: bool = True) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("true", "yes", "1")


def _choice(value: str | None, allowed: tuple[str, ...], default: str) -> str:
    value = (value or "").strip().lower()
    return value if value in allowed else default


class ImportResult(BaseModel):
    imported: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)


class CsvImporter:
    """Creates subscriptions from CSV rows through the normal add path.

    Bad rows are skipped and reported; the import itself never aborts.
    """

    def __init__(self, subscription_service: SubscriptionService, settings: AppSettings) -> None:
        self.service = subscription_service
        self.settings = settings

    def import_text(self, text: str) -> ImportResult:
        reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
        if not reader.fieldnames:
            raise CsvImportError("CSV file has no header row.")
        reader.fieldnames = [h.strip().lower() for h in reader.fieldnames]
        if "name" not in reader.fieldnames:
            raise CsvImportError("CSV file has no 'name' column.")

        result = ImportResult()
        seen = self.service.repo.get_all_names()

        for row_num, row in enumerate(reader, start=2):  # header is row 1
            name = (row.get("name") or "").strip()
            if not name:
                result.skipped += 1
                result.errors.append(f"Row {row_num}: missing name")
                continue
            if name.lower() in seen:
                result.skipped += 1
                logger.debug("Row %d: skipping duplicate %s", row_num, name)
                continue

            try:
                self.service.add_subscription(
                    name=name,
                    amount_cents=_parse_cents(row.get("amount") or ""),
                    currency=(row.get("currency") or "").strip() or self.settings.default_currency,
                    cadence=_choice(row.get("cadence"), CADENCES, "monthly"),
                    custom_days=_parse_int(row.get("custom days") or "") or None,
                    next_renewal_date=(row.get("next renewal") or "").strip(),
                    category=_choice(row.get("category"), CATEGORIES, "other"),
                    status=_choice(row.get("status"), STATUSES, "active"),
                    reminder_enabled=_parse_bool(row.get("reminder enabled")),
                    reminder_days_before=(
                        _parse_int(row["reminder days"]) if (row.get("reminder days") or "").strip() else None
                    ),
                    notes=row.get("notes") or "",
                    cancel_url=row.get("cancel url") or "",
                    created_at=(row.get("created at") or "").strip() or None,
                )
            except ValidationError as e:
                result.skipped += 1
                result.errors.append(f"Row {row_num} ({name}): {e}")
                continue

            seen.add(name.lower())
            result.imported += 1

        logger.info("CSV import: %d imported, %d skipped", result.imported, result.skipped)
        return result

"""Receipt row validation for bulk import.

Rows arrive as loosely typed CSV-derived records. Every problem in a row is
reported (prefixed with its 1-based row number); a row with any error is
left out of matching but never aborts the batch.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

from src.tl_ledger.domain.models import ReceiptIdentifiers

TOTAL_TOLERANCE = 0.02

# dd/mm/yy HH:MM:SS, dd/mm/yyyy HH:MM:SS or a bare dd/mm/yy
_RECEIPT_DATETIME = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})(?:\s+(\d{1,2}):(\d{2}):(\d{2}))?$"
)


def parse_receipt_datetime(value: str) -> datetime | None:
    """Parse a receipt timestamp as UTC. Two-digit years are 20xx."""
    match = _RECEIPT_DATETIME.match(value.strip())
    if match is None:
        return None
    day, month, year, hour, minute, second = match.groups()
    full_year = int(year) + 2000 if len(year) == 2 else int(year)
    try:
        return datetime(
            full_year,
            int(month),
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
            tzinfo=UTC,
        )
    except ValueError:
        return None


@dataclass(frozen=True)
class RawReceiptRow:
    """One imported row before validation; every field may be missing."""
    transaction_date_time: str | None = None
    token_number: str | None = None
    account_number: str | None = None
    kwh_purchased: float | None = None
    energy_cost: float | None = None
    debt: float | None = None
    rea: float | None = None
    vat: float | None = None
    total_amount: float | None = None
    tendered: float | None = None


@dataclass(frozen=True)
class ReceiptRow:
    """A validated row, ready for matching. ``row`` is its 1-based position."""
    row: int
    transaction_date_time: datetime
    kwh_purchased: float
    energy_cost: float
    debt: float
    rea: float
    vat: float
    total_amount: float
    tendered: float
    identifiers: ReceiptIdentifiers = field(default_factory=ReceiptIdentifiers)


def validate_receipt_row(
    raw: RawReceiptRow, row_number: int
) -> tuple[ReceiptRow | None, list[str]]:
    errors: list[str] = []
    prefix = f"Row {row_number}:"

    moment: datetime | None = None
    if not raw.transaction_date_time:
        errors.append(f"{prefix} Transaction date/time is required")
    else:
        moment = parse_receipt_datetime(raw.transaction_date_time)
        if moment is None:
            errors.append(f"{prefix} Invalid date format (expected dd/mm/yy hh:mm:ss)")

    if raw.kwh_purchased is None:
        errors.append(f"{prefix} kWh Purchased is required")
    elif not math.isfinite(raw.kwh_purchased):
        errors.append(f"{prefix} kWh Purchased must be a finite number")
    elif raw.kwh_purchased <= 0:
        errors.append(f"{prefix} kWh Purchased must be positive")

    if raw.energy_cost is None:
        errors.append(f"{prefix} Energy Cost is required")
    elif not math.isfinite(raw.energy_cost):
        errors.append(f"{prefix} Energy Cost must be a finite number")
    elif raw.energy_cost < 0:
        errors.append(f"{prefix} Energy Cost cannot be negative")

    if raw.total_amount is None:
        errors.append(f"{prefix} Total Amount is required")
    elif not math.isfinite(raw.total_amount):
        errors.append(f"{prefix} Total Amount must be a finite number")
    elif raw.total_amount <= 0:
        errors.append(f"{prefix} Total Amount must be positive")

    if raw.tendered is None:
        errors.append(f"{prefix} Amount Tendered is required")
    elif not math.isfinite(raw.tendered):
        errors.append(f"{prefix} Amount Tendered must be a finite number")
    elif raw.tendered <= 0:
        errors.append(f"{prefix} Amount Tendered must be positive")

    debt = raw.debt or 0.0
    rea = raw.rea or 0.0
    vat = raw.vat or 0.0
    for label, value in (("Debt", debt), ("REA", rea), ("VAT", vat)):
        if not math.isfinite(value):
            errors.append(f"{prefix} {label} must be a finite number")

    components = (raw.energy_cost, debt, rea, vat, raw.total_amount)
    if all(v is not None and math.isfinite(v) for v in components):
        calculated = raw.energy_cost + debt + rea + vat  # type: ignore[operator]
        if abs(calculated - raw.total_amount) > TOTAL_TOLERANCE:  # type: ignore[operator]
            errors.append(
                f"{prefix} Total mismatch (calculated: {calculated:.2f}, "
                f"entered: {raw.total_amount:.2f})"
            )

    if errors:
        return None, errors

    return (
        ReceiptRow(
            row=row_number,
            transaction_date_time=moment,  # type: ignore[arg-type]
            kwh_purchased=raw.kwh_purchased,  # type: ignore[arg-type]
            energy_cost=raw.energy_cost,  # type: ignore[arg-type]
            debt=debt,
            rea=rea,
            vat=vat,
            total_amount=raw.total_amount,  # type: ignore[arg-type]
            tendered=raw.tendered,  # type: ignore[arg-type]
            identifiers=ReceiptIdentifiers.from_raw(raw.token_number, raw.account_number),
        ),
        [],
    )

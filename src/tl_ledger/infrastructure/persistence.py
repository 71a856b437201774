"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

Read queries are plain SELECTs ordered the way the engine consumes them
(purchases by purchase_date, never by created_at, so that restored rows with
rewritten creation timestamps are still processed chronologically).

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

import logging
from datetime import date, datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_common.datetime_utils import next_day_start
from src.tl_common.errors import (
    InternalError,
    PurchaseNotFoundError,
    ReceiptAlreadyExistsError,
)
from src.tl_ledger.domain.models import (
    Contribution,
    ContributionLine,
    MeterReading,
    Purchase,
    ReceiptData,
    ReceiptIdentifiers,
    ReceiptWithPurchase,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL: purchases
# ---------------------------------------------------------------------------

_PURCHASE_COLUMNS = """
    p.id, p.total_tokens, p.total_payment, p.meter_reading,
    p.purchase_date, p.is_emergency,
    EXISTS (SELECT 1 FROM receipt_data r WHERE r.purchase_id = p.id) AS has_receipt
"""

_GET_PURCHASE_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS}
    FROM token_purchases p
    WHERE p.id = :purchase_id
""")

_EARLIEST_PURCHASE_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS}
    FROM token_purchases p
    ORDER BY p.purchase_date ASC, p.id ASC
    LIMIT 1
""")

_LIST_PURCHASES_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS}
    FROM token_purchases p
    WHERE (CAST(:start AS TIMESTAMPTZ) IS NULL OR p.purchase_date >= :start)
      AND (CAST(:end AS TIMESTAMPTZ) IS NULL OR p.purchase_date <= :end)
    ORDER BY p.purchase_date ASC, p.id ASC
""")

_SUM_TOKENS_SQL = text("""
    SELECT COALESCE(SUM(total_tokens), 0)
    FROM token_purchases
    WHERE purchase_date < :before
""")

# ---------------------------------------------------------------------------
# SQL: contributions (LEFT JOIN so a dangling purchase_id surfaces as NULLs)
# ---------------------------------------------------------------------------

_LIST_CONTRIBUTIONS_SQL = text("""
    SELECT c.id, c.purchase_id, c.user_id, c.contribution_amount,
           c.meter_reading, c.tokens_consumed,
           p.id AS p_id, p.total_tokens AS p_total_tokens,
           p.total_payment AS p_total_payment, p.meter_reading AS p_meter_reading,
           p.purchase_date AS p_purchase_date, p.is_emergency AS p_is_emergency
    FROM user_contributions c
    LEFT JOIN token_purchases p ON p.id = c.purchase_id
    WHERE (CAST(:user_id AS VARCHAR) IS NULL OR c.user_id = :user_id)
      AND (CAST(:start AS TIMESTAMPTZ) IS NULL OR p.purchase_date >= :start)
      AND (CAST(:end AS TIMESTAMPTZ) IS NULL OR p.purchase_date <= :end)
    ORDER BY p.purchase_date ASC NULLS LAST, p.id ASC, c.id ASC
""")

# ---------------------------------------------------------------------------
# SQL: meter readings (global series, not filtered by recorder)
# ---------------------------------------------------------------------------

_READING_COLUMNS = "id, user_id, reading, reading_date, notes"

_MAX_READING_ON_SQL = text(f"""
    SELECT {_READING_COLUMNS}
    FROM meter_readings
    WHERE reading_date = :day
    ORDER BY reading DESC
    LIMIT 1
""")

_LATEST_BEFORE_SQL = text(f"""
    SELECT {_READING_COLUMNS}
    FROM meter_readings
    WHERE reading_date < :day
    ORDER BY reading_date DESC, reading DESC
    LIMIT 1
""")

_EARLIEST_AFTER_SQL = text(f"""
    SELECT {_READING_COLUMNS}
    FROM meter_readings
    WHERE reading_date > :day
    ORDER BY reading_date ASC, reading ASC
    LIMIT 1
""")

_USER_HISTORY_SQL = text(f"""
    SELECT {_READING_COLUMNS}
    FROM meter_readings
    WHERE user_id = :user_id AND reading_date < :day
    ORDER BY reading_date DESC, reading DESC
    LIMIT :limit
""")

_INSERT_READING_SQL = text(f"""
    INSERT INTO meter_readings (id, user_id, reading, reading_date, notes)
    VALUES (:id, :user_id, :reading, :reading_date, :notes)
    RETURNING {_READING_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: receipts
# ---------------------------------------------------------------------------

_RECEIPT_COLUMNS = """
    r.id, r.purchase_id, r.token_number, r.account_number, r.kwh_purchased,
    r.energy_cost_zwg, r.debt_zwg, r.rea_zwg, r.vat_zwg, r.total_amount_zwg,
    r.tendered_zwg, r.transaction_date_time
"""

_LIST_RECEIPTS_SQL = text(f"""
    SELECT {_RECEIPT_COLUMNS},
           p.id AS p_id, p.total_tokens AS p_total_tokens,
           p.total_payment AS p_total_payment, p.meter_reading AS p_meter_reading,
           p.purchase_date AS p_purchase_date, p.is_emergency AS p_is_emergency
    FROM receipt_data r
    JOIN token_purchases p ON p.id = r.purchase_id
    WHERE (CAST(:start AS TIMESTAMPTZ) IS NULL OR p.purchase_date >= :start)
      AND (CAST(:end AS TIMESTAMPTZ) IS NULL OR p.purchase_date <= :end)
    ORDER BY p.purchase_date ASC, p.id ASC
""")

_GET_RECEIPT_FOR_PURCHASE_SQL = text(f"""
    SELECT {_RECEIPT_COLUMNS}
    FROM receipt_data r
    WHERE r.purchase_id = :purchase_id
""")

_INSERT_RECEIPT_SQL = text("""
    INSERT INTO receipt_data
        (id, purchase_id, token_number, account_number, kwh_purchased,
         energy_cost_zwg, debt_zwg, rea_zwg, vat_zwg, total_amount_zwg,
         tendered_zwg, transaction_date_time)
    VALUES
        (:id, :purchase_id, :token_number, :account_number, :kwh_purchased,
         :energy_cost_zwg, :debt_zwg, :rea_zwg, :vat_zwg, :total_amount_zwg,
         :tendered_zwg, :transaction_date_time)
    ON CONFLICT (purchase_id) DO NOTHING
    RETURNING id
""")


def _row_to_purchase(row: object) -> Purchase:
    return Purchase(
        id=row.id,  # type: ignore[attr-defined]
        total_tokens=float(row.total_tokens),  # type: ignore[attr-defined]
        total_payment=float(row.total_payment),  # type: ignore[attr-defined]
        meter_reading=float(row.meter_reading),  # type: ignore[attr-defined]
        purchase_date=row.purchase_date,  # type: ignore[attr-defined]
        is_emergency=bool(row.is_emergency),  # type: ignore[attr-defined]
        has_receipt=bool(row.has_receipt),  # type: ignore[attr-defined]
    )


def _joined_purchase(row: object, has_receipt: bool = False) -> Purchase | None:
    """Build the purchase half of a joined row (``p_``-prefixed columns)."""
    if row.p_id is None:  # type: ignore[attr-defined]
        return None
    return Purchase(
        id=row.p_id,  # type: ignore[attr-defined]
        total_tokens=float(row.p_total_tokens),  # type: ignore[attr-defined]
        total_payment=float(row.p_total_payment),  # type: ignore[attr-defined]
        meter_reading=float(row.p_meter_reading),  # type: ignore[attr-defined]
        purchase_date=row.p_purchase_date,  # type: ignore[attr-defined]
        is_emergency=bool(row.p_is_emergency),  # type: ignore[attr-defined]
        has_receipt=has_receipt,
    )


def _row_to_contribution_line(row: object) -> ContributionLine:
    contribution = Contribution(
        id=row.id,  # type: ignore[attr-defined]
        purchase_id=row.purchase_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        contribution_amount=float(row.contribution_amount),  # type: ignore[attr-defined]
        meter_reading=float(row.meter_reading),  # type: ignore[attr-defined]
        tokens_consumed=float(row.tokens_consumed),  # type: ignore[attr-defined]
    )
    return ContributionLine(contribution=contribution, purchase=_joined_purchase(row))


def _row_to_reading(row: object) -> MeterReading:
    return MeterReading(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        reading=float(row.reading),  # type: ignore[attr-defined]
        reading_date=row.reading_date,  # type: ignore[attr-defined]
        notes=row.notes,  # type: ignore[attr-defined]
    )


def _row_to_receipt(row: object) -> ReceiptData:
    return ReceiptData(
        id=row.id,  # type: ignore[attr-defined]
        purchase_id=row.purchase_id,  # type: ignore[attr-defined]
        kwh_purchased=float(row.kwh_purchased),  # type: ignore[attr-defined]
        energy_cost=float(row.energy_cost_zwg),  # type: ignore[attr-defined]
        debt=float(row.debt_zwg),  # type: ignore[attr-defined]
        rea=float(row.rea_zwg),  # type: ignore[attr-defined]
        vat=float(row.vat_zwg),  # type: ignore[attr-defined]
        total_amount=float(row.total_amount_zwg),  # type: ignore[attr-defined]
        tendered=float(row.tendered_zwg),  # type: ignore[attr-defined]
        transaction_date_time=row.transaction_date_time,  # type: ignore[attr-defined]
        identifiers=ReceiptIdentifiers(
            token_number=row.token_number,  # type: ignore[attr-defined]
            account_number=row.account_number,  # type: ignore[attr-defined]
        ),
    )


class LedgerRepository:
    """Concrete repository over the relational ledger store."""

    async def get_purchase(self, db: AsyncSession, purchase_id: str) -> Purchase | None:
        result = await db.execute(_GET_PURCHASE_SQL, {"purchase_id": purchase_id})
        row = result.fetchone()
        return _row_to_purchase(row) if row else None

    async def find_earliest_purchase(self, db: AsyncSession) -> Purchase | None:
        result = await db.execute(_EARLIEST_PURCHASE_SQL)
        row = result.fetchone()
        return _row_to_purchase(row) if row else None

    async def list_purchases(
        self,
        db: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Purchase]:
        result = await db.execute(_LIST_PURCHASES_SQL, {"start": start, "end": end})
        return [_row_to_purchase(row) for row in result.fetchall()]

    async def sum_tokens_through(self, db: AsyncSession, day: date) -> float:
        """Total tokens of purchases made on or before ``day`` (calendar day, UTC)."""
        result = await db.execute(_SUM_TOKENS_SQL, {"before": next_day_start(day)})
        return float(result.scalar_one())

    async def list_contribution_lines(
        self,
        db: AsyncSession,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ContributionLine]:
        result = await db.execute(
            _LIST_CONTRIBUTIONS_SQL, {"user_id": user_id, "start": start, "end": end}
        )
        return [_row_to_contribution_line(row) for row in result.fetchall()]

    async def get_max_reading_on(self, db: AsyncSession, day: date) -> MeterReading | None:
        row = (await db.execute(_MAX_READING_ON_SQL, {"day": day})).fetchone()
        return _row_to_reading(row) if row else None

    async def get_latest_reading_before(
        self, db: AsyncSession, day: date
    ) -> MeterReading | None:
        row = (await db.execute(_LATEST_BEFORE_SQL, {"day": day})).fetchone()
        return _row_to_reading(row) if row else None

    async def get_earliest_reading_after(
        self, db: AsyncSession, day: date
    ) -> MeterReading | None:
        row = (await db.execute(_EARLIEST_AFTER_SQL, {"day": day})).fetchone()
        return _row_to_reading(row) if row else None

    async def list_user_readings_before(
        self, db: AsyncSession, user_id: str, day: date, limit: int
    ) -> list[MeterReading]:
        """Most recent first, at most ``limit`` rows."""
        result = await db.execute(
            _USER_HISTORY_SQL, {"user_id": user_id, "day": day, "limit": limit}
        )
        return [_row_to_reading(row) for row in result.fetchall()]

    async def insert_meter_reading(
        self, db: AsyncSession, reading: MeterReading
    ) -> MeterReading:
        result = await db.execute(
            _INSERT_READING_SQL,
            {
                "id": reading.id,
                "user_id": reading.user_id,
                "reading": reading.reading,
                "reading_date": reading.reading_date,
                "notes": reading.notes,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Meter reading insert returned no rows")
        return _row_to_reading(row)

    async def list_receipts_with_purchases(
        self,
        db: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ReceiptWithPurchase]:
        result = await db.execute(_LIST_RECEIPTS_SQL, {"start": start, "end": end})
        items: list[ReceiptWithPurchase] = []
        for row in result.fetchall():
            purchase = _joined_purchase(row, has_receipt=True)
            if purchase is None:
                raise InternalError(f"Receipt {row.id} joined to no purchase")
            items.append(ReceiptWithPurchase(receipt=_row_to_receipt(row), purchase=purchase))
        return items

    async def get_receipt_for_purchase(
        self, db: AsyncSession, purchase_id: str
    ) -> ReceiptData | None:
        row = (
            await db.execute(_GET_RECEIPT_FOR_PURCHASE_SQL, {"purchase_id": purchase_id})
        ).fetchone()
        return _row_to_receipt(row) if row else None

    async def create_receipt(self, db: AsyncSession, receipt: ReceiptData) -> ReceiptData:
        """Insert one receipt within the caller's transaction.

        Raises PurchaseNotFoundError when the purchase does not exist and
        ReceiptAlreadyExistsError when it already owns a receipt.
        """
        purchase = await self.get_purchase(db, receipt.purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(receipt.purchase_id)
        result = await db.execute(
            _INSERT_RECEIPT_SQL,
            {
                "id": receipt.id,
                "purchase_id": receipt.purchase_id,
                "token_number": receipt.identifiers.token_number,
                "account_number": receipt.identifiers.account_number,
                "kwh_purchased": receipt.kwh_purchased,
                "energy_cost_zwg": receipt.energy_cost,
                "debt_zwg": receipt.debt,
                "rea_zwg": receipt.rea,
                "vat_zwg": receipt.vat,
                "total_amount_zwg": receipt.total_amount,
                "tendered_zwg": receipt.tendered,
                "transaction_date_time": receipt.transaction_date_time,
            },
        )
        if result.fetchone() is None:
            raise ReceiptAlreadyExistsError(receipt.purchase_id)
        logger.debug("Receipt %s attached to purchase %s", receipt.id, receipt.purchase_id)
        return receipt



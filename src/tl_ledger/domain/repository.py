"""Repository Protocol — the engine's read interface to the ledger store,
plus the single write used by receipt auto-import and meter recording.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import date, datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_ledger.domain.models import (
    ContributionLine,
    MeterReading,
    Purchase,
    ReceiptData,
    ReceiptWithPurchase,
)


class LedgerRepositoryProtocol(Protocol):
    # --- purchases ---

    async def get_purchase(self, db: AsyncSession, purchase_id: str) -> Purchase | None: ...

    async def find_earliest_purchase(self, db: AsyncSession) -> Purchase | None: ...

    async def list_purchases(
        self,
        db: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Purchase]: ...

    async def sum_tokens_through(self, db: AsyncSession, day: date) -> float: ...

    # --- contributions ---

    async def list_contribution_lines(
        self,
        db: AsyncSession,
        user_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ContributionLine]: ...

    # --- meter readings (one global series) ---

    async def get_max_reading_on(self, db: AsyncSession, day: date) -> MeterReading | None: ...

    async def get_latest_reading_before(
        self, db: AsyncSession, day: date
    ) -> MeterReading | None: ...

    async def get_earliest_reading_after(
        self, db: AsyncSession, day: date
    ) -> MeterReading | None: ...

    async def list_user_readings_before(
        self, db: AsyncSession, user_id: str, day: date, limit: int
    ) -> list[MeterReading]: ...

    async def insert_meter_reading(
        self, db: AsyncSession, reading: MeterReading
    ) -> MeterReading: ...

    # --- receipts ---

    async def list_receipts_with_purchases(
        self,
        db: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ReceiptWithPurchase]: ...

    async def get_receipt_for_purchase(
        self, db: AsyncSession, purchase_id: str
    ) -> ReceiptData | None: ...

    async def create_receipt(self, db: AsyncSession, receipt: ReceiptData) -> ReceiptData: ...

"""ReceiptImportService — bulk import of historical receipts.

Preview mode only scores. Auto-import creates a receipt for HIGH and MEDIUM
matches inside one transaction; a row that cannot be attached (purchase
gone, receipt already present) is reported and the batch carries on.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tl_common.errors import (
    AppError,
    EmptyReceiptBatchError,
    ReceiptBatchTooLargeError,
)
from src.tl_common.id_generator import generate_receipt_id
from src.tl_ledger.domain.models import ReceiptData
from src.tl_ledger.domain.repository import LedgerRepositoryProtocol
from src.tl_ledger.infrastructure.persistence import LedgerRepository
from src.tl_receipt.application.schemas import (
    BulkImportResponse,
    MatchItem,
    RowValidationErrors,
    parse_row,
)
from src.tl_receipt.domain.matcher import MatchResult, match_receipts
from src.tl_receipt.domain.validation import ReceiptRow, validate_receipt_row

logger = logging.getLogger(__name__)


def _receipt_for(match: MatchResult) -> ReceiptData:
    row = match.row
    return ReceiptData(
        id=generate_receipt_id(),
        purchase_id=match.purchase_id or "",
        kwh_purchased=row.kwh_purchased,
        energy_cost=row.energy_cost,
        debt=row.debt,
        rea=row.rea,
        vat=row.vat,
        total_amount=row.total_amount,
        tendered=row.tendered,
        transaction_date_time=row.transaction_date_time,
        identifiers=row.identifiers,
    )


class ReceiptImportService:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol | None = None,
        max_batch: int | None = None,
    ) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()
        self._max_batch = max_batch or settings.RECEIPT_IMPORT_MAX_BATCH

    def _validate_rows(
        self, rows: list[Any]
    ) -> tuple[list[ReceiptRow], list[RowValidationErrors]]:
        valid: list[ReceiptRow] = []
        invalid: list[RowValidationErrors] = []
        for index, data in enumerate(rows, start=1):
            raw, errors = parse_row(data, index)
            if raw is not None:
                row, errors = validate_receipt_row(raw, index)
                if row is not None:
                    valid.append(row)
                    continue
            invalid.append(RowValidationErrors(row=index, errors=errors))
        return valid, invalid

    async def match_receipts(
        self, db: AsyncSession, rows: list[Any], auto_import: bool = False
    ) -> BulkImportResponse:
        if not rows:
            raise EmptyReceiptBatchError()
        if len(rows) > self._max_batch:
            raise ReceiptBatchTooLargeError(len(rows), self._max_batch)

        valid, invalid = self._validate_rows(rows)
        purchases = await self._repo.list_purchases(db)
        matches = match_receipts(valid, purchases)

        if not auto_import:
            return BulkImportResponse(
                preview=True,
                total_rows=len(rows),
                valid_rows=len(valid),
                matches=[MatchItem.from_match(m) for m in matches],
                validation_errors=invalid,
            )

        outcomes: dict[int, MatchItem] = {}
        imported = 0
        try:
            # Highest score first: a purchase goes to the strongest row naming it.
            for m in sorted(matches, key=lambda match: (-match.score, match.row.row)):
                if not m.confidence.importable or m.purchase is None:
                    reason = (
                        "No suitable purchase found"
                        if m.purchase is None
                        else "Confidence too low - manual verification required"
                    )
                    outcomes[m.row.row] = MatchItem.from_match(m, imported=False, error=reason)
                    continue
                try:
                    await self._repo.create_receipt(db, _receipt_for(m))
                except AppError as exc:
                    logger.info("Receipt row %d not imported: %s", m.row.row, exc.message)
                    outcomes[m.row.row] = MatchItem.from_match(
                        m, imported=False, error=exc.message
                    )
                    continue
                imported += 1
                outcomes[m.row.row] = MatchItem.from_match(m, imported=True)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        items = [outcomes[m.row.row] for m in matches]

        logger.info(
            "Receipt import: %d rows, %d imported, %d invalid",
            len(rows),
            imported,
            len(invalid),
        )
        return BulkImportResponse(
            preview=False,
            total_rows=len(rows),
            valid_rows=len(valid),
            successful_imports=imported,
            failed_imports=len(items) - imported,
            matches=items,
            validation_errors=invalid,
        )

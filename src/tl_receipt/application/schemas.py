"""Pydantic schemas for tl_receipt API.

Incoming rows keep the CSV export's camelCase names (``kwhPurchased``,
``totalAmountZWG`` ...); snake_case names are accepted as well.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.tl_receipt.domain.matcher import MatchResult
from src.tl_receipt.domain.validation import RawReceiptRow

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ReceiptRowInput(BaseModel):
    """Type coercion only; business rules live in validate_receipt_row."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    transaction_date_time: str | None = Field(None, alias="transactionDateTime")
    token_number: str | None = Field(None, alias="tokenNumber")
    account_number: str | None = Field(None, alias="accountNumber")
    kwh_purchased: float | None = Field(None, alias="kwhPurchased")
    energy_cost: float | None = Field(None, alias="energyCostZWG")
    debt: float | None = Field(None, alias="debtZWG")
    rea: float | None = Field(None, alias="reaZWG")
    vat: float | None = Field(None, alias="vatZWG")
    total_amount: float | None = Field(None, alias="totalAmountZWG")
    tendered: float | None = Field(None, alias="tenderedZWG")

    def to_raw(self) -> RawReceiptRow:
        return RawReceiptRow(**self.model_dump())


def parse_row(data: Any, row_number: int) -> tuple[RawReceiptRow | None, list[str]]:
    """Coerce one untyped row; type errors are reported like rule errors."""
    if not isinstance(data, dict):
        return None, [f"Row {row_number}: Expected an object"]
    try:
        return ReceiptRowInput.model_validate(data).to_raw(), []
    except ValidationError as exc:
        return None, [
            f"Row {row_number}: {'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]


class BulkImportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receipts: list[Any]
    auto_import: bool = Field(False, alias="autoImport")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RowValidationErrors(BaseModel):
    row: int
    errors: list[str]


class MatchItem(BaseModel):
    row: int
    purchase_id: str | None
    purchase_date: str | None = None
    purchase_tokens: float | None = None
    confidence: str
    confidence_score: int
    reasons: list[str]
    warnings: list[str]
    imported: bool | None = None  # None in preview mode
    error: str | None = None

    @classmethod
    def from_match(
        cls, m: MatchResult, imported: bool | None = None, error: str | None = None
    ) -> "MatchItem":
        return cls(
            row=m.row.row,
            purchase_id=m.purchase_id,
            purchase_date=m.purchase.purchase_date.isoformat() if m.purchase else None,
            purchase_tokens=m.purchase.total_tokens if m.purchase else None,
            confidence=m.confidence.value,
            confidence_score=m.score,
            reasons=m.reasons,
            warnings=m.warnings,
            imported=imported,
            error=error,
        )


class BulkImportResponse(BaseModel):
    preview: bool
    total_rows: int
    valid_rows: int
    successful_imports: int = 0
    failed_imports: int = 0
    matches: list[MatchItem]
    validation_errors: list[RowValidationErrors]

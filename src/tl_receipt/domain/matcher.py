"""Batch receipt-to-purchase matching.

Rows are matched oldest first. For each row the best-scoring candidate wins;
ties go to the smaller calendar-day distance, then the earlier purchase
date, then the smaller purchase id, so the outcome never depends on the
order candidates were loaded in. A purchase claimed by a HIGH match leaves
the pool for later rows; weaker matches do not reserve their purchase.
"""

from dataclasses import dataclass, field

from src.tl_common.datetime_utils import as_utc
from src.tl_common.enums import MatchConfidence
from src.tl_ledger.domain.models import Purchase
from src.tl_receipt.domain.scoring import PairScore, classify, score_pair
from src.tl_receipt.domain.validation import ReceiptRow


@dataclass
class MatchResult:
    row: ReceiptRow
    purchase: Purchase | None = None
    confidence: MatchConfidence = MatchConfidence.NONE
    score: int = 0
    reasons: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def purchase_id(self) -> str | None:
        return self.purchase.id if self.purchase else None


def _rank(pair: PairScore) -> tuple:
    return (
        -pair.total,
        pair.days_apart,
        as_utc(pair.purchase.purchase_date),
        pair.purchase.id,
    )


def _identifier_warnings(row: ReceiptRow) -> list[str]:
    ids = row.identifiers
    if ids.has_account and not ids.account_number_valid:
        return [f"Account number {ids.account_number} is not 11 digits"]
    return []


def match_receipt(row: ReceiptRow, candidates: list[Purchase]) -> MatchResult:
    result = MatchResult(row=row, warnings=_identifier_warnings(row))
    if not candidates:
        result.warnings.append("No purchases available for matching (all have receipts)")
        return result

    best = min(
        (score_pair(row.transaction_date_time, row.kwh_purchased, p) for p in candidates),
        key=_rank,
    )
    result.score = best.total
    result.confidence = classify(best.total)

    if result.confidence is MatchConfidence.NONE:
        result.warnings.append("No suitable purchase found - may need to create new purchase")
        return result

    result.purchase = best.purchase
    result.reasons = list(best.reasons)
    if result.confidence is MatchConfidence.MEDIUM:
        result.warnings.append("Match confidence is medium - please verify")
    elif result.confidence is MatchConfidence.LOW:
        result.warnings.append("Match confidence is low - manual verification recommended")
    return result


def match_receipts(
    rows: list[ReceiptRow],
    purchases: list[Purchase],
    exclude_receipted: bool = True,
) -> list[MatchResult]:
    """Match every row; results come back in row order."""
    pool = [p for p in purchases if not (exclude_receipted and p.has_receipt)]
    claimed: set[str] = set()
    results: list[MatchResult] = []

    for row in sorted(rows, key=lambda r: (r.transaction_date_time, r.row)):
        available = [p for p in pool if p.id not in claimed]
        match = match_receipt(row, available)
        if match.confidence is MatchConfidence.HIGH and match.purchase is not None:
            claimed.add(match.purchase.id)
        results.append(match)

    return sorted(results, key=lambda m: m.row.row)

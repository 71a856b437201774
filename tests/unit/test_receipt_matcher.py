"""Unit tests for batch receipt matching."""

from datetime import UTC, datetime

from src.tl_common.enums import MatchConfidence
from src.tl_ledger.domain.models import Purchase, ReceiptIdentifiers
from src.tl_receipt.domain.matcher import match_receipt, match_receipts
from src.tl_receipt.domain.validation import ReceiptRow


def _make_purchase(pid: str, when: datetime, tokens: float = 100.0, **kwargs) -> Purchase:
    return Purchase(
        id=pid,
        total_tokens=tokens,
        total_payment=50.0,
        meter_reading=1000.0,
        purchase_date=when,
        has_receipt=kwargs.get("has_receipt", False),
    )


def _make_row(row: int, when: datetime, kwh: float = 100.0, **kwargs) -> ReceiptRow:
    return ReceiptRow(
        row=row,
        transaction_date_time=when,
        kwh_purchased=kwh,
        energy_cost=1200.0,
        debt=100.0,
        rea=50.0,
        vat=150.0,
        total_amount=1500.0,
        tendered=1500.0,
        identifiers=kwargs.get("identifiers", ReceiptIdentifiers()),
    )


JAN_10 = datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


class TestMatchReceipt:
    def test_picks_best_candidate(self) -> None:
        near = _make_purchase("near", JAN_10)
        far = _make_purchase("far", datetime(2024, 1, 20, tzinfo=UTC))

        result = match_receipt(_make_row(1, JAN_10), [far, near])

        assert result.purchase_id == "near"
        assert result.confidence is MatchConfidence.HIGH
        assert result.score == 100
        assert result.warnings == []

    def test_tie_goes_to_earlier_purchase(self) -> None:
        before = _make_purchase("zzz-before", datetime(2024, 1, 9, tzinfo=UTC))
        after = _make_purchase("aaa-after", datetime(2024, 1, 11, tzinfo=UTC))

        result = match_receipt(_make_row(1, JAN_10), [after, before])

        assert result.score == 90
        assert result.purchase_id == "zzz-before"

    def test_tie_on_same_date_goes_to_smaller_id(self) -> None:
        a = _make_purchase("p-a", JAN_10)
        b = _make_purchase("p-b", JAN_10)

        assert match_receipt(_make_row(1, JAN_10), [b, a]).purchase_id == "p-a"
        assert match_receipt(_make_row(1, JAN_10), [a, b]).purchase_id == "p-a"

    def test_medium_match_warns(self) -> None:
        purchase = _make_purchase("p1", datetime(2024, 1, 11, tzinfo=UTC))

        # 1 day (40) + 15% kWh (20)
        result = match_receipt(_make_row(1, JAN_10, kwh=115.0), [purchase])

        assert result.confidence is MatchConfidence.MEDIUM
        assert result.purchase_id == "p1"
        assert result.warnings == ["Match confidence is medium - please verify"]

    def test_low_match_warns(self) -> None:
        purchase = _make_purchase("p1", datetime(2024, 1, 13, tzinfo=UTC))

        # 3 days (30) + 15% kWh (20)
        result = match_receipt(_make_row(1, JAN_10, kwh=115.0), [purchase])

        assert result.confidence is MatchConfidence.LOW
        assert "manual verification" in result.warnings[0]

    def test_no_suitable_purchase(self) -> None:
        purchase = _make_purchase("p1", datetime(2024, 6, 1, tzinfo=UTC))

        result = match_receipt(_make_row(1, JAN_10, kwh=400.0), [purchase])

        assert result.confidence is MatchConfidence.NONE
        assert result.purchase is None
        assert result.reasons == []
        assert "No suitable purchase found" in result.warnings[0]

    def test_empty_pool(self) -> None:
        result = match_receipt(_make_row(1, JAN_10), [])

        assert result.purchase is None
        assert result.warnings == ["No purchases available for matching (all have receipts)"]

    def test_short_account_number_warns(self) -> None:
        row = _make_row(1, JAN_10, identifiers=ReceiptIdentifiers(account_number="12345"))

        result = match_receipt(row, [_make_purchase("p1", JAN_10)])

        assert result.confidence is MatchConfidence.HIGH
        assert result.warnings == ["Account number 12345 is not 11 digits"]


class TestMatchReceipts:
    def test_high_match_claims_purchase(self) -> None:
        purchase = _make_purchase("p1", JAN_10)
        rows = [_make_row(1, JAN_10), _make_row(2, JAN_10)]

        results = match_receipts(rows, [purchase])

        assert results[0].purchase_id == "p1"
        assert results[1].purchase is None
        assert "No purchases available" in results[1].warnings[0]

    def test_weak_match_does_not_claim_purchase(self) -> None:
        purchase = _make_purchase("p1", datetime(2024, 1, 13, tzinfo=UTC))
        rows = [
            _make_row(1, JAN_10, kwh=115.0),             # LOW on p1
            _make_row(2, datetime(2024, 1, 13, tzinfo=UTC)),  # exact on p1
        ]

        results = match_receipts(rows, [purchase])

        assert results[0].confidence is MatchConfidence.LOW
        assert results[1].confidence is MatchConfidence.HIGH
        assert results[1].purchase_id == "p1"

    def test_rows_processed_oldest_first_but_returned_in_row_order(self) -> None:
        purchase = _make_purchase("p1", JAN_10)
        later = _make_row(1, datetime(2024, 1, 11, tzinfo=UTC))
        exact = _make_row(2, JAN_10)

        results = match_receipts([later, exact], [purchase])

        assert [r.row.row for r in results] == [1, 2]
        # row 2 is older, so it claims p1 first
        assert results[1].purchase_id == "p1"
        assert results[0].purchase is None

    def test_receipted_purchases_are_excluded(self) -> None:
        receipted = _make_purchase("p1", JAN_10, has_receipt=True)
        open_purchase = _make_purchase("p2", datetime(2024, 1, 12, tzinfo=UTC))

        results = match_receipts([_make_row(1, JAN_10)], [receipted, open_purchase])

        assert results[0].purchase_id == "p2"

    def test_receipted_purchases_can_be_included(self) -> None:
        receipted = _make_purchase("p1", JAN_10, has_receipt=True)

        results = match_receipts([_make_row(1, JAN_10)], [receipted], exclude_receipted=False)

        assert results[0].purchase_id == "p1"

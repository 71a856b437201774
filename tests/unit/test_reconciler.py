"""Unit tests for balance reconciliation."""

from dataclasses import replace
from datetime import UTC, datetime

import pytest

from src.tl_balance.domain.reconciler import (
    order_chronologically,
    reconcile,
    reconcile_all,
)
from src.tl_common.errors import InvalidPurchaseError, LedgerCorruptionError
from src.tl_ledger.domain.models import Contribution, ContributionLine, Purchase

PURCHASE_A = Purchase(
    id="pa",
    total_tokens=100.0,
    total_payment=20.0,
    meter_reading=1000.0,
    purchase_date=datetime(2024, 1, 1, tzinfo=UTC),
)
PURCHASE_B = Purchase(
    id="pb",
    total_tokens=200.0,
    total_payment=50.0,
    meter_reading=1100.0,
    purchase_date=datetime(2024, 2, 1, tzinfo=UTC),
)
PURCHASE_C = Purchase(
    id="pc",
    total_tokens=100.0,
    total_payment=30.0,
    meter_reading=1300.0,
    purchase_date=datetime(2024, 3, 1, tzinfo=UTC),
)


def _line(
    cid: str, purchase: Purchase | None, tokens: float, amount: float, user: str = "alice"
) -> ContributionLine:
    return ContributionLine(
        contribution=Contribution(
            id=cid,
            purchase_id=purchase.id if purchase else "deleted",
            user_id=user,
            contribution_amount=amount,
            meter_reading=purchase.meter_reading if purchase else 0.0,
            tokens_consumed=tokens,
        ),
        purchase=purchase,
    )


class TestFirstPurchaseRule:
    def test_earliest_purchase_has_no_fair_share(self) -> None:
        result = reconcile([_line("c1", PURCHASE_A, 40, 10.0)], earliest_purchase_id="pa")

        line = result.lines[0]
        assert line.is_first_purchase is True
        assert line.effective_tokens_consumed == 0
        assert line.fair_share == 0
        assert line.balance_change == pytest.approx(10.0)
        assert result.running_balance == pytest.approx(10.0)

    def test_rule_follows_global_earliest_not_users_earliest(self) -> None:
        # alice never contributed to pa, so her first line is charged normally
        result = reconcile([_line("c2", PURCHASE_B, 80, 18.0)], earliest_purchase_id="pa")

        assert result.lines[0].is_first_purchase is False
        assert result.lines[0].fair_share == pytest.approx(20.0)


class TestProportionalFairShare:
    def test_later_purchase_charges_proportional_share(self) -> None:
        result = reconcile([_line("c2", PURCHASE_B, 80, 18.0)], earliest_purchase_id="pa")

        assert result.lines[0].fair_share == pytest.approx(20.0)
        assert result.lines[0].balance_change == pytest.approx(-2.0)

    def test_running_balance_across_purchases(self) -> None:
        result = reconcile(
            [_line("c1", PURCHASE_A, 40, 10.0), _line("c2", PURCHASE_B, 80, 18.0)],
            earliest_purchase_id="pa",
        )

        assert [ln.running_balance for ln in result.lines] == pytest.approx([10.0, 8.0])
        assert result.total_contributed == pytest.approx(28.0)
        assert result.total_fair_share == pytest.approx(20.0)
        assert result.running_balance == pytest.approx(
            result.total_contributed - result.total_fair_share
        )

    def test_no_contributions(self) -> None:
        result = reconcile([], earliest_purchase_id="pa")
        assert result.running_balance == 0
        assert result.lines == []


class TestOrdering:
    def test_insertion_order_does_not_change_balance(self) -> None:
        lines = [
            _line("c3", PURCHASE_C, 50, 20.0),
            _line("c1", PURCHASE_A, 40, 10.0),
            _line("c2", PURCHASE_B, 80, 18.0),
        ]
        forward = reconcile(lines, "pa")
        backward = reconcile(list(reversed(lines)), "pa")

        assert [ln.contribution_id for ln in forward.lines] == ["c1", "c2", "c3"]
        assert [ln.contribution_id for ln in backward.lines] == ["c1", "c2", "c3"]
        assert forward.running_balance == backward.running_balance

    def test_same_date_ties_break_on_purchase_then_contribution_id(self) -> None:
        twin = Purchase(
            id="pa2",
            total_tokens=10.0,
            total_payment=5.0,
            meter_reading=1000.0,
            purchase_date=PURCHASE_A.purchase_date,
        )
        ordered = order_chronologically(
            [_line("c9", twin, 1, 1.0), _line("c5", PURCHASE_A, 1, 1.0)]
        )
        assert [ln.contribution.purchase_id for ln in ordered] == ["pa", "pa2"]


class TestLedgerCorruption:
    def test_missing_purchase_raises(self) -> None:
        lines = [_line("c1", PURCHASE_A, 40, 10.0), _line("c7", None, 5, 2.0)]

        with pytest.raises(LedgerCorruptionError) as exc_info:
            reconcile(lines, "pa")

        assert exc_info.value.contribution_id == "c7"
        assert exc_info.value.purchase_id == "deleted"

    @pytest.mark.parametrize(
        "totals", [{"total_tokens": 0.0}, {"total_payment": -5.0}, {"total_tokens": float("nan")}]
    )
    def test_purchase_with_non_positive_totals_raises(self, totals: dict) -> None:
        broken = replace(PURCHASE_B, **totals)
        lines = [_line("c1", PURCHASE_A, 40, 10.0), _line("c2", broken, 80, 18.0)]

        with pytest.raises(InvalidPurchaseError) as exc_info:
            reconcile(lines, "pa")

        assert exc_info.value.code == 2003
        assert "pb" in exc_info.value.message


class TestReconcileAll:
    def test_groups_by_member(self) -> None:
        lines = [
            _line("c1", PURCHASE_A, 40, 10.0, user="alice"),
            _line("c2", PURCHASE_B, 80, 18.0, user="bob"),
            _line("c3", PURCHASE_C, 50, 15.0, user="alice"),
        ]

        result = reconcile_all(lines, "pa")

        assert list(result) == ["alice", "bob"]
        # alice: +10 on pa, then 15 - 50/100*30 = 0 on pc
        assert result["alice"].running_balance == pytest.approx(10.0)
        assert result["bob"].running_balance == pytest.approx(-2.0)

"""Unit tests for proportional cost allocation."""

from datetime import UTC, datetime

import pytest

from src.tl_cost.domain.allocation import (
    CostSlice,
    cost_per_unit,
    emergency_premium,
    slice_for,
    split_by_rate,
    true_cost,
)
from src.tl_ledger.domain.models import Contribution, ContributionLine, Purchase


def _make_purchase(**kwargs) -> Purchase:
    return Purchase(
        id=kwargs.get("id", "p1"),
        total_tokens=kwargs.get("total_tokens", 100.0),
        total_payment=kwargs.get("total_payment", 50.0),
        meter_reading=kwargs.get("meter_reading", 1000.0),
        purchase_date=kwargs.get("purchase_date", datetime(2024, 1, 1, tzinfo=UTC)),
        is_emergency=kwargs.get("is_emergency", False),
    )


class TestTrueCost:
    def test_proportional_share(self) -> None:
        assert true_cost(30, 100, 50) == pytest.approx(15.0)

    def test_zero_tokens_consumed_costs_nothing(self) -> None:
        assert true_cost(0, 100, 50) == 0.0

    def test_zero_total_tokens_guards_division(self) -> None:
        assert true_cost(10, 0, 50) == 0.0

    def test_whole_purchase_costs_whole_payment(self) -> None:
        assert true_cost(100, 100, 50) == pytest.approx(50.0)

    def test_slices_conserve_payment(self) -> None:
        """Splitting a purchase's tokens never creates or loses money."""
        parts = [12.5, 30.0, 7.25, 50.25]
        total = sum(true_cost(t, 100, 73.19) for t in parts)
        assert total == pytest.approx(73.19)

    def test_linear_in_tokens(self) -> None:
        assert true_cost(20, 100, 50) == pytest.approx(2 * true_cost(10, 100, 50))


class TestCostPerUnit:
    def test_usd_per_kwh(self) -> None:
        assert cost_per_unit(_make_purchase(total_tokens=200, total_payment=50)) == 0.25

    def test_zero_tokens(self) -> None:
        assert cost_per_unit(_make_purchase(total_tokens=0)) == 0.0


class TestSliceFor:
    def test_builds_slice_from_joined_line(self) -> None:
        purchase = _make_purchase(is_emergency=True)
        line = ContributionLine(
            contribution=Contribution(
                id="c1",
                purchase_id="p1",
                user_id="alice",
                contribution_amount=25.0,
                meter_reading=1000.0,
                tokens_consumed=40.0,
            ),
            purchase=purchase,
        )
        s = slice_for(line)
        assert s is not None
        assert s.tokens == 40.0
        assert s.true_cost == pytest.approx(20.0)
        assert s.is_emergency is True

    def test_missing_purchase_returns_none(self) -> None:
        line = ContributionLine(
            contribution=Contribution("c1", "gone", "alice", 10.0, 0.0, 5.0),
            purchase=None,
        )
        assert slice_for(line) is None


class TestEmergencyPremium:
    def test_premium_over_regular_rate(self) -> None:
        slices = [
            CostSlice(tokens=100, true_cost=50, is_emergency=False),  # 0.50/kWh
            CostSlice(tokens=10, true_cost=8, is_emergency=True),     # 0.80/kWh
        ]
        assert emergency_premium(slices) == pytest.approx(3.0)

    def test_no_emergency_consumption(self) -> None:
        slices = [CostSlice(tokens=100, true_cost=50, is_emergency=False)]
        assert emergency_premium(slices) == 0.0

    def test_no_regular_baseline(self) -> None:
        slices = [CostSlice(tokens=10, true_cost=8, is_emergency=True)]
        assert emergency_premium(slices) == 0.0

    def test_split_rates(self) -> None:
        split = split_by_rate(
            [
                CostSlice(tokens=40, true_cost=20, is_emergency=False),
                CostSlice(tokens=60, true_cost=30, is_emergency=False),
                CostSlice(tokens=10, true_cost=8, is_emergency=True),
            ]
        )
        assert split.regular_tokens == 100
        assert split.regular_cost_per_unit == pytest.approx(0.5)
        assert split.emergency_cost_per_unit == pytest.approx(0.8)

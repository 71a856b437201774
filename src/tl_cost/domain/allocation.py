"""Proportional cost allocation — pure functions, no I/O.

A purchase's payment is shared by the tokens it bought: whoever consumes a
slice of those tokens owes the same slice of the payment.

    true_cost = tokens_consumed / total_tokens * total_payment

Emergency purchases are usually made at a worse rate. Their premium is the
extra paid for emergency tokens compared with the regular-purchase rate of
the same aggregation window.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

from src.tl_common.errors import InvalidPurchaseError
from src.tl_ledger.domain.models import ContributionLine, Purchase


def true_cost(tokens_consumed: float, total_tokens: float, total_payment: float) -> float:
    """Proportional share of ``total_payment`` for ``tokens_consumed``.

    Returns 0 when ``total_tokens`` is 0 (purchases always have tokens > 0,
    this only guards against a corrupted row).
    """
    if total_tokens == 0:
        return 0.0
    return (tokens_consumed / total_tokens) * total_payment


def cost_per_unit(purchase: Purchase) -> float:
    """USD per kWh for one purchase."""
    if purchase.total_tokens == 0:
        return 0.0
    return purchase.total_payment / purchase.total_tokens


def require_valid_totals(purchase: Purchase) -> Purchase:
    """Raise InvalidPurchaseError unless both totals are finite and > 0."""
    for name, value in (
        ("total_tokens", purchase.total_tokens),
        ("total_payment", purchase.total_payment),
    ):
        if not (math.isfinite(value) and value > 0):
            raise InvalidPurchaseError(purchase.id, f"{name} must be positive, got {value}")
    return purchase


@dataclass(frozen=True)
class CostSlice:
    """Tokens consumed from one purchase and their allocated true cost."""
    tokens: float
    true_cost: float
    is_emergency: bool


def slice_for(line: ContributionLine) -> CostSlice | None:
    """Cost slice of a contribution, None when its purchase is missing."""
    if line.purchase is None:
        return None
    tokens = line.contribution.tokens_consumed
    return CostSlice(
        tokens=tokens,
        true_cost=true_cost(tokens, line.purchase.total_tokens, line.purchase.total_payment),
        is_emergency=line.purchase.is_emergency,
    )


@dataclass(frozen=True)
class RateSplit:
    regular_tokens: float
    regular_cost: float
    emergency_tokens: float
    emergency_cost: float

    @property
    def regular_cost_per_unit(self) -> float:
        if self.regular_tokens <= 0:
            return 0.0
        return self.regular_cost / self.regular_tokens

    @property
    def emergency_cost_per_unit(self) -> float:
        if self.emergency_tokens <= 0:
            return 0.0
        return self.emergency_cost / self.emergency_tokens


def split_by_rate(slices: Iterable[CostSlice]) -> RateSplit:
    regular_tokens = regular_cost = emergency_tokens = emergency_cost = 0.0
    for s in slices:
        if s.is_emergency:
            emergency_tokens += s.tokens
            emergency_cost += s.true_cost
        else:
            regular_tokens += s.tokens
            regular_cost += s.true_cost
    return RateSplit(regular_tokens, regular_cost, emergency_tokens, emergency_cost)


def emergency_premium(slices: Iterable[CostSlice]) -> float:
    """Extra cost of emergency tokens over the window's regular rate.

    0 when the window has no emergency consumption or no regular purchases
    to compare against.
    """
    split = split_by_rate(slices)
    regular_rate = split.regular_cost_per_unit
    if split.emergency_tokens <= 0 or regular_rate <= 0:
        return 0.0
    return split.emergency_cost - split.emergency_tokens * regular_rate

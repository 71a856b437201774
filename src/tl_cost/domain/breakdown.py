"""Cost breakdowns built on the allocator.

All figures are derived from contributions joined to their purchases; the
returned dataclasses carry values rounded for presentation (2 dp for money,
4 dp for rates) while sums are accumulated unrounded.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

from src.tl_common.datetime_utils import as_utc
from src.tl_common.enums import EfficiencyRating, VarianceDirection
from src.tl_common.money import round2, round4, safe_ratio, usd_display
from src.tl_cost.domain.allocation import (
    CostSlice,
    cost_per_unit,
    emergency_premium,
    require_valid_totals,
    slice_for,
    split_by_rate,
    true_cost,
)
from src.tl_ledger.domain.models import ContributionLine, Purchase, ReceiptData

EMERGENCY_PENALTY_RATE = 0.10
EXACT_VARIANCE_TOLERANCE = 0.01


@dataclass(frozen=True)
class CostBreakdown:
    total_tokens_used: float = 0.0
    total_amount_paid: float = 0.0
    total_true_cost: float = 0.0
    average_cost_per_kwh: float = 0.0
    efficiency: float = 0.0          # true cost as % of amount paid
    overpayment: float = 0.0         # paid - true cost
    emergency_premium: float = 0.0
    regular_cost_per_kwh: float = 0.0
    emergency_cost_per_kwh: float = 0.0


def _ordered(lines: list[ContributionLine]) -> list[ContributionLine]:
    present = [ln for ln in lines if ln.purchase is not None]
    return sorted(
        present,
        key=lambda ln: (as_utc(ln.purchase.purchase_date), ln.purchase.id),  # type: ignore
    )


def calculate_cost_breakdown(lines: list[ContributionLine]) -> CostBreakdown:
    """Paid vs proportional true cost across a set of contributions.

    Contributions whose purchase is missing are ignored here; the balance
    reconciler is the place that rejects a corrupted ledger.
    """
    if not lines:
        return CostBreakdown()

    slices: list[CostSlice] = []
    paid = 0.0
    for line in _ordered(lines):
        s = slice_for(line)
        if s is None:
            continue
        slices.append(s)
        paid += line.contribution.contribution_amount

    tokens = sum(s.tokens for s in slices)
    cost = sum(s.true_cost for s in slices)
    split = split_by_rate(slices)

    return CostBreakdown(
        total_tokens_used=round2(tokens),
        total_amount_paid=round2(paid),
        total_true_cost=round2(cost),
        average_cost_per_kwh=round4(safe_ratio(cost, tokens)),
        efficiency=round2(safe_ratio(cost, paid) * 100) if cost > 0 else 0.0,
        overpayment=round2(paid - cost),
        emergency_premium=round2(emergency_premium(slices)),
        regular_cost_per_kwh=round4(split.regular_cost_per_unit),
        emergency_cost_per_kwh=round4(split.emergency_cost_per_unit),
    )


@dataclass(frozen=True)
class UserCostSummary:
    user_id: str
    breakdown: CostBreakdown
    contribution_ids: list[str]
    purchase_ids: list[str]


@dataclass(frozen=True)
class EmergencyImpact:
    regular_purchases: int
    emergency_purchases: int
    additional_cost_due_to_emergency: float
    percentage_increase: float


@dataclass(frozen=True)
class PeriodCostAnalysis:
    start: datetime | None
    end: datetime | None
    users: list[UserCostSummary]
    total: CostBreakdown
    emergency_impact: EmergencyImpact


def _in_window(moment: datetime, start: datetime | None, end: datetime | None) -> bool:
    moment = as_utc(moment)
    if start is not None and moment < as_utc(start):
        return False
    if end is not None and moment > as_utc(end):
        return False
    return True


def calculate_period_cost_analysis(
    purchases: list[Purchase],
    lines: list[ContributionLine],
    start: datetime | None = None,
    end: datetime | None = None,
) -> PeriodCostAnalysis:
    """Per-user breakdowns and emergency impact for purchases dated in a window."""
    window_purchases = [p for p in purchases if _in_window(p.purchase_date, start, end)]
    window_lines = [
        ln for ln in lines
        if ln.purchase is not None and _in_window(ln.purchase.purchase_date, start, end)
    ]

    by_user: dict[str, list[ContributionLine]] = defaultdict(list)
    for line in window_lines:
        by_user[line.contribution.user_id].append(line)

    users = [
        UserCostSummary(
            user_id=user_id,
            breakdown=calculate_cost_breakdown(user_lines),
            contribution_ids=[ln.contribution.id for ln in user_lines],
            purchase_ids=[ln.contribution.purchase_id for ln in user_lines],
        )
        for user_id, user_lines in sorted(by_user.items())
    ]

    regular = [p for p in window_purchases if not p.is_emergency]
    emergency = [p for p in window_purchases if p.is_emergency]
    avg_regular_rate = safe_ratio(sum(cost_per_unit(p) for p in regular), len(regular))
    avg_emergency_rate = safe_ratio(sum(cost_per_unit(p) for p in emergency), len(emergency))
    emergency_tokens = sum(
        ln.contribution.tokens_consumed
        for ln in window_lines
        if ln.purchase is not None and ln.purchase.is_emergency
    )
    additional = 0.0
    if emergency_tokens > 0 and avg_regular_rate > 0:
        additional = emergency_tokens * (avg_emergency_rate - avg_regular_rate)
    increase = 0.0
    if avg_regular_rate > 0:
        increase = (avg_emergency_rate - avg_regular_rate) / avg_regular_rate * 100

    return PeriodCostAnalysis(
        start=start,
        end=end,
        users=users,
        total=calculate_cost_breakdown(window_lines),
        emergency_impact=EmergencyImpact(
            regular_purchases=len(regular),
            emergency_purchases=len(emergency),
            additional_cost_due_to_emergency=round2(additional),
            percentage_increase=round2(increase),
        ),
    )


@dataclass(frozen=True)
class OptimalContribution:
    base_contribution: float
    emergency_penalty: float
    total_optimal_contribution: float
    cost_per_kwh: float


def calculate_optimal_contribution(
    tokens_consumed: float,
    purchase: Purchase,
    include_emergency_penalty: bool = True,
) -> OptimalContribution:
    """Fair contribution for a consumption slice, with a 10% emergency penalty."""
    require_valid_totals(purchase)
    base = true_cost(tokens_consumed, purchase.total_tokens, purchase.total_payment)
    penalty = 0.0
    if purchase.is_emergency and include_emergency_penalty:
        penalty = base * EMERGENCY_PENALTY_RATE
    return OptimalContribution(
        base_contribution=round2(base),
        emergency_penalty=round2(penalty),
        total_optimal_contribution=round2(base + penalty),
        cost_per_kwh=round4(cost_per_unit(purchase)),
    )


@dataclass(frozen=True)
class DualCurrencyCost:
    usd_true_cost: float
    usd_cost_per_kwh: float
    zwg_cost: float
    zwg_cost_per_kwh: float
    zwg_energy: float
    zwg_debt: float
    zwg_rea: float
    zwg_vat: float
    implied_exchange_rate: float     # ZWG per 1 USD
    zwg_cost_in_usd: float
    variance: float                  # USD true cost - ZWG cost converted to USD
    variance_percentage: float
    direction: VarianceDirection


def calculate_dual_currency_cost(
    purchase: Purchase, receipt: ReceiptData, tokens_consumed: float
) -> DualCurrencyCost:
    """USD allocation vs the official ZWG receipt for the same consumption."""
    require_valid_totals(purchase)
    usd_cost = true_cost(tokens_consumed, purchase.total_tokens, purchase.total_payment)
    share = safe_ratio(tokens_consumed, receipt.kwh_purchased)
    zwg_cost = share * receipt.total_amount
    rate = safe_ratio(receipt.total_amount, purchase.total_payment)
    zwg_in_usd = safe_ratio(zwg_cost, rate)
    variance = usd_cost - zwg_in_usd

    direction = VarianceDirection.EXACT
    if variance > EXACT_VARIANCE_TOLERANCE:
        direction = VarianceDirection.OVERPAID
    elif variance < -EXACT_VARIANCE_TOLERANCE:
        direction = VarianceDirection.UNDERPAID

    return DualCurrencyCost(
        usd_true_cost=round2(usd_cost),
        usd_cost_per_kwh=round4(cost_per_unit(purchase)),
        zwg_cost=round2(zwg_cost),
        zwg_cost_per_kwh=round4(safe_ratio(receipt.total_amount, receipt.kwh_purchased)),
        zwg_energy=round2(share * receipt.energy_cost),
        zwg_debt=round2(share * receipt.debt),
        zwg_rea=round2(share * receipt.rea),
        zwg_vat=round2(share * receipt.vat),
        implied_exchange_rate=round4(rate),
        zwg_cost_in_usd=round2(zwg_in_usd),
        variance=round2(variance),
        variance_percentage=round2(safe_ratio(variance, usd_cost) * 100),
        direction=direction,
    )


@dataclass
class CostRecommendations:
    efficiency: EfficiencyRating
    potential_savings: float
    recommendations: list[str] = field(default_factory=list)


def generate_cost_recommendations(breakdown: CostBreakdown) -> CostRecommendations:
    if breakdown.efficiency >= 95:
        result = CostRecommendations(EfficiencyRating.EXCELLENT, 0.0)
        result.recommendations.append(
            "You are paying very close to your true usage cost."
        )
    elif breakdown.efficiency >= 85:
        result = CostRecommendations(EfficiencyRating.GOOD, 0.0)
        result.recommendations.append(
            "Your payments are reasonably aligned with your usage."
        )
    elif breakdown.efficiency >= 70:
        result = CostRecommendations(
            EfficiencyRating.FAIR, round2(abs(breakdown.overpayment) * 0.5)
        )
        result.recommendations.append(
            "Consider adjusting your contribution amounts to better match your usage."
        )
    else:
        result = CostRecommendations(
            EfficiencyRating.POOR, round2(abs(breakdown.overpayment) * 0.8)
        )
        result.recommendations.append(
            "Your payments are significantly misaligned with your actual usage."
        )

    if breakdown.emergency_premium > 0 and breakdown.total_true_cost > 0:
        impact = breakdown.emergency_premium / breakdown.total_true_cost * 100
        if impact > 20:
            result.recommendations.append(
                f"Emergency purchases increased your costs by {impact:.1f}%. "
                "Plan purchases ahead to avoid emergency rates."
            )

    threshold = breakdown.total_true_cost * 0.1
    if breakdown.overpayment > threshold:
        result.recommendations.append(
            f"You are overpaying by {usd_display(breakdown.overpayment)}. "
            "Consider reducing your contribution amounts."
        )
    elif breakdown.overpayment < -threshold:
        result.recommendations.append(
            f"You are underpaying by {usd_display(abs(breakdown.overpayment))}. "
            "Consider increasing your contribution amounts."
        )
    return result

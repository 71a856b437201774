"""Pydantic schemas for tl_cost API."""

from dataclasses import asdict

from pydantic import BaseModel

from src.tl_common.money import usd_display
from src.tl_cost.domain.breakdown import (
    CostBreakdown,
    CostRecommendations,
    DualCurrencyCost,
    OptimalContribution,
    PeriodCostAnalysis,
)


class CostBreakdownResponse(BaseModel):
    total_tokens_used: float
    total_amount_paid: float
    total_amount_paid_display: str
    total_true_cost: float
    total_true_cost_display: str
    average_cost_per_kwh: float
    efficiency: float
    overpayment: float
    overpayment_display: str
    emergency_premium: float
    regular_cost_per_kwh: float
    emergency_cost_per_kwh: float

    @classmethod
    def from_domain(cls, b: CostBreakdown) -> "CostBreakdownResponse":
        return cls(
            **asdict(b),
            total_amount_paid_display=usd_display(b.total_amount_paid),
            total_true_cost_display=usd_display(b.total_true_cost),
            overpayment_display=usd_display(b.overpayment),
        )


class CostSummaryResponse(BaseModel):
    user_id: str
    contribution_count: int
    breakdown: CostBreakdownResponse
    efficiency_rating: str
    potential_savings: float
    recommendations: list[str]

    @classmethod
    def from_domain(
        cls,
        user_id: str,
        contribution_count: int,
        breakdown: CostBreakdown,
        recs: CostRecommendations,
    ) -> "CostSummaryResponse":
        return cls(
            user_id=user_id,
            contribution_count=contribution_count,
            breakdown=CostBreakdownResponse.from_domain(breakdown),
            efficiency_rating=recs.efficiency.value,
            potential_savings=recs.potential_savings,
            recommendations=recs.recommendations,
        )


class UserPeriodItem(BaseModel):
    user_id: str
    contribution_ids: list[str]
    purchase_ids: list[str]
    breakdown: CostBreakdownResponse


class EmergencyImpactResponse(BaseModel):
    regular_purchases: int
    emergency_purchases: int
    additional_cost_due_to_emergency: float
    percentage_increase: float


class PeriodAnalysisResponse(BaseModel):
    start: str | None
    end: str | None
    users: list[UserPeriodItem]
    total: CostBreakdownResponse
    emergency_impact: EmergencyImpactResponse

    @classmethod
    def from_domain(cls, a: PeriodCostAnalysis) -> "PeriodAnalysisResponse":
        return cls(
            start=a.start.isoformat() if a.start else None,
            end=a.end.isoformat() if a.end else None,
            users=[
                UserPeriodItem(
                    user_id=u.user_id,
                    contribution_ids=u.contribution_ids,
                    purchase_ids=u.purchase_ids,
                    breakdown=CostBreakdownResponse.from_domain(u.breakdown),
                )
                for u in a.users
            ],
            total=CostBreakdownResponse.from_domain(a.total),
            emergency_impact=EmergencyImpactResponse(**asdict(a.emergency_impact)),
        )


class OptimalContributionResponse(BaseModel):
    purchase_id: str
    tokens_consumed: float
    is_emergency: bool
    base_contribution: float
    emergency_penalty: float
    total_optimal_contribution: float
    total_optimal_contribution_display: str
    cost_per_kwh: float

    @classmethod
    def from_domain(
        cls, purchase_id: str, tokens: float, is_emergency: bool, o: OptimalContribution
    ) -> "OptimalContributionResponse":
        return cls(
            purchase_id=purchase_id,
            tokens_consumed=tokens,
            is_emergency=is_emergency,
            total_optimal_contribution_display=usd_display(o.total_optimal_contribution),
            **asdict(o),
        )


class DualCurrencyResponse(BaseModel):
    purchase_id: str
    tokens_consumed: float
    usd_true_cost: float
    usd_cost_per_kwh: float
    zwg_cost: float
    zwg_cost_per_kwh: float
    zwg_energy: float
    zwg_debt: float
    zwg_rea: float
    zwg_vat: float
    implied_exchange_rate: float
    zwg_cost_in_usd: float
    variance: float
    variance_percentage: float
    direction: str

    @classmethod
    def from_domain(
        cls, purchase_id: str, tokens: float, d: DualCurrencyCost
    ) -> "DualCurrencyResponse":
        fields = asdict(d)
        fields["direction"] = d.direction.value
        return cls(purchase_id=purchase_id, tokens_consumed=tokens, **fields)

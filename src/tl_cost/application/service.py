"""CostAnalysisService — read-only composition over the ledger repository.

Every figure is recomputed from purchases and contributions on each call.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_common.errors import PurchaseNotFoundError, ReceiptNotFoundError
from src.tl_cost.application.schemas import (
    CostSummaryResponse,
    DualCurrencyResponse,
    OptimalContributionResponse,
    PeriodAnalysisResponse,
)
from src.tl_cost.domain.breakdown import (
    calculate_cost_breakdown,
    calculate_dual_currency_cost,
    calculate_optimal_contribution,
    calculate_period_cost_analysis,
    generate_cost_recommendations,
)
from src.tl_ledger.domain.repository import LedgerRepositoryProtocol
from src.tl_ledger.infrastructure.persistence import LedgerRepository


class CostAnalysisService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def get_user_summary(self, db: AsyncSession, user_id: str) -> CostSummaryResponse:
        lines = await self._repo.list_contribution_lines(db, user_id=user_id)
        breakdown = calculate_cost_breakdown(lines)
        return CostSummaryResponse.from_domain(
            user_id=user_id,
            contribution_count=len(lines),
            breakdown=breakdown,
            recs=generate_cost_recommendations(breakdown),
        )

    async def get_period_analysis(
        self, db: AsyncSession, start: datetime | None, end: datetime | None
    ) -> PeriodAnalysisResponse:
        purchases = await self._repo.list_purchases(db, start, end)
        lines = await self._repo.list_contribution_lines(db, start=start, end=end)
        analysis = calculate_period_cost_analysis(purchases, lines, start, end)
        return PeriodAnalysisResponse.from_domain(analysis)

    async def get_optimal_contribution(
        self,
        db: AsyncSession,
        purchase_id: str,
        tokens_consumed: float,
        include_emergency_penalty: bool = True,
    ) -> OptimalContributionResponse:
        purchase = await self._repo.get_purchase(db, purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(purchase_id)
        result = calculate_optimal_contribution(
            tokens_consumed, purchase, include_emergency_penalty
        )
        return OptimalContributionResponse.from_domain(
            purchase_id, tokens_consumed, purchase.is_emergency, result
        )

    async def get_dual_currency_cost(
        self, db: AsyncSession, purchase_id: str, tokens_consumed: float
    ) -> DualCurrencyResponse:
        purchase = await self._repo.get_purchase(db, purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(purchase_id)
        receipt = await self._repo.get_receipt_for_purchase(db, purchase_id)
        if receipt is None:
            raise ReceiptNotFoundError(purchase_id)
        result = calculate_dual_currency_cost(purchase, receipt, tokens_consumed)
        return DualCurrencyResponse.from_domain(purchase_id, tokens_consumed, result)

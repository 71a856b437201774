"""BalanceService — recomputes member balances from the ledger on every call.

Balances are never stored. Each run looks up the globally earliest purchase
once, then reconciles the member's contributions in purchase-date order.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_balance.application.schemas import (
    BalanceBreakdownResponse,
    BalanceResponse,
    GlobalBalanceResponse,
)
from src.tl_balance.domain.reconciler import BalanceBreakdown, reconcile, reconcile_all
from src.tl_common.errors import LedgerCorruptionError
from src.tl_common.money import round2
from src.tl_ledger.domain.repository import LedgerRepositoryProtocol
from src.tl_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class BalanceService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def compute_balance(self, db: AsyncSession, user_id: str) -> BalanceBreakdown:
        earliest = await self._repo.find_earliest_purchase(db)
        lines = await self._repo.list_contribution_lines(db, user_id=user_id)
        try:
            return reconcile(lines, earliest.id if earliest else None)
        except LedgerCorruptionError as exc:
            logger.error(
                "Balance for user %s aborted: contribution %s references missing purchase %s",
                user_id,
                exc.contribution_id,
                exc.purchase_id,
            )
            raise

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        breakdown = await self.compute_balance(db, user_id)
        return BalanceResponse.from_balance(user_id, breakdown.running_balance)

    async def get_breakdown(self, db: AsyncSession, user_id: str) -> BalanceBreakdownResponse:
        breakdown = await self.compute_balance(db, user_id)
        return BalanceBreakdownResponse.from_domain(user_id, breakdown)

    async def compute_global_balance(self, db: AsyncSession) -> GlobalBalanceResponse:
        """Recompute every member's balance, e.g. after restoring a backup."""
        earliest = await self._repo.find_earliest_purchase(db)
        earliest_id = earliest.id if earliest else None
        lines = await self._repo.list_contribution_lines(db)
        try:
            per_user = reconcile_all(lines, earliest_id)
        except LedgerCorruptionError as exc:
            logger.error(
                "Global balance aborted: contribution %s references missing purchase %s",
                exc.contribution_id,
                exc.purchase_id,
            )
            raise

        logger.info(
            "Recomputed balances for %d members from %d contributions",
            len(per_user),
            len(lines),
        )
        return GlobalBalanceResponse(
            earliest_purchase_id=earliest_id,
            member_count=len(per_user),
            contribution_count=len(lines),
            net_balance=round2(sum(b.running_balance for b in per_user.values())),
            balances=[
                BalanceResponse.from_balance(user_id, b.running_balance)
                for user_id, b in per_user.items()
            ],
        )

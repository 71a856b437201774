"""HistoryAnalysisService — read-only, recomputed from the receipt ledger."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.tl_analysis.application.schemas import HistoryAnalysisResponse
from src.tl_analysis.domain.history import analyze_history
from src.tl_ledger.domain.repository import LedgerRepositoryProtocol
from src.tl_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class HistoryAnalysisService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def analyze(
        self,
        db: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
        as_of: datetime | None = None,
    ) -> HistoryAnalysisResponse:
        items = await self._repo.list_receipts_with_purchases(db, start, end)
        analysis = analyze_history(items, as_of)
        logger.debug(
            "History analysis over %d receipts: trend %s, %d anomalies",
            len(items),
            analysis.trends.overall.value,
            len(analysis.anomalies),
        )
        return HistoryAnalysisResponse.from_domain(analysis)

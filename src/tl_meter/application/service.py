"""MeterReadingService — gates every insert into the global reading series.

validate_reading is read-only. record_reading runs read-validate-insert in
one SERIALIZABLE transaction so two concurrent inserts for adjacent dates
cannot both pass validation against stale neighbours.
"""

import logging
from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tl_common.database import begin_serializable
from src.tl_common.datetime_utils import calendar_day, next_day_start
from src.tl_common.errors import MeterReadingRejectedError
from src.tl_common.id_generator import generate_meter_reading_id
from src.tl_ledger.domain.models import MeterReading
from src.tl_ledger.domain.repository import LedgerRepositoryProtocol
from src.tl_ledger.infrastructure.persistence import LedgerRepository
from src.tl_meter.application.schemas import (
    ContributionReadingResponse,
    MeterReadingResponse,
    MeterValidationResponse,
    ReadingSuggestionResponse,
)
from src.tl_meter.domain.policy import ConsumptionPolicy
from src.tl_meter.domain.validator import (
    ReadingContext,
    ValidationResult,
    latest_reference,
    suggest_reading,
    validate_contribution_reading,
    validate_reading,
)

logger = logging.getLogger(__name__)


class MeterReadingService:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol | None = None,
        policy: ConsumptionPolicy | None = None,
    ) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()
        self._policy = policy or ConsumptionPolicy(history_window=settings.METER_HISTORY_WINDOW)

    async def _load_context(
        self, db: AsyncSession, user_id: str, reading_date: date
    ) -> ReadingContext:
        first_purchase = await self._repo.find_earliest_purchase(db)
        return ReadingContext(
            same_day_max=await self._repo.get_max_reading_on(db, reading_date),
            previous=await self._repo.get_latest_reading_before(db, reading_date),
            following=await self._repo.get_earliest_reading_after(db, reading_date),
            first_purchase=first_purchase,
            tokens_through_date=(
                await self._repo.sum_tokens_through(db, reading_date) if first_purchase else 0.0
            ),
            user_history=await self._repo.list_user_readings_before(
                db, user_id, reading_date, self._policy.history_window
            ),
        )

    async def _validate(
        self, db: AsyncSession, user_id: str, reading: float, reading_date: date
    ) -> ValidationResult:
        ctx = await self._load_context(db, user_id, reading_date)
        result = validate_reading(reading, reading_date, ctx, self._policy)
        if not result.valid:
            logger.info(
                "Meter reading %.2f on %s by %s rejected: %s",
                reading,
                reading_date,
                user_id,
                "; ".join(result.errors),
            )
        elif result.warnings:
            logger.info(
                "Meter reading %.2f on %s by %s accepted with warnings: %s",
                reading,
                reading_date,
                user_id,
                "; ".join(result.warnings),
            )
        return result

    async def validate_reading(
        self, db: AsyncSession, user_id: str, reading: float, reading_date: date
    ) -> MeterValidationResponse:
        result = await self._validate(db, user_id, reading, reading_date)
        return MeterValidationResponse.from_domain(result)

    async def record_reading(
        self,
        db: AsyncSession,
        user_id: str,
        reading: float,
        reading_date: date,
        notes: str | None = None,
    ) -> MeterReadingResponse:
        try:
            await begin_serializable(db)
            result = await self._validate(db, user_id, reading, reading_date)
            if not result.valid:
                raise MeterReadingRejectedError(result.errors)
            saved = await self._repo.insert_meter_reading(
                db,
                MeterReading(
                    id=generate_meter_reading_id(),
                    user_id=user_id,
                    reading=reading,
                    reading_date=reading_date,
                    notes=notes,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Meter reading %s recorded: %.2f on %s", saved.id, reading, reading_date)
        return MeterReadingResponse.from_domain(saved, result.warnings)

    async def suggest(self, db: AsyncSession, reading_date: date) -> ReadingSuggestionResponse:
        # "before tomorrow" = on or before the requested day
        last_reading = await self._repo.get_latest_reading_before(
            db, reading_date + timedelta(days=1)
        )
        purchases = [
            p
            for p in await self._repo.list_purchases(db, end=next_day_start(reading_date))
            if calendar_day(p.purchase_date) <= reading_date
        ]
        last_purchase = purchases[-1] if purchases else None
        last = latest_reference(last_reading, last_purchase)
        return ReadingSuggestionResponse.from_domain(suggest_reading(last, reading_date))

    async def validate_contribution(
        self, db: AsyncSession, purchase_id: str, meter_reading: float
    ) -> ContributionReadingResponse:
        purchase = await self._repo.get_purchase(db, purchase_id)
        return ContributionReadingResponse.from_domain(
            validate_contribution_reading(meter_reading, purchase)
        )

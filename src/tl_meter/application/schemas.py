"""Pydantic schemas for tl_meter API."""

from dataclasses import asdict
from datetime import date

from pydantic import BaseModel, Field

from src.tl_ledger.domain.models import MeterReading
from src.tl_meter.domain.validator import (
    ContributionReadingResult,
    ReadingSuggestion,
    ValidationResult,
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class MeterReadingRequest(BaseModel):
    reading: float = Field(..., ge=0, description="Meter value in kWh")
    reading_date: date = Field(..., description="Calendar day of the reading (YYYY-MM-DD)")
    notes: str | None = Field(None, max_length=500)


class ContributionReadingRequest(BaseModel):
    purchase_id: str = Field(..., min_length=1)
    meter_reading: float = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ReadingStatisticsResponse(BaseModel):
    daily_consumption: float
    historical_average: float
    historical_max: float
    historical_min: float
    threshold: float
    days_between: int


class MeterValidationResponse(BaseModel):
    valid: bool
    errors: list[str]
    warnings: list[str]
    statistics: ReadingStatisticsResponse | None = None

    @classmethod
    def from_domain(cls, result: ValidationResult) -> "MeterValidationResponse":
        return cls(
            valid=result.valid,
            errors=result.errors,
            warnings=result.warnings,
            statistics=(
                ReadingStatisticsResponse(**asdict(result.statistics))
                if result.statistics
                else None
            ),
        )


class MeterReadingResponse(BaseModel):
    id: str
    user_id: str
    reading: float
    reading_date: str  # ISO date
    notes: str | None
    warnings: list[str]

    @classmethod
    def from_domain(cls, reading: MeterReading, warnings: list[str]) -> "MeterReadingResponse":
        return cls(
            id=reading.id,
            user_id=reading.user_id,
            reading=reading.reading,
            reading_date=reading.reading_date.isoformat(),
            notes=reading.notes,
            warnings=warnings,
        )


class ReadingSuggestionResponse(BaseModel):
    minimum: float
    suggestion: float
    context: str
    last_reading: float | None = None
    last_reading_date: str | None = None
    last_reading_source: str | None = None

    @classmethod
    def from_domain(cls, s: ReadingSuggestion) -> "ReadingSuggestionResponse":
        return cls(
            minimum=s.minimum,
            suggestion=s.suggestion,
            context=s.context,
            last_reading=s.last.value if s.last else None,
            last_reading_date=s.last.day.isoformat() if s.last else None,
            last_reading_source=s.last.source.value if s.last else None,
        )


class ContributionReadingResponse(BaseModel):
    valid: bool
    error: str | None = None
    expected_reading: float | None = None

    @classmethod
    def from_domain(cls, r: ContributionReadingResult) -> "ContributionReadingResponse":
        return cls(**asdict(r))

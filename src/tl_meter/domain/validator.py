"""Meter reading validation — pure functions over a pre-loaded context.

The meter is shared, so readings form ONE global series ordered by date.
Hard rules (any violation rejects the reading):

  a. reading ≥ highest reading already recorded on the same date
  b. reading ≥ most recent reading strictly before the date
  c. reading ≤ earliest reading strictly after the date
  d. reading ≤ first purchase's meter reading + tokens bought up to and
     including the date
  e. at least one purchase must exist (it provides the initial reading)

Statistical rules compare the implied daily consumption since the previous
reading with the recorder's own history (see ConsumptionPolicy). They only
run once the chronology holds and at least two historical readings exist.
"""

import statistics
from dataclasses import dataclass, field
from datetime import date

from src.tl_common.datetime_utils import calendar_day, days_between_ceil
from src.tl_common.enums import ReadingSource
from src.tl_ledger.domain.models import MeterReading, Purchase
from src.tl_meter.domain.policy import DEFAULT_POLICY, ConsumptionPolicy

AVERAGE_DAILY_USAGE = 12.0      # kWh/day, used for suggestions only
MINIMUM_SUGGESTED_INCREMENT = 10.0
STARTING_SUGGESTION = 5000.0


@dataclass(frozen=True)
class ReadingContext:
    """Everything validation needs from the store, read in one go."""
    same_day_max: MeterReading | None
    previous: MeterReading | None       # latest strictly before the date
    following: MeterReading | None      # earliest strictly after the date
    first_purchase: Purchase | None
    tokens_through_date: float          # Σ total_tokens, purchases on or before the date
    user_history: list[MeterReading] = field(default_factory=list)  # most recent first


@dataclass(frozen=True)
class ConsumptionStats:
    average: float
    median: float
    maximum: float
    minimum: float
    samples: int


@dataclass(frozen=True)
class ReadingStatistics:
    daily_consumption: float
    historical_average: float
    historical_max: float
    historical_min: float
    threshold: float
    days_between: int


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    statistics: ReadingStatistics | None = None

    @property
    def valid(self) -> bool:
        return not self.errors


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def check_chronology(reading: float, ctx: ReadingContext) -> list[str]:
    """Rules a-c. Every violated rule yields one message."""
    errors: list[str] = []
    if ctx.same_day_max is not None and reading < ctx.same_day_max.reading:
        errors.append(
            f"Reading must be ≥ {_fmt(ctx.same_day_max.reading)}, the highest reading "
            f"recorded on {ctx.same_day_max.reading_date.isoformat()}"
        )
    if ctx.previous is not None and reading < ctx.previous.reading:
        errors.append(
            f"Reading must be ≥ {_fmt(ctx.previous.reading)} recorded on "
            f"{ctx.previous.reading_date.isoformat()}"
        )
    if ctx.following is not None and reading > ctx.following.reading:
        errors.append(
            f"Reading cannot be greater than the next chronological reading "
            f"({_fmt(ctx.following.reading)} on {ctx.following.reading_date.isoformat()}). "
            "Meter readings must increase chronologically."
        )
    return errors


def cumulative_ceiling(ctx: ReadingContext) -> float | None:
    """Highest reading the purchased tokens can explain, None without purchases."""
    if ctx.first_purchase is None:
        return None
    return ctx.first_purchase.meter_reading + ctx.tokens_through_date


def check_ceiling(reading: float, ctx: ReadingContext) -> str | None:
    """Rule d. Assumes a purchase exists."""
    ceiling = cumulative_ceiling(ctx)
    if ceiling is None or reading <= ceiling:
        return None
    initial = ctx.first_purchase.meter_reading  # type: ignore[union-attr]
    return (
        f"Meter reading cannot exceed {_fmt(ceiling)} kWh (initial reading "
        f"{_fmt(initial)} + total tokens purchased {_fmt(ctx.tokens_through_date)})"
    )


def daily_rates(history: list[MeterReading]) -> list[float]:
    """kWh/day between consecutive readings (history is most recent first).

    Pairs on the same day count their whole difference; negative rates are
    dropped.
    """
    rates: list[float] = []
    for current, previous in zip(history, history[1:]):
        consumption = current.reading - previous.reading
        days = days_between_ceil(previous.reading_date, current.reading_date)
        rate = consumption / days if days > 0 else consumption
        if rate >= 0:
            rates.append(rate)
    return rates


def compute_consumption_stats(rates: list[float]) -> ConsumptionStats | None:
    if not rates:
        return None
    return ConsumptionStats(
        average=sum(rates) / len(rates),
        median=statistics.median(rates),
        maximum=max(rates),
        minimum=min(rates),
        samples=len(rates),
    )


def evaluate_consumption(
    reading: float,
    reading_date: date,
    previous: MeterReading,
    history: list[MeterReading],
    policy: ConsumptionPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    """Statistical plausibility of the consumption since ``previous``."""
    result = ValidationResult()
    if len(history) < policy.min_history_points:
        return result
    stats = compute_consumption_stats(daily_rates(history[: policy.history_window]))
    if stats is None:
        return result

    consumption = reading - previous.reading
    days = days_between_ceil(previous.reading_date, reading_date)
    daily = consumption / days if days > 0 else consumption
    ceiling = policy.max_reasonable_daily(stats.average, stats.median, stats.maximum)
    floor = policy.min_reasonable_daily(stats.average)

    result.statistics = ReadingStatistics(
        daily_consumption=daily,
        historical_average=stats.average,
        historical_max=stats.maximum,
        historical_min=stats.minimum,
        threshold=ceiling,
        days_between=days,
    )

    if daily > ceiling:
        result.errors.append(
            f"Daily consumption of {_fmt(daily)} kWh seems unusually high "
            f"(limit {_fmt(ceiling)} kWh/day). Your historical average is "
            f"{_fmt(stats.average)} kWh/day and maximum was {_fmt(stats.maximum)} kWh/day. "
            "Please verify the reading."
        )
        return result

    if daily > stats.average * policy.warn_multiplier:
        result.warnings.append(
            f"Daily consumption of {_fmt(daily)} kWh is significantly higher than "
            f"your average of {_fmt(stats.average)} kWh/day."
        )
    if daily < floor and consumption > 0:
        result.warnings.append(
            f"Daily consumption of {_fmt(daily)} kWh is unusually low compared to "
            f"your average of {_fmt(stats.average)} kWh/day."
        )
    if consumption == 0 and days > 1:
        result.warnings.append(f"Zero consumption recorded over {days} days.")
    return result


def validate_reading(
    reading: float,
    reading_date: date,
    ctx: ReadingContext,
    policy: ConsumptionPolicy = DEFAULT_POLICY,
) -> ValidationResult:
    chronology_errors = check_chronology(reading, ctx)
    result = ValidationResult(errors=list(chronology_errors))

    if ctx.first_purchase is None:
        result.errors.append(
            "No token purchases found. Create a token purchase first to establish "
            "the initial meter reading."
        )
        return result

    ceiling_error = check_ceiling(reading, ctx)
    if ceiling_error:
        result.errors.append(ceiling_error)

    if not chronology_errors and ctx.previous is not None:
        consumption = evaluate_consumption(
            reading, reading_date, ctx.previous, ctx.user_history, policy
        )
        result.errors.extend(consumption.errors)
        result.warnings.extend(consumption.warnings)
        result.statistics = consumption.statistics
    return result


@dataclass(frozen=True)
class ReferencePoint:
    value: float
    day: date
    source: ReadingSource


@dataclass(frozen=True)
class ReadingSuggestion:
    minimum: float
    suggestion: float
    context: str
    last: ReferencePoint | None = None


def latest_reference(
    reading: MeterReading | None, purchase: Purchase | None
) -> ReferencePoint | None:
    """Most recent known meter value from either the reading series or a purchase."""
    candidates: list[ReferencePoint] = []
    if reading is not None:
        candidates.append(
            ReferencePoint(reading.reading, reading.reading_date, ReadingSource.READING)
        )
    if purchase is not None:
        candidates.append(
            ReferencePoint(
                purchase.meter_reading,
                calendar_day(purchase.purchase_date),
                ReadingSource.PURCHASE,
            )
        )
    if not candidates:
        return None
    return max(candidates, key=lambda c: (c.day, c.value))


def suggest_reading(last: ReferencePoint | None, reading_date: date) -> ReadingSuggestion:
    if last is None:
        return ReadingSuggestion(
            minimum=0.0,
            suggestion=STARTING_SUGGESTION,
            context="No previous meter readings found. Enter your current meter reading.",
        )
    days = max(days_between_ceil(last.day, reading_date), 0)
    increment = max(days * AVERAGE_DAILY_USAGE, MINIMUM_SUGGESTED_INCREMENT)
    return ReadingSuggestion(
        minimum=last.value,
        suggestion=last.value + increment,
        context=(
            f"Last reading was {last.value:,.2f} kWh on {last.day.isoformat()} "
            f"({last.source.value}). Suggested: ~{increment:.0f} kWh increase."
        ),
        last=last,
    )


@dataclass(frozen=True)
class ContributionReadingResult:
    valid: bool
    error: str | None = None
    expected_reading: float | None = None


def validate_contribution_reading(
    contribution_reading: float, purchase: Purchase | None
) -> ContributionReadingResult:
    """A contribution is recorded at the purchase's meter reading, exactly."""
    if purchase is None:
        return ContributionReadingResult(valid=False, error="Purchase not found.")
    if contribution_reading != purchase.meter_reading:
        return ContributionReadingResult(
            valid=False,
            error=(
                "Contribution meter reading must match the purchase meter reading "
                f"exactly: {purchase.meter_reading:,.2f} kWh. "
                f"Current: {contribution_reading:,.2f} kWh."
            ),
            expected_reading=purchase.meter_reading,
        )
    return ContributionReadingResult(valid=True, expected_reading=purchase.meter_reading)

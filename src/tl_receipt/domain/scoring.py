"""Receipt-to-purchase confidence scoring — pure functions.

    score = date_score + kwh_score      (each 0-50, total 0-100)

date_score buckets the calendar-day distance between the receipt's
transaction time and the purchase date; kwh_score buckets the relative
kWh difference measured against the purchase's tokens.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.tl_common.datetime_utils import calendar_days_apart
from src.tl_common.enums import MatchConfidence
from src.tl_ledger.domain.models import Purchase

MAX_SCORE = 100
EXACT_KWH_TOLERANCE = 1e-9

# (max calendar days apart, points)
DATE_BANDS: tuple[tuple[int, int], ...] = (
    (0, 50),
    (1, 40),
    (3, 30),
    (7, 20),
    (14, 10),
)

# (relative difference upper bound, inclusive?, points)
KWH_BANDS: tuple[tuple[float, bool, int], ...] = (
    (0.05, False, 40),
    (0.10, True, 30),
    (0.20, True, 20),
    (0.30, True, 10),
)

# (min score, classification), checked top-down
CONFIDENCE_BANDS: tuple[tuple[int, MatchConfidence], ...] = (
    (80, MatchConfidence.HIGH),
    (60, MatchConfidence.MEDIUM),
    (40, MatchConfidence.LOW),
)


def date_score(days_apart: int) -> int:
    for limit, points in DATE_BANDS:
        if days_apart <= limit:
            return points
    return 0


def kwh_relative_difference(receipt_kwh: float, purchase_kwh: float) -> float:
    """|receipt − purchase| / purchase; infinite when the purchase has no tokens."""
    if purchase_kwh <= 0:
        return float("inf")
    return abs(receipt_kwh - purchase_kwh) / purchase_kwh


def kwh_score(relative_difference: float) -> int:
    if relative_difference <= EXACT_KWH_TOLERANCE:
        return 50
    for bound, inclusive, points in KWH_BANDS:
        if relative_difference < bound or (inclusive and relative_difference == bound):
            return points
    return 0


def classify(score: int) -> MatchConfidence:
    for minimum, confidence in CONFIDENCE_BANDS:
        if score >= minimum:
            return confidence
    return MatchConfidence.NONE


@dataclass(frozen=True)
class PairScore:
    purchase: Purchase
    days_apart: int
    kwh_difference: float
    date_points: int
    kwh_points: int
    reasons: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.date_points + self.kwh_points


def _date_reason(days_apart: int) -> str | None:
    if days_apart == 0:
        return "Same-day date match"
    if days_apart <= 14:
        unit = "day" if days_apart == 1 else "days"
        return f"Date within {days_apart} {unit} of purchase"
    return None


def _kwh_reason(difference: float, points: int) -> str | None:
    if points == 50:
        return "Exact kWh match"
    if points > 0:
        return f"kWh within {difference * 100:.1f}% of purchase tokens"
    return None


def score_pair(transaction_time: datetime, receipt_kwh: float, purchase: Purchase) -> PairScore:
    days = calendar_days_apart(transaction_time, purchase.purchase_date)
    difference = kwh_relative_difference(receipt_kwh, purchase.total_tokens)
    d_points = date_score(days)
    k_points = kwh_score(difference)
    reasons = [r for r in (_date_reason(days), _kwh_reason(difference, k_points)) if r]
    return PairScore(
        purchase=purchase,
        days_apart=days,
        kwh_difference=difference,
        date_points=d_points,
        kwh_points=k_points,
        reasons=reasons,
    )

"""Historical receipt analysis — pure functions over receipts joined to purchases.

The unit of comparison is the ZWG price per kWh of a receipt
(total_amount / kwh_purchased). Receipts are grouped by their purchase's
date, not the receipt's transaction time.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from src.tl_common.datetime_utils import as_utc, calendar_day, month_key, utc_now
from src.tl_common.enums import AnomalySeverity, AnomalyType, TrendDirection
from src.tl_common.money import safe_ratio
from src.tl_ledger.domain.models import ReceiptWithPurchase

TREND_STABLE_PERCENT = 5.0
TREND_WINDOW_MONTHS = 3
ANOMALY_MIN_RECEIPTS = 3
ANOMALY_THRESHOLD_PERCENT = 20.0
SEASONAL_MIN_RECEIPTS = 12
RATE_CHANGE_ALERT_PERCENT = 10.0
CURRENT_VS_AVERAGE_PERCENT = 15.0
RECENT_ANOMALY_DAYS = 30


def zwg_per_kwh(item: ReceiptWithPurchase) -> float:
    return safe_ratio(item.receipt.total_amount, item.receipt.kwh_purchased)


def usd_per_kwh(item: ReceiptWithPurchase) -> float:
    return safe_ratio(item.purchase.total_payment, item.receipt.kwh_purchased)


def implied_rate(item: ReceiptWithPurchase) -> float:
    """ZWG paid per USD for one purchase."""
    return safe_ratio(item.receipt.total_amount, item.purchase.total_payment)


def _ordered(items: list[ReceiptWithPurchase]) -> list[ReceiptWithPurchase]:
    return sorted(items, key=lambda i: (as_utc(i.purchase.purchase_date), i.purchase.id))


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistorySummary:
    total_receipts: int = 0
    start: datetime | None = None
    end: datetime | None = None
    avg_zwg_per_kwh: float = 0.0
    min_zwg_per_kwh: float = 0.0
    max_zwg_per_kwh: float = 0.0
    total_kwh: float = 0.0
    total_zwg: float = 0.0
    avg_usd_per_kwh: float = 0.0
    implied_exchange_rate: float = 0.0


def summarize(items: list[ReceiptWithPurchase]) -> HistorySummary:
    if not items:
        return HistorySummary()
    rates = [zwg_per_kwh(i) for i in items]
    dates = [as_utc(i.purchase.purchase_date) for i in items]
    total_zwg = sum(i.receipt.total_amount for i in items)
    total_usd = sum(i.purchase.total_payment for i in items)
    return HistorySummary(
        total_receipts=len(items),
        start=min(dates),
        end=max(dates),
        avg_zwg_per_kwh=statistics.fmean(rates),
        min_zwg_per_kwh=min(rates),
        max_zwg_per_kwh=max(rates),
        total_kwh=sum(i.receipt.kwh_purchased for i in items),
        total_zwg=total_zwg,
        avg_usd_per_kwh=statistics.fmean(usd_per_kwh(i) for i in items),
        implied_exchange_rate=safe_ratio(total_zwg, total_usd),
    )


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonthlyTrend:
    month: str  # YYYY-MM
    avg_zwg_per_kwh: float
    min_zwg_per_kwh: float
    max_zwg_per_kwh: float
    total_kwh: float
    purchase_count: int


@dataclass(frozen=True)
class TrendAnalysis:
    overall: TrendDirection = TrendDirection.STABLE
    percentage_change: float = 0.0
    monthly: list[MonthlyTrend] = field(default_factory=list)


def monthly_trends(items: list[ReceiptWithPurchase]) -> list[MonthlyTrend]:
    groups: dict[str, list[ReceiptWithPurchase]] = defaultdict(list)
    for item in items:
        groups[month_key(item.purchase.purchase_date)].append(item)
    trends: list[MonthlyTrend] = []
    for key in sorted(groups):
        rates = [zwg_per_kwh(i) for i in groups[key]]
        trends.append(
            MonthlyTrend(
                month=key,
                avg_zwg_per_kwh=statistics.fmean(rates),
                min_zwg_per_kwh=min(rates),
                max_zwg_per_kwh=max(rates),
                total_kwh=sum(i.receipt.kwh_purchased for i in groups[key]),
                purchase_count=len(rates),
            )
        )
    return trends


def analyze_trend(monthly: list[MonthlyTrend]) -> TrendAnalysis:
    """Compare the first and last (up to three) months."""
    if len(monthly) < 2:
        return TrendAnalysis(monthly=monthly)
    window = min(TREND_WINDOW_MONTHS, len(monthly))
    first = statistics.fmean(t.avg_zwg_per_kwh for t in monthly[:window])
    last = statistics.fmean(t.avg_zwg_per_kwh for t in monthly[-window:])
    change = safe_ratio(last - first, first) * 100
    if change > TREND_STABLE_PERCENT:
        direction = TrendDirection.INCREASING
    elif change < -TREND_STABLE_PERCENT:
        direction = TrendDirection.DECREASING
    else:
        direction = TrendDirection.STABLE
    return TrendAnalysis(overall=direction, percentage_change=change, monthly=monthly)


# ---------------------------------------------------------------------------
# Anomalies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Anomaly:
    receipt_id: str
    purchase_id: str
    purchase_date: datetime
    zwg_per_kwh: float
    deviation: float  # percent, positive = above average
    type: AnomalyType
    severity: AnomalySeverity


def _severity(deviation: float) -> AnomalySeverity:
    magnitude = abs(deviation)
    if magnitude > 40:
        return AnomalySeverity.HIGH
    if magnitude > 30:
        return AnomalySeverity.MEDIUM
    return AnomalySeverity.LOW


def detect_anomalies(items: list[ReceiptWithPurchase]) -> list[Anomaly]:
    if len(items) < ANOMALY_MIN_RECEIPTS:
        return []
    average = statistics.fmean(zwg_per_kwh(i) for i in items)
    if average == 0:
        return []
    anomalies: list[Anomaly] = []
    for item in _ordered(items):
        rate = zwg_per_kwh(item)
        deviation = (rate - average) / average * 100
        if abs(deviation) <= ANOMALY_THRESHOLD_PERCENT:
            continue
        anomalies.append(
            Anomaly(
                receipt_id=item.receipt.id,
                purchase_id=item.purchase.id,
                purchase_date=item.purchase.purchase_date,
                zwg_per_kwh=rate,
                deviation=deviation,
                type=AnomalyType.SPIKE if deviation > 0 else AnomalyType.DROP,
                severity=_severity(deviation),
            )
        )
    return anomalies


# ---------------------------------------------------------------------------
# Seasonality
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SeasonalMonth:
    month: int  # 1-12
    avg_zwg_per_kwh: float
    purchase_count: int
    total_kwh: float


@dataclass(frozen=True)
class SeasonalPattern:
    months: list[SeasonalMonth] = field(default_factory=list)
    highest_month: int | None = None
    lowest_month: int | None = None


def seasonal_pattern(items: list[ReceiptWithPurchase]) -> SeasonalPattern:
    """Average price per calendar month across all years (needs ≥12 receipts)."""
    if len(items) < SEASONAL_MIN_RECEIPTS:
        return SeasonalPattern()
    groups: dict[int, list[ReceiptWithPurchase]] = defaultdict(list)
    for item in items:
        groups[calendar_day(item.purchase.purchase_date).month].append(item)
    months = [
        SeasonalMonth(
            month=m,
            avg_zwg_per_kwh=statistics.fmean(zwg_per_kwh(i) for i in groups[m]),
            purchase_count=len(groups[m]),
            total_kwh=sum(i.receipt.kwh_purchased for i in groups[m]),
        )
        for m in sorted(groups)
    ]
    return SeasonalPattern(
        months=months,
        highest_month=max(months, key=lambda s: (s.avg_zwg_per_kwh, -s.month)).month,
        lowest_month=min(months, key=lambda s: (s.avg_zwg_per_kwh, s.month)).month,
    )


# ---------------------------------------------------------------------------
# Cross-currency variance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VarianceAnalysis:
    avg_implied_rate: float = 0.0
    min_implied_rate: float = 0.0
    max_implied_rate: float = 0.0
    overall_implied_rate: float = 0.0
    receipts_above_average: int = 0
    receipts_below_average: int = 0
    usd_variance: float = 0.0           # USD paid − USD-equivalent at the average rate
    overpayment_percentage: float = 0.0


def variance_analysis(items: list[ReceiptWithPurchase]) -> VarianceAnalysis:
    paid = [i for i in items if i.purchase.total_payment > 0]
    if not paid:
        return VarianceAnalysis()
    rates = [implied_rate(i) for i in paid]
    average = statistics.fmean(rates)
    equivalent = sum(safe_ratio(i.receipt.total_amount, average) for i in paid)
    variance = sum(i.purchase.total_payment for i in paid) - equivalent
    return VarianceAnalysis(
        avg_implied_rate=average,
        min_implied_rate=min(rates),
        max_implied_rate=max(rates),
        overall_implied_rate=safe_ratio(
            sum(i.receipt.total_amount for i in paid),
            sum(i.purchase.total_payment for i in paid),
        ),
        receipts_above_average=sum(1 for r in rates if r > average),
        receipts_below_average=sum(1 for r in rates if r < average),
        usd_variance=variance,
        overpayment_percentage=safe_ratio(variance, equivalent) * 100,
    )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


def generate_recommendations(
    monthly: list[MonthlyTrend],
    anomalies: list[Anomaly],
    average_rate: float,
    as_of: datetime | None = None,
) -> list[str]:
    recommendations: list[str] = []

    if len(monthly) >= 2:
        recent, previous = monthly[-1], monthly[-2]
        change = safe_ratio(recent.avg_zwg_per_kwh - previous.avg_zwg_per_kwh,
                            previous.avg_zwg_per_kwh) * 100
        if change > RATE_CHANGE_ALERT_PERCENT:
            recommendations.append(
                f"Electricity rates are rising ({change:.1f}% increase). "
                "Consider purchasing larger amounts when rates are lower."
            )
        elif change < -RATE_CHANGE_ALERT_PERCENT:
            recommendations.append(
                f"Electricity rates are decreasing ({abs(change):.1f}% drop). "
                "Good time to purchase tokens."
            )

        band = CURRENT_VS_AVERAGE_PERCENT / 100
        if recent.avg_zwg_per_kwh > average_rate * (1 + band):
            recommendations.append(
                f"Current rate ({recent.avg_zwg_per_kwh:.2f} ZWG/kWh) is 15%+ above "
                "your average. Wait for better rates if possible."
            )
        elif recent.avg_zwg_per_kwh < average_rate * (1 - band):
            recommendations.append(
                f"Current rate ({recent.avg_zwg_per_kwh:.2f} ZWG/kWh) is 15%+ below "
                "your average. Excellent time to purchase."
            )

    cutoff = as_utc(as_of or utc_now()) - timedelta(days=RECENT_ANOMALY_DAYS)
    recent_high = [
        a for a in anomalies
        if a.severity is AnomalySeverity.HIGH and as_utc(a.purchase_date) >= cutoff
    ]
    if recent_high:
        noun = "anomaly" if len(recent_high) == 1 else "anomalies"
        recommendations.append(
            f"{len(recent_high)} high-severity price {noun} detected in the last "
            f"{RECENT_ANOMALY_DAYS} days. Review your recent purchases."
        )

    if not monthly:
        recommendations.append(
            "No receipt data available. Import your historical receipts to get insights."
        )
    return recommendations


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryAnalysis:
    summary: HistorySummary
    trends: TrendAnalysis
    anomalies: list[Anomaly]
    seasonal: SeasonalPattern
    variance: VarianceAnalysis
    recommendations: list[str]


def analyze_history(
    items: list[ReceiptWithPurchase], as_of: datetime | None = None
) -> HistoryAnalysis:
    items = _ordered(items)
    summary = summarize(items)
    trends = analyze_trend(monthly_trends(items))
    anomalies = detect_anomalies(items)
    return HistoryAnalysis(
        summary=summary,
        trends=trends,
        anomalies=anomalies,
        seasonal=seasonal_pattern(items),
        variance=variance_analysis(items),
        recommendations=generate_recommendations(
            trends.monthly, anomalies, summary.avg_zwg_per_kwh, as_of
        ),
    )

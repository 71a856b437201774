"""Pydantic schemas for tl_analysis API."""

from pydantic import BaseModel

from src.tl_analysis.domain.history import HistoryAnalysis
from src.tl_common.money import round2, round4


class SummaryResponse(BaseModel):
    total_receipts: int
    start: str | None
    end: str | None
    avg_zwg_per_kwh: float
    min_zwg_per_kwh: float
    max_zwg_per_kwh: float
    total_kwh: float
    total_zwg: float
    avg_usd_per_kwh: float
    implied_exchange_rate: float


class MonthlyTrendItem(BaseModel):
    month: str
    avg_zwg_per_kwh: float
    min_zwg_per_kwh: float
    max_zwg_per_kwh: float
    total_kwh: float
    purchase_count: int


class TrendsResponse(BaseModel):
    overall: str
    percentage_change: float
    monthly: list[MonthlyTrendItem]


class AnomalyItem(BaseModel):
    receipt_id: str
    purchase_id: str
    purchase_date: str
    zwg_per_kwh: float
    deviation: float
    type: str
    severity: str


class SeasonalMonthItem(BaseModel):
    month: int
    avg_zwg_per_kwh: float
    purchase_count: int
    total_kwh: float


class SeasonalResponse(BaseModel):
    months: list[SeasonalMonthItem]
    highest_month: int | None
    lowest_month: int | None


class VarianceResponse(BaseModel):
    avg_implied_rate: float
    min_implied_rate: float
    max_implied_rate: float
    overall_implied_rate: float
    receipts_above_average: int
    receipts_below_average: int
    usd_variance: float
    overpayment_percentage: float


class HistoryAnalysisResponse(BaseModel):
    summary: SummaryResponse
    trends: TrendsResponse
    anomalies: list[AnomalyItem]
    seasonal: SeasonalResponse
    variance: VarianceResponse
    recommendations: list[str]

    @classmethod
    def from_domain(cls, a: HistoryAnalysis) -> "HistoryAnalysisResponse":
        s = a.summary
        v = a.variance
        return cls(
            summary=SummaryResponse(
                total_receipts=s.total_receipts,
                start=s.start.isoformat() if s.start else None,
                end=s.end.isoformat() if s.end else None,
                avg_zwg_per_kwh=round4(s.avg_zwg_per_kwh),
                min_zwg_per_kwh=round4(s.min_zwg_per_kwh),
                max_zwg_per_kwh=round4(s.max_zwg_per_kwh),
                total_kwh=round2(s.total_kwh),
                total_zwg=round2(s.total_zwg),
                avg_usd_per_kwh=round4(s.avg_usd_per_kwh),
                implied_exchange_rate=round4(s.implied_exchange_rate),
            ),
            trends=TrendsResponse(
                overall=a.trends.overall.value,
                percentage_change=round2(a.trends.percentage_change),
                monthly=[
                    MonthlyTrendItem(
                        month=t.month,
                        avg_zwg_per_kwh=round4(t.avg_zwg_per_kwh),
                        min_zwg_per_kwh=round4(t.min_zwg_per_kwh),
                        max_zwg_per_kwh=round4(t.max_zwg_per_kwh),
                        total_kwh=round2(t.total_kwh),
                        purchase_count=t.purchase_count,
                    )
                    for t in a.trends.monthly
                ],
            ),
            anomalies=[
                AnomalyItem(
                    receipt_id=an.receipt_id,
                    purchase_id=an.purchase_id,
                    purchase_date=an.purchase_date.isoformat(),
                    zwg_per_kwh=round4(an.zwg_per_kwh),
                    deviation=round2(an.deviation),
                    type=an.type.value,
                    severity=an.severity.value,
                )
                for an in a.anomalies
            ],
            seasonal=SeasonalResponse(
                months=[
                    SeasonalMonthItem(
                        month=m.month,
                        avg_zwg_per_kwh=round4(m.avg_zwg_per_kwh),
                        purchase_count=m.purchase_count,
                        total_kwh=round2(m.total_kwh),
                    )
                    for m in a.seasonal.months
                ],
                highest_month=a.seasonal.highest_month,
                lowest_month=a.seasonal.lowest_month,
            ),
            variance=VarianceResponse(
                avg_implied_rate=round4(v.avg_implied_rate),
                min_implied_rate=round4(v.min_implied_rate),
                max_implied_rate=round4(v.max_implied_rate),
                overall_implied_rate=round4(v.overall_implied_rate),
                receipts_above_average=v.receipts_above_average,
                receipts_below_average=v.receipts_below_average,
                usd_variance=round2(v.usd_variance),
                overpayment_percentage=round2(v.overpayment_percentage),
            ),
            recommendations=a.recommendations,
        )

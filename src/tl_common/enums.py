"""Global enums shared by the ledger modules."""

from enum import Enum


class MatchConfidence(str, Enum):
    """Receipt-to-purchase match classification by confidence score."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def importable(self) -> bool:
        return self in (MatchConfidence.HIGH, MatchConfidence.MEDIUM)


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class AnomalyType(str, Enum):
    SPIKE = "spike"  # overpriced
    DROP = "drop"    # good deal


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EfficiencyRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class VarianceDirection(str, Enum):
    OVERPAID = "overpaid"
    UNDERPAID = "underpaid"
    EXACT = "exact"


class ReadingSource(str, Enum):
    """Where a meter value was observed."""
    PURCHASE = "purchase"
    READING = "reading"

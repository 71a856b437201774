"""Tunable thresholds for the statistical consumption checks."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ConsumptionPolicy:
    """Plausibility bounds for a new reading's daily consumption (kWh/day).

    max_reasonable = max(average × average_multiplier,
                         median × median_multiplier,
                         max × max_multiplier,
                         absolute_floor)
    min_reasonable = max(0, average × low_average_fraction)

    Above max_reasonable is a hard error; above average × warn_multiplier,
    below min_reasonable, or zero usage over several days are warnings.
    """
    average_multiplier: float = 3.0
    median_multiplier: float = 4.0
    max_multiplier: float = 1.5
    absolute_floor: float = 50.0
    warn_multiplier: float = 2.0
    low_average_fraction: float = 0.1
    history_window: int = 30       # most recent per-user readings considered
    min_history_points: int = 2

    def max_reasonable_daily(self, average: float, median: float, maximum: float) -> float:
        return max(
            average * self.average_multiplier,
            median * self.median_multiplier,
            maximum * self.max_multiplier,
            self.absolute_floor,
        )

    def min_reasonable_daily(self, average: float) -> float:
        return max(0.0, average * self.low_average_fraction)


DEFAULT_POLICY = ConsumptionPolicy()

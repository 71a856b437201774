"""Floating-point money helpers.

Ledger amounts are IEEE-754 doubles (the store uses DOUBLE PRECISION), not
fixed-point. Rounding is applied only to presentation values; running
totals are accumulated unrounded.
"""


def round2(value: float) -> float:
    """Round to 2 decimal places (currency amounts)."""
    return round(value, 2)


def round4(value: float) -> float:
    """Round to 4 decimal places (rates)."""
    return round(value, 4)


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def usd_display(amount: float) -> str:
    """12.5 -> '$12.50', -3 -> '-$3.00'."""
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"


def zwg_display(amount: float) -> str:
    """1580.99 -> 'ZWG 1,580.99'."""
    return f"ZWG {amount:,.2f}"

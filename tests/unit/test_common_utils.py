"""Tests for tl_common.datetime_utils and tl_common.money."""

from datetime import UTC, date, datetime, timedelta, timezone

from src.tl_common.datetime_utils import (
    as_utc,
    calendar_day,
    calendar_days_apart,
    day_start,
    days_between_ceil,
    month_key,
    next_day_start,
    utc_now,
)
from src.tl_common.money import round2, round4, safe_ratio, usd_display, zwg_display


class TestUtcNow:
    def test_returns_aware_datetime(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo is not None

    def test_is_utc(self) -> None:
        assert utc_now().tzinfo == UTC


class TestCalendarDays:
    def test_naive_is_treated_as_utc(self) -> None:
        assert as_utc(datetime(2024, 1, 1, 12)) == datetime(2024, 1, 1, 12, tzinfo=UTC)

    def test_aware_is_converted(self) -> None:
        harare = timezone(timedelta(hours=2))
        moment = datetime(2024, 1, 2, 1, 0, tzinfo=harare)
        assert calendar_day(moment) == date(2024, 1, 1)

    def test_dates_pass_through(self) -> None:
        assert calendar_day(date(2024, 5, 6)) == date(2024, 5, 6)

    def test_days_apart_ignores_time_of_day(self) -> None:
        a = datetime(2024, 1, 1, 23, 59, tzinfo=UTC)
        b = datetime(2024, 1, 2, 0, 1, tzinfo=UTC)
        assert calendar_days_apart(a, b) == 1
        assert calendar_days_apart(b, a) == 1
        assert calendar_days_apart(a, date(2024, 1, 1)) == 0

    def test_day_boundaries(self) -> None:
        assert day_start(date(2024, 2, 29)) == datetime(2024, 2, 29, tzinfo=UTC)
        assert next_day_start(date(2024, 2, 29)) == datetime(2024, 3, 1, tzinfo=UTC)

    def test_days_between_rounds_up(self) -> None:
        assert days_between_ceil(date(2024, 1, 1), date(2024, 1, 4)) == 3
        start = datetime(2024, 1, 1, 8, tzinfo=UTC)
        assert days_between_ceil(start, start + timedelta(hours=30)) == 2
        assert days_between_ceil(date(2024, 1, 1), date(2024, 1, 1)) == 0

    def test_month_key(self) -> None:
        assert month_key(datetime(2024, 3, 31, 23, tzinfo=UTC)) == "2024-03"
        assert month_key(date(2023, 11, 1)) == "2023-11"


class TestMoney:
    def test_rounding(self) -> None:
        assert round2(12.345678) == 12.35
        assert round4(0.123456) == 0.1235

    def test_safe_ratio(self) -> None:
        assert safe_ratio(1.0, 4.0) == 0.25
        assert safe_ratio(1.0, 0.0) == 0.0

    def test_usd_display(self) -> None:
        assert usd_display(12.5) == "$12.50"
        assert usd_display(-3) == "-$3.00"
        assert usd_display(1234.5) == "$1,234.50"

    def test_zwg_display(self) -> None:
        assert zwg_display(1580.99) == "ZWG 1,580.99"

"""Tests for business-day adjustment."""

from datetime import date, timedelta

import pytest

from credit_engine.business_days import BusinessDayAdjuster, adjust_to_next_business_day
from credit_engine.data_models import PaymentFrequency
from credit_engine.exceptions import DateAdjustmentError

FRIDAY = date(2024, 3, 1)
SATURDAY = date(2024, 3, 2)
SUNDAY = date(2024, 3, 3)
MONDAY = date(2024, 3, 4)


class TestWeekendRules:
    @pytest.mark.parametrize("frequency", list(PaymentFrequency))
    def test_sunday_moves_to_monday(self, frequency):
        assert adjust_to_next_business_day(SUNDAY, frequency) == MONDAY

    @pytest.mark.parametrize("frequency", [PaymentFrequency.DAILY, PaymentFrequency.BIWEEKLY])
    def test_saturday_excluded_for_daily_and_biweekly(self, frequency):
        assert adjust_to_next_business_day(SATURDAY, frequency) == MONDAY

    @pytest.mark.parametrize("frequency", [PaymentFrequency.WEEKLY, PaymentFrequency.SEMI_MONTHLY])
    def test_saturday_allowed_for_weekly_and_semi_monthly(self, frequency):
        assert adjust_to_next_business_day(SATURDAY, frequency) == SATURDAY

    @pytest.mark.parametrize("frequency", list(PaymentFrequency))
    def test_weekday_without_holiday_is_unchanged(self, frequency):
        assert adjust_to_next_business_day(FRIDAY, frequency) == FRIDAY


class TestHolidayRules:
    def test_daily_friday_holiday_skips_weekend(self):
        result = adjust_to_next_business_day(FRIDAY, PaymentFrequency.DAILY, {FRIDAY})
        assert result == MONDAY

    @pytest.mark.parametrize("frequency", [PaymentFrequency.WEEKLY, PaymentFrequency.SEMI_MONTHLY])
    def test_friday_holiday_moves_to_saturday(self, frequency):
        assert adjust_to_next_business_day(FRIDAY, frequency, {FRIDAY}) == SATURDAY

    def test_biweekly_friday_holiday_passes_through_saturday_to_monday(self):
        """The holiday rule moves Friday to Saturday; the biweekly Saturday rule then moves it to Monday."""
        assert adjust_to_next_business_day(FRIDAY, PaymentFrequency.BIWEEKLY, {FRIDAY}) == MONDAY

    def test_biweekly_plain_saturday_moves(self):
        assert adjust_to_next_business_day(SATURDAY, PaymentFrequency.BIWEEKLY, {FRIDAY}) == MONDAY

    @pytest.mark.parametrize(
        "frequency", [PaymentFrequency.WEEKLY, PaymentFrequency.BIWEEKLY, PaymentFrequency.SEMI_MONTHLY]
    )
    def test_friday_and_saturday_holidays_reach_monday(self, frequency, holidays):
        assert adjust_to_next_business_day(FRIDAY, frequency, holidays) == MONDAY

    def test_saturday_holiday_moves_to_monday(self):
        assert adjust_to_next_business_day(SATURDAY, PaymentFrequency.WEEKLY, {SATURDAY}) == MONDAY

    def test_midweek_holiday_moves_one_day(self):
        tuesday = date(2024, 3, 5)
        result = adjust_to_next_business_day(tuesday, PaymentFrequency.WEEKLY, {tuesday})
        assert result == date(2024, 3, 6)

    def test_consecutive_holidays_chain(self):
        monday_holidays = {MONDAY, MONDAY + timedelta(days=1)}
        result = adjust_to_next_business_day(SUNDAY, PaymentFrequency.DAILY, monday_holidays)
        assert result == date(2024, 3, 6)


class TestNonConvergence:
    def test_raises_after_iteration_cap(self):
        start = date(2024, 1, 1)
        every_day = {start + timedelta(days=i) for i in range(60)}

        with pytest.raises(DateAdjustmentError) as exc_info:
            adjust_to_next_business_day(start, PaymentFrequency.WEEKLY, every_day, max_iterations=30)

        assert exc_info.value.original == start
        assert exc_info.value.frequency is PaymentFrequency.WEEKLY
        assert exc_info.value.iterations == 30

    def test_settles_exactly_at_cap(self):
        start = date(2024, 3, 5)
        result = adjust_to_next_business_day(start, PaymentFrequency.WEEKLY, {start}, max_iterations=1)
        assert result == date(2024, 3, 6)


class TestBusinessDayAdjuster:
    def test_accepts_string_holidays(self):
        adjuster = BusinessDayAdjuster(["2024-03-01"])
        assert adjuster.is_holiday(FRIDAY)
        assert adjuster.adjust(FRIDAY, PaymentFrequency.WEEKLY) == SATURDAY

    def test_is_payment_day(self):
        adjuster = BusinessDayAdjuster()
        assert adjuster.is_payment_day(SATURDAY, PaymentFrequency.WEEKLY)
        assert not adjuster.is_payment_day(SATURDAY, PaymentFrequency.DAILY)
        assert not adjuster.is_payment_day(SUNDAY, PaymentFrequency.SEMI_MONTHLY)

    def test_advance_counts_payment_days(self):
        adjuster = BusinessDayAdjuster()
        thursday = date(2024, 2, 29)
        assert adjuster.advance(thursday, PaymentFrequency.DAILY, 2) == MONDAY

"""Tests for payment plan generation."""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

import pytest

from credit_engine.data_models import CreditStatus, LoanTerms, PaymentFrequency
from credit_engine.engine import (
    generate_payment_schedule,
    number_of_installments,
    place_installment_dates,
    regenerate_credit_schedule,
    summarize_schedule,
    validate_terms,
)
from credit_engine.exceptions import InvalidLoanTermsError

EPSILON = Decimal("0.01")


def terms(frequency=PaymentFrequency.WEEKLY, start=date(2024, 1, 1), term="1", principal="1000", rate="5", holidays=()):
    return LoanTerms(
        principal=Decimal(principal),
        monthly_interest_rate=Decimal(rate),
        term_months=Decimal(term),
        payment_frequency=frequency,
        start_date=start,
        holidays=frozenset(holidays),
    )


class TestNumberOfInstallments:
    @pytest.mark.parametrize(
        "term,frequency,expected",
        [
            ("1", PaymentFrequency.DAILY, 20),
            ("1", PaymentFrequency.WEEKLY, 4),
            ("1", PaymentFrequency.BIWEEKLY, 2),
            ("1", PaymentFrequency.SEMI_MONTHLY, 2),
            ("1.5", PaymentFrequency.WEEKLY, 6),
            ("1.25", PaymentFrequency.BIWEEKLY, 3),  # 2.5 rounds half up
            ("0.2", PaymentFrequency.SEMI_MONTHLY, 0),
        ],
    )
    def test_rounding(self, term, frequency, expected):
        assert number_of_installments(Decimal(term), frequency) == expected


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"principal": Decimal("0")},
            {"principal": Decimal("-10")},
            {"monthly_interest_rate": Decimal("-1")},
            {"term_months": Decimal("0")},
            {"start_date": None},
            {"term_months": Decimal("0.2"), "payment_frequency": PaymentFrequency.SEMI_MONTHLY},
        ],
    )
    def test_invalid_terms_raise(self, overrides):
        with pytest.raises(InvalidLoanTermsError):
            validate_terms(replace(terms(), **overrides))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"principal": Decimal("0")},
            {"monthly_interest_rate": Decimal("-1")},
            {"term_months": Decimal("-3")},
            {"start_date": None},
        ],
    )
    def test_generation_returns_none(self, overrides):
        assert generate_payment_schedule(replace(terms(), **overrides)) is None

    def test_zero_rate_is_valid(self):
        schedule = generate_payment_schedule(terms(rate="0"))
        assert schedule is not None
        assert schedule.total_interest == 0
        assert schedule.periodic_payment == Decimal("250")


class TestWeeklyReferencePlan:
    def test_totals(self, weekly_terms):
        schedule = generate_payment_schedule(weekly_terms)

        assert schedule.total_interest == Decimal("50")
        assert schedule.total_payment == Decimal("1050")
        assert schedule.number_of_installments == 4
        assert schedule.periodic_payment == Decimal("262.5")

    def test_installments(self, weekly_terms):
        schedule = generate_payment_schedule(weekly_terms)

        assert [i.number for i in schedule.installments] == [1, 2, 3, 4]
        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 15),
            date(2024, 1, 22),
        ]
        assert all(i.due_date.weekday() == 0 for i in schedule.installments)
        assert [i.balance for i in schedule.installments] == [
            Decimal("787.5"),
            Decimal("525.0"),
            Decimal("262.5"),
            Decimal("0"),
        ]
        assert all(i.principal == Decimal("250") for i in schedule.installments)
        assert all(i.interest == Decimal("12.5") for i in schedule.installments)

    def test_interest_uses_declared_term(self):
        schedule = generate_payment_schedule(terms(PaymentFrequency.BIWEEKLY, term="1.25"))
        assert schedule.number_of_installments == 3
        assert schedule.total_interest == Decimal("62.5")


class TestSumsAndDates:
    @pytest.mark.parametrize("frequency", list(PaymentFrequency))
    @pytest.mark.parametrize("principal,rate,term", [("1000", "5", "1"), ("3500", "7.5", "3"), ("777", "4", "2.5")])
    def test_sums_match_totals(self, frequency, principal, rate, term):
        schedule = generate_payment_schedule(
            terms(frequency, principal=principal, rate=rate, term=term, start=date(2024, 1, 17))
        )
        amounts = sum(i.amount for i in schedule.installments)
        principals = sum(i.principal for i in schedule.installments)
        interests = sum(i.interest for i in schedule.installments)

        assert abs(amounts - schedule.total_payment) < EPSILON
        assert abs(principals - Decimal(principal)) < EPSILON
        assert abs(interests - schedule.total_interest) < EPSILON
        assert schedule.installments[-1].balance < EPSILON

    @pytest.mark.parametrize("frequency", list(PaymentFrequency))
    def test_never_sunday(self, frequency, holidays):
        schedule = generate_payment_schedule(terms(frequency, term="4", start=date(2024, 2, 2), holidays=holidays))
        assert all(i.due_date.weekday() != 6 for i in schedule.installments)
        assert all(i.due_date not in holidays for i in schedule.installments)

    def test_daily_never_saturday(self, holidays):
        schedule = generate_payment_schedule(terms(PaymentFrequency.DAILY, term="3", start=date(2024, 2, 1), holidays=holidays))
        assert all(i.due_date.weekday() < 5 for i in schedule.installments)

    def test_biweekly_friday_holiday_ends_on_monday(self):
        friday_holiday = date(2024, 1, 19)
        schedule = generate_payment_schedule(
            terms(PaymentFrequency.BIWEEKLY, term="2", start=date(2024, 1, 5), holidays={friday_holiday})
        )
        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 5),
            date(2024, 1, 22),
            date(2024, 2, 2),
            date(2024, 2, 16),
        ]
        assert all(i.due_date.weekday() < 5 for i in schedule.installments)

    def test_dates_strictly_increase(self):
        schedule = generate_payment_schedule(terms(PaymentFrequency.DAILY, term="2", start=date(2024, 1, 3)))
        dates = [i.due_date for i in schedule.installments]
        assert dates == sorted(dates)
        assert len(set(dates)) == len(dates)

    @pytest.mark.parametrize("frequency", list(PaymentFrequency))
    def test_regeneration_is_identical(self, frequency, holidays):
        loan_terms = terms(frequency, term="2.5", start=date(2024, 2, 16), holidays=holidays)
        assert generate_payment_schedule(loan_terms) == generate_payment_schedule(loan_terms)


class TestDailyPlacement:
    def test_weekend_extends_maturity(self):
        # Friday start: Saturday and Sunday are skipped once
        schedule = generate_payment_schedule(terms(PaymentFrequency.DAILY, term="0.25", start=date(2024, 1, 5)))

        assert schedule.extension_days == 2
        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 5),
            date(2024, 1, 8),
            date(2024, 1, 9),
            date(2024, 1, 10),
            date(2024, 1, 15),
        ]

    def test_no_extension_inside_one_week(self):
        dates, extension = place_installment_dates(PaymentFrequency.DAILY, date(2024, 1, 1), 5)
        assert extension == 0
        assert dates == [date(2024, 1, 1) + timedelta(days=i) for i in range(5)]

    def test_start_on_weekend_counts_toward_extension(self):
        dates, extension = place_installment_dates(PaymentFrequency.DAILY, date(2024, 1, 6), 3)
        assert dates[0] == date(2024, 1, 8)
        assert extension == 2
        # 8, 9 then the third slot (10) pushed two payment days to the 12th
        assert dates == [date(2024, 1, 8), date(2024, 1, 9), date(2024, 1, 12)]

    def test_holiday_counts_toward_extension(self):
        holiday = date(2024, 1, 3)
        dates, extension = place_installment_dates(PaymentFrequency.DAILY, date(2024, 1, 1), 3, {holiday})
        assert extension == 1
        assert dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 5)]

    def test_other_frequencies_have_no_extension(self):
        _, extension = place_installment_dates(PaymentFrequency.WEEKLY, date(2024, 1, 6), 4)
        assert extension == 0


class TestSemiMonthly:
    def test_first_half_anchor(self):
        """Start on the 5th of a 31-day month pays on the 5th and the 20th."""
        schedule = generate_payment_schedule(terms(PaymentFrequency.SEMI_MONTHLY, term="3", start=date(2024, 1, 5)))
        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 5),
            date(2024, 1, 20),  # Saturday is a payment day
            date(2024, 2, 5),
            date(2024, 2, 20),
            date(2024, 3, 5),
            date(2024, 3, 20),
        ]

    def test_second_half_anchor(self):
        schedule = generate_payment_schedule(terms(PaymentFrequency.SEMI_MONTHLY, term="2", start=date(2024, 1, 20)))
        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 20),
            date(2024, 2, 5),
            date(2024, 2, 20),
            date(2024, 3, 5),
        ]

    def test_day_30_clamps_in_february(self):
        schedule = generate_payment_schedule(terms(PaymentFrequency.SEMI_MONTHLY, term="2", start=date(2024, 1, 30)))
        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 30),
            date(2024, 2, 15),
            date(2024, 2, 29),
            date(2024, 3, 15),
        ]

    def test_day_30_clamps_in_common_year(self):
        schedule = generate_payment_schedule(terms(PaymentFrequency.SEMI_MONTHLY, term="2", start=date(2023, 1, 30)))
        assert schedule.installments[2].due_date == date(2023, 2, 28)

    def test_sunday_anchor_is_adjusted(self):
        schedule = generate_payment_schedule(terms(PaymentFrequency.SEMI_MONTHLY, term="2", start=date(2024, 1, 10)))
        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 10),
            date(2024, 1, 25),
            date(2024, 2, 10),
            date(2024, 2, 26),
        ]


class TestNonConvergentHolidays:
    def test_generation_returns_none(self):
        start = date(2024, 1, 1)
        every_day = {start + timedelta(days=i) for i in range(90)}
        assert generate_payment_schedule(terms(holidays=every_day)) is None


class TestRegenerateAndSummary:
    def test_regenerate_replaces_plan(self, weekly_credit):
        new_terms = terms(PaymentFrequency.BIWEEKLY, term="2", start=date(2024, 2, 5))
        updated = regenerate_credit_schedule(weekly_credit, new_terms)

        assert updated.status is CreditStatus.ACTIVE
        assert len(updated.installments) == 4
        assert updated.total_interest == Decimal("100")
        assert updated.total_amount == Decimal("1100")
        assert updated.due_date == updated.installments[-1].due_date
        assert weekly_credit.installments[0].due_date == date(2024, 1, 1)

    def test_regenerate_failure_returns_none(self, weekly_credit):
        assert regenerate_credit_schedule(weekly_credit, terms(principal="0")) is None

    def test_summary(self, weekly_terms):
        summary = summarize_schedule(generate_payment_schedule(weekly_terms))
        assert summary == {
            "periodic_payment": 262.5,
            "total_interest": 50.0,
            "total_payment": 1050.0,
            "principal": 1000.0,
            "number_of_installments": 4,
            "first_due_date": "2024-01-01",
            "maturity_date": "2024-01-22",
            "extension_days": 0,
        }

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from credit_engine.data_models import PaymentFrequency
from credit_engine.utils import add_months, month_day, parse_holidays, parse_iso_date, to_business_date, to_decimal
from tests.conftest import MANAGUA


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 11, 15), 3, date(2025, 2, 15)),
        (date(2024, 3, 31), -1, date(2024, 2, 29)),
    ],
)
def test_add_months(start, months, expected):
    assert add_months(start, months) == expected


def test_month_day_clamps_to_month_end():
    assert month_day(date(2024, 1, 15), 1, 30) == date(2024, 2, 29)


def test_to_decimal():
    assert to_decimal("1,250.50") == Decimal("1250.50")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(3) == Decimal(3)


@pytest.mark.parametrize("value", ["abc", None, True])
def test_to_decimal_rejects(value):
    with pytest.raises(ValueError):
        to_decimal(value)


def test_parse_iso_date():
    assert parse_iso_date("2024-01-08") == date(2024, 1, 8)
    assert parse_iso_date("2024-01-08T21:00:00") == date(2024, 1, 8)
    with pytest.raises(ValueError):
        parse_iso_date("08/01/2024")


def test_to_business_date_converts_aware_values():
    late_evening = datetime(2024, 1, 9, 3, 30, tzinfo=timezone.utc)

    assert to_business_date(late_evening, MANAGUA) == date(2024, 1, 8)
    assert to_business_date(datetime(2024, 1, 9, 3, 30), MANAGUA) == date(2024, 1, 9)
    assert to_business_date("2024-01-09T03:30:00Z", MANAGUA) == date(2024, 1, 8)


def test_parse_holidays():
    assert parse_holidays(["2024-09-14", date(2024, 9, 15)]) == frozenset({date(2024, 9, 14), date(2024, 9, 15)})


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Semanal", PaymentFrequency.WEEKLY),
        ("SEMI_MONTHLY", PaymentFrequency.SEMI_MONTHLY),
        ("fortnightly", PaymentFrequency.BIWEEKLY),
        ("semi-monthly", PaymentFrequency.SEMI_MONTHLY),
        (PaymentFrequency.DAILY, PaymentFrequency.DAILY),
    ],
)
def test_frequency_aliases(value, expected):
    assert PaymentFrequency.parse(value) is expected


def test_unknown_frequency():
    with pytest.raises(ValueError):
        PaymentFrequency.parse("Mensual")

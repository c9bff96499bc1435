"""Pytest configuration and fixtures."""

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from credit_engine.config import BusinessClock
from credit_engine.data_models import Credit, LoanTerms, PaymentFrequency, RegisteredPayment
from credit_engine.engine import generate_payment_schedule
from credit_engine.status import StatusEngine

MANAGUA = ZoneInfo("America/Managua")


def make_payment(payment_id: str, when: datetime, amount: str, **kwargs) -> RegisteredPayment:
    return RegisteredPayment(id=payment_id, payment_date=when, amount=Decimal(amount), **kwargs)


@pytest.fixture
def weekly_terms() -> LoanTerms:
    """1000 at 5% per month over one month, paid weekly from Monday 2024-01-01."""
    return LoanTerms(
        principal=Decimal("1000"),
        monthly_interest_rate=Decimal("5"),
        term_months=Decimal("1"),
        payment_frequency=PaymentFrequency.WEEKLY,
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def weekly_credit(weekly_terms: LoanTerms) -> Credit:
    """Active credit with installments of 262.50 on 2024-01-01, 08, 15 and 22."""
    schedule = generate_payment_schedule(weekly_terms)
    return Credit.from_schedule(
        "credit-test-001",
        weekly_terms,
        schedule,
        credit_number="CR-0001",
        client_name="José Pérez",
        collections_manager="Ana Gómez",
    )


@pytest.fixture
def fixed_clock() -> BusinessClock:
    """Business clock pinned to Wednesday 2024-01-10 10:00 in Managua."""
    return BusinessClock.fixed(datetime(2024, 1, 10, 10, 0), MANAGUA)


@pytest.fixture
def engine(fixed_clock: BusinessClock) -> StatusEngine:
    return StatusEngine(fixed_clock)


@pytest.fixture
def holidays() -> frozenset:
    """Friday 2024-03-01 and Saturday 2024-03-02."""
    return frozenset({date(2024, 3, 1), date(2024, 3, 2)})

"""Core calculation engine for the credit engine.

This module builds the fixed payment plan of a flat-rate microfinance credit.
Interest is computed once over the full declared term and spread evenly over
every installment, so the periodic payment, its principal portion and its
interest portion are constant. Installment dates follow the credit's payment
frequency and are moved onto business days by ``business_days``.

The public entry point ``generate_payment_schedule`` never raises for bad
input: it logs the reason and returns ``None`` so callers rendering pages can
treat a missing plan as a failed generation.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce
from typing import AbstractSet, Dict, List, Optional, Tuple

from .business_days import BusinessDayAdjuster
from .config import MAX_ADJUST_ITERATIONS
from .data_models import Credit, Installment, LoanTerms, PaymentFrequency, PaymentSchedule
from .exceptions import DateAdjustmentError, InvalidLoanTermsError
from .logging_config import get_logger
from .utils import month_day

logger = get_logger(__name__)

ZERO = Decimal("0")


def number_of_installments(term_months: Decimal, frequency: PaymentFrequency) -> int:
    """Installments for a declared term, rounded half up like the plans already issued."""
    periods = Decimal(term_months) * frequency.periods_per_month
    return int(periods.to_integral_value(rounding=ROUND_HALF_UP))


def validate_terms(terms: LoanTerms) -> int:
    """Check ``terms`` and return the number of installments they produce.

    Raises
    ------
    InvalidLoanTermsError
        If the principal is not positive, the rate is negative, the term is
        not positive, the start date is missing or no installment results.
    """
    if not isinstance(terms.start_date, date):
        raise InvalidLoanTermsError("A valid start date is required")
    if not isinstance(terms.payment_frequency, PaymentFrequency):
        raise InvalidLoanTermsError(f"Unknown payment frequency: {terms.payment_frequency}")
    if terms.principal is None or terms.principal <= 0:
        raise InvalidLoanTermsError("Principal must be positive")
    if terms.monthly_interest_rate is None or terms.monthly_interest_rate < 0:
        raise InvalidLoanTermsError("Interest rate cannot be negative")
    if terms.term_months is None or terms.term_months <= 0:
        raise InvalidLoanTermsError("Term must be positive")
    count = number_of_installments(terms.term_months, terms.payment_frequency)
    if count <= 0:
        raise InvalidLoanTermsError(
            f"A term of {terms.term_months} months yields no {terms.payment_frequency.value} installments"
        )
    return count


def _semi_monthly_dates(start: date, count: int) -> List[date]:
    """Theoretical dates anchored to two days of the month.

    A start on day ``d`` > 15 pays on days ``d - 15`` and ``d``; otherwise on
    ``d`` and ``d + 15``. The first installment is the start date itself and
    the plan advances one month every two installments.
    """
    start_day = start.day
    second_half = start_day > 15
    first_anchor = start_day - 15 if second_half else start_day
    second_anchor = start_day if second_half else start_day + 15

    dates = [start]
    for index in range(1, count):
        base_index = index + (1 if second_half else 0)
        anchor = second_anchor if base_index % 2 == 1 else first_anchor
        dates.append(month_day(start, base_index // 2, anchor))
    return dates


def _fixed_step_dates(start: date, count: int, step_days: int) -> List[date]:
    return [start + timedelta(days=step_days * i) for i in range(count)]


def _place_daily(
    adjuster: BusinessDayAdjuster, start: date, count: int
) -> Tuple[List[date], int]:
    """Place daily installments on consecutive payment days.

    Returns the dates and the number of calendar days the adjuster had to
    skip beyond the plain one-day step. The fold carries
    ``(dates, extension_days)`` so the placement stays a pure function.
    """

    def step(acc: Tuple[Tuple[date, ...], int], _index: int) -> Tuple[Tuple[date, ...], int]:
        dates, extension = acc
        theoretical = dates[-1] + timedelta(days=1) if dates else start
        adjusted = adjuster.adjust(theoretical, PaymentFrequency.DAILY)
        return dates + (adjusted,), extension + (adjusted - theoretical).days

    dates, extension = reduce(step, range(count), ((), 0))
    return list(dates), extension


def place_installment_dates(
    frequency: PaymentFrequency,
    start: date,
    count: int,
    holidays: AbstractSet[date] = frozenset(),
    max_iterations: int = MAX_ADJUST_ITERATIONS,
) -> Tuple[List[date], int]:
    """Return the adjusted due dates of ``count`` installments and the extension days.

    For daily credits the final installment is pushed forward by one payment
    day per extension day, so the maturity slides by the non-business days
    met along the way. Other frequencies report zero extension days.
    """
    adjuster = BusinessDayAdjuster(holidays, max_iterations)
    if frequency is PaymentFrequency.DAILY:
        dates, extension = _place_daily(adjuster, start, count)
        if extension > 0 and dates:
            dates[-1] = adjuster.advance(dates[-1], frequency, extension)
        return dates, extension

    if frequency is PaymentFrequency.SEMI_MONTHLY:
        theoretical = _semi_monthly_dates(start, count)
    elif frequency is PaymentFrequency.WEEKLY:
        theoretical = _fixed_step_dates(start, count, 7)
    else:
        theoretical = _fixed_step_dates(start, count, 14)
    return [adjuster.adjust(d, frequency) for d in theoretical], 0


def generate_payment_schedule(
    terms: LoanTerms, *, max_iterations: int = MAX_ADJUST_ITERATIONS
) -> Optional[PaymentSchedule]:
    """Compute the payment plan for ``terms``.

    Parameters
    ----------
    terms: LoanTerms
        Principal, flat monthly rate (percent), declared term in months,
        frequency, theoretical first date and holidays.

    Returns
    -------
    PaymentSchedule or None
        The full plan, or ``None`` when the terms are invalid or a date could
        not be placed on a business day. A partial plan is never returned.
    """
    try:
        count = validate_terms(terms)
    except InvalidLoanTermsError as exc:
        logger.warning("Rejected loan terms: %s", exc)
        return None

    principal = Decimal(terms.principal)
    rate = Decimal(terms.monthly_interest_rate)
    term = Decimal(terms.term_months)

    total_interest = principal * (rate / Decimal(100)) * term
    total_payment = principal + total_interest
    periodic_payment = total_payment / count
    periodic_principal = principal / count
    periodic_interest = total_interest / count

    try:
        due_dates, extension_days = place_installment_dates(
            terms.payment_frequency, terms.start_date, count, terms.holidays, max_iterations
        )
    except DateAdjustmentError as exc:
        logger.error("Schedule generation aborted: %s", exc)
        return None

    installments = tuple(
        Installment(
            number=i,
            due_date=due_date,
            amount=periodic_payment,
            principal=periodic_principal,
            interest=periodic_interest,
            balance=max(ZERO, total_payment - periodic_payment * i),
        )
        for i, due_date in enumerate(due_dates, start=1)
    )

    logger.debug(
        "Generated %d %s installments of %.2f from %s (extension days: %d)",
        count,
        terms.payment_frequency.value,
        periodic_payment,
        terms.start_date.isoformat(),
        extension_days,
    )
    return PaymentSchedule(
        periodic_payment=periodic_payment,
        total_payment=total_payment,
        total_interest=total_interest,
        installments=installments,
        extension_days=extension_days,
    )


def regenerate_credit_schedule(credit: Credit, terms: LoanTerms) -> Optional[Credit]:
    """Return ``credit`` with a plan regenerated from ``terms``.

    The whole plan is replaced and the credit's due date moves to the new
    maturity date; payments are kept. Returns ``None`` when generation fails,
    leaving the caller's credit untouched.
    """
    schedule = generate_payment_schedule(terms)
    if schedule is None:
        return None
    return replace(
        credit,
        principal_amount=Decimal(terms.principal),
        total_interest=schedule.total_interest,
        total_amount=schedule.total_payment,
        total_installment_amount=schedule.periodic_payment,
        installments=schedule.installments,
        due_date=schedule.maturity_date,
    )


def summarize_schedule(schedule: PaymentSchedule) -> Dict[str, object]:
    """Aggregate metrics of a schedule for display and export."""
    return {
        "periodic_payment": float(schedule.periodic_payment),
        "total_interest": float(schedule.total_interest),
        "total_payment": float(schedule.total_payment),
        "principal": float(sum((i.principal for i in schedule.installments), ZERO)),
        "number_of_installments": schedule.number_of_installments,
        "first_due_date": schedule.first_due_date.isoformat() if schedule.first_due_date else None,
        "maturity_date": schedule.maturity_date.isoformat() if schedule.maturity_date else None,
        "extension_days": schedule.extension_days,
    }
